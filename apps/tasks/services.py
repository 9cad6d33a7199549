"""
Core services for Tasks app.
Handles task validation, persistence and attachment bookkeeping.
"""
import logging
from datetime import date
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Case, IntegerField, Q, Value, When
from django.utils.dateparse import parse_date, parse_datetime

from apps.core.utils import parse_id
from apps.identity.models import User
from apps.identity.services import to_user_summary
from .models import Task, TaskAttachment, TaskStatus, TaskPriority
from .dtos import TaskDTO, AttachmentDTO, TaskFormData
from .attachment_service import (
    accept_uploads, validate_upload_file, resolve_mimetype, remove_stored_files,
)

logger = logging.getLogger(__name__)

# Wire name -> message for fields every create/update must carry
REQUIRED_FIELDS = {
    'title': "Title is required",
    'description': "Description is required",
    'assignedTo': "Assigned user is required",
    'dueDate': "Due date is required",
}

SORT_OPTIONS = ('created', 'dueDate', 'priority', 'title')

PRIORITY_RANK = {
    TaskPriority.URGENT: 4,
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


# =============================================================================
# DTO Helpers
# =============================================================================

def to_attachment_dto(attachment: TaskAttachment) -> AttachmentDTO:
    return AttachmentDTO(
        id=attachment.id,
        filename=attachment.filename,
        original_name=attachment.original_name,
        path=attachment.file.name,
        url=attachment.file.url,
        size=attachment.size,
        mimetype=attachment.mimetype,
        uploaded_at=attachment.uploaded_at,
    )


def to_task_dto(task: Task) -> TaskDTO:
    return TaskDTO(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        assigned_to=to_user_summary(task.assigned_to),
        created_by=to_user_summary(task.created_by),
        created_at=task.created_at,
        updated_at=task.updated_at,
        documents=[to_attachment_dto(a) for a in task.documents.all()],
    )


def _task_queryset():
    return Task.objects.select_related('assigned_to', 'created_by').prefetch_related('documents')


# =============================================================================
# Validation
# =============================================================================

def _parse_due_date(value: str) -> Optional[date]:
    """Accept YYYY-MM-DD or a full ISO timestamp (as some clients send)."""
    value = value.strip()
    try:
        parsed = parse_date(value)
        if parsed:
            return parsed
        parsed_dt = parse_datetime(value)
    except ValueError:
        return None
    return parsed_dt.date() if parsed_dt else None


def _clean_task_fields(data: TaskFormData) -> dict:
    """
    Validate submitted fields and resolve the assignee.

    Returns a dict of model field values. Status and priority are only
    present when submitted.

    Raises:
        ValidationError: keyed by wire field name.
    """
    raw = {
        'title': data.title,
        'description': data.description,
        'assignedTo': data.assigned_to,
        'dueDate': data.due_date,
    }
    errors = {
        name: [message]
        for name, message in REQUIRED_FIELDS.items()
        if not (raw[name] or '').strip()
    }

    title_max = Task._meta.get_field('title').max_length
    if 'title' not in errors and len(data.title.strip()) > title_max:
        errors['title'] = [f"Title must be at most {title_max} characters"]

    cleaned = {}
    if data.status:
        if data.status not in TaskStatus.values:
            errors['status'] = [f"Status must be one of: {', '.join(TaskStatus.values)}"]
        cleaned['status'] = data.status
    if data.priority:
        if data.priority not in TaskPriority.values:
            errors['priority'] = [f"Priority must be one of: {', '.join(TaskPriority.values)}"]
        cleaned['priority'] = data.priority

    if 'dueDate' not in errors:
        due_date = _parse_due_date(data.due_date)
        if due_date is None:
            errors['dueDate'] = ["Due date must be an ISO date (YYYY-MM-DD)"]
        cleaned['due_date'] = due_date

    if errors:
        raise ValidationError(errors)

    assignee_id = parse_id(data.assigned_to)
    assignee = User.objects.filter(id=assignee_id).first() if assignee_id else None
    if assignee is None:
        raise ValidationError({'assignedTo': ["Assigned user not found"]})

    cleaned.update(
        title=data.title.strip(),
        description=data.description.strip(),
        assigned_to=assignee,
    )
    return cleaned


def _validate_uploads(files) -> None:
    errors = []
    for f in files:
        is_valid, error = validate_upload_file(f)
        if not is_valid:
            errors.append(error)
    if errors:
        raise ValidationError({'documents': errors})


def _store_attachments(task: Task, files, start_position: int, stored: List[str]) -> None:
    """Write each upload to storage and record it; stored collects saved names."""
    for offset, f in enumerate(files):
        attachment = TaskAttachment(
            task=task,
            original_name=f.name,
            size=f.size,
            mimetype=resolve_mimetype(f),
            position=start_position + offset,
        )
        attachment.file.save(f.name, f, save=False)
        stored.append(attachment.file.name)
        attachment.save()


# =============================================================================
# Task Operations
# =============================================================================

def get_task(task_id) -> Optional[Task]:
    """Fetch a task by id; malformed ids are treated as unknown."""
    task_uuid = parse_id(task_id)
    if task_uuid is None:
        return None
    return _task_queryset().filter(id=task_uuid).first()


def list_tasks(
    assignee: Optional[User] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
) -> List[TaskDTO]:
    """
    List tasks, newest first by default.

    Args:
        assignee: only tasks assigned to this user (None = every task)
        status: exact status match
        search: case-insensitive match on title or description
        sort: one of SORT_OPTIONS
    """
    qs = _task_queryset()
    if assignee is not None:
        qs = qs.filter(assigned_to=assignee)
    if status:
        qs = qs.filter(status=status)
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))

    if sort == 'dueDate':
        qs = qs.order_by('due_date', '-created_at')
    elif sort == 'priority':
        qs = qs.annotate(
            priority_rank=Case(
                *[When(priority=p, then=Value(rank)) for p, rank in PRIORITY_RANK.items()],
                default=Value(0),
                output_field=IntegerField(),
            )
        ).order_by('-priority_rank', '-created_at')
    elif sort == 'title':
        qs = qs.order_by('title')
    else:
        qs = qs.order_by('-created_at')

    return [to_task_dto(t) for t in qs]


def create_task(creator: User, data: TaskFormData, files=None) -> TaskDTO:
    """
    Create a task and store its uploads.

    Status defaults to pending and priority to medium. Only the first
    MAX_ATTACHMENTS uploads are kept.

    Raises:
        ValidationError: missing/invalid fields, unknown assignee, bad upload.
    """
    cleaned = _clean_task_fields(data)
    kept = accept_uploads(0, files)
    _validate_uploads(kept)

    stored: List[str] = []
    try:
        with transaction.atomic():
            task = Task.objects.create(created_by=creator, **cleaned)
            _store_attachments(task, kept, start_position=0, stored=stored)
    except Exception:
        remove_stored_files(stored)
        raise

    logger.info(f"Created task {task.id} with {len(kept)} attachment(s)")
    return to_task_dto(get_task(task.id))


def update_task(task: Task, data: TaskFormData, files=None) -> TaskDTO:
    """
    Replace a task's fields and append new uploads.

    Existing attachments come first; new uploads fill the remaining room
    up to MAX_ATTACHMENTS and the rest are dropped. The task row is locked
    while its attachments are counted and written, so concurrent updates
    cannot push it past the cap.

    Raises:
        ValidationError: missing/invalid fields, unknown assignee, bad upload.
    """
    cleaned = _clean_task_fields(data)

    stored: List[str] = []
    try:
        with transaction.atomic():
            locked = Task.objects.select_for_update().get(id=task.id)
            existing = list(locked.documents.all())
            kept = accept_uploads(len(existing), files)
            _validate_uploads(kept)
            next_position = max((a.position for a in existing), default=-1) + 1

            for field_name, value in cleaned.items():
                setattr(locked, field_name, value)
            locked.save()
            _store_attachments(locked, kept, start_position=next_position, stored=stored)
    except Exception:
        remove_stored_files(stored)
        raise

    logger.info(f"Updated task {task.id}, added {len(kept)} attachment(s)")
    return to_task_dto(get_task(task.id))


def delete_task(task: Task) -> None:
    """
    Delete a task and its attachment rows in one transaction.

    Stored files are removed after commit by the TaskAttachment
    post_delete handler.
    """
    task_id = task.id
    with transaction.atomic():
        task.delete()
    logger.info(f"Deleted task {task_id}")


def delete_task_attachment(task: Task, attachment_id) -> bool:
    """
    Delete one attachment of a task.

    Returns False when the id does not name an attachment of this task.
    """
    attachment_uuid = parse_id(attachment_id)
    if attachment_uuid is None:
        return False

    with transaction.atomic():
        deleted, _ = TaskAttachment.objects.filter(task=task, id=attachment_uuid).delete()

    if deleted:
        logger.info(f"Deleted attachment {attachment_uuid} from task {task.id}")
    return bool(deleted)
