"""API Router for Tasks app."""
from typing import List, Optional

from django.http import HttpRequest
from ninja import Router, Form
from ninja.errors import HttpError

from apps.identity.api import require_auth
from apps.identity.models import User
from apps.identity.permissions import Permissions, has_permission, can_act

from . import services
from .dtos import TaskFormData
from .models import Task
from .schemas import TaskOut, MessageOut

router = Router(tags=["Tasks"])

# Multipart field carrying uploads; bracketed form accepted for array-style clients
DOCUMENT_FIELDS = ('documents', 'documents[]')


# =============================================================================
# Helper Functions
# =============================================================================

def get_task_for(user: User, task_id: str) -> Task:
    """Load a task the user may act on, or raise 404 / 403."""
    task = services.get_task(task_id)
    if not task:
        raise HttpError(404, "Task not found")
    if not can_act(user, task):
        raise HttpError(403, "Access denied")
    return task


def uploaded_documents(request: HttpRequest) -> list:
    files = []
    for field_name in DOCUMENT_FIELDS:
        files.extend(request.FILES.getlist(field_name))
    return files


def validate_sort(sort: Optional[str]) -> None:
    if sort and sort not in services.SORT_OPTIONS:
        raise HttpError(400, f"sort must be one of: {', '.join(services.SORT_OPTIONS)}")


# =============================================================================
# Task Endpoints
# =============================================================================

@router.get("", response=List[TaskOut], auth=None)
def list_my_tasks(
    request: HttpRequest,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
):
    """
    List tasks assigned to the authenticated user.

    Query params:
    - status: pending | in-progress | completed | cancelled
    - search: matches title or description
    - sort: created (default) | dueDate | priority | title
    """
    user = require_auth(request)
    validate_sort(sort)
    return services.list_tasks(assignee=user, status=status, search=search, sort=sort)


@router.get("/all", response=List[TaskOut], auth=None)
def list_all_tasks(
    request: HttpRequest,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
):
    """List every task. Admin only."""
    user = require_auth(request)
    if not has_permission(user, Permissions.TASKS_VIEW_ALL):
        raise HttpError(403, "Access denied")
    validate_sort(sort)
    return services.list_tasks(status=status, search=search, sort=sort)


@router.get("/{task_id}", response=TaskOut, auth=None)
def get_task(request: HttpRequest, task_id: str):
    """Get one task. Assignee or admin."""
    user = require_auth(request)
    task = get_task_for(user, task_id)
    return services.to_task_dto(task)


@router.post("", response=TaskOut, auth=None)
def create_task(
    request: HttpRequest,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    assigned_to: Optional[str] = Form(None, alias="assignedTo"),
):
    """
    Create a task from a multipart form.

    Up to three files may be sent in the `documents` field; extra files
    are ignored.
    """
    user = require_auth(request)
    data = TaskFormData(
        title=title,
        description=description,
        status=status,
        priority=priority,
        due_date=due_date,
        assigned_to=assigned_to,
    )
    return services.create_task(user, data, uploaded_documents(request))


@router.put("/{task_id}", response=TaskOut, auth=None)
def update_task(
    request: HttpRequest,
    task_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    assigned_to: Optional[str] = Form(None, alias="assignedTo"),
):
    """
    Replace a task's fields. Assignee or admin.

    New `documents` are appended after the existing ones; anything past
    three attachments in total is dropped.
    """
    user = require_auth(request)
    task = get_task_for(user, task_id)
    data = TaskFormData(
        title=title,
        description=description,
        status=status,
        priority=priority,
        due_date=due_date,
        assigned_to=assigned_to,
    )
    return services.update_task(task, data, uploaded_documents(request))


@router.delete("/{task_id}", response=MessageOut, auth=None)
def delete_task(request: HttpRequest, task_id: str):
    """Delete a task and its attachments. Assignee or admin."""
    user = require_auth(request)
    task = get_task_for(user, task_id)
    services.delete_task(task)
    return {"message": "Task removed"}


@router.delete("/{task_id}/documents/{doc_id}", response=MessageOut, auth=None)
def delete_document(request: HttpRequest, task_id: str, doc_id: str):
    """Delete one attachment of a task. Assignee or admin."""
    user = require_auth(request)
    task = get_task_for(user, task_id)
    if not services.delete_task_attachment(task, doc_id):
        raise HttpError(404, "Document not found")
    return {"message": "Document removed"}
