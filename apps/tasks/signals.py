import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_delete
from django.dispatch import receiver

from apps.core.task_service import TaskService
from .models import TaskAttachment

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=TaskAttachment)
def remove_attachment_file(sender, instance, **kwargs):
    """
    Schedule removal of the stored file once the row deletion commits.

    Fires for explicit attachment deletes and for cascades from Task
    deletion. A rolled-back delete never touches the file.
    """
    name = instance.file.name
    if not name:
        return
    logger.info(f"Scheduling removal of {name} after commit")
    transaction.on_commit(partial(TaskService.remove_stored_files, [name]), robust=True)
