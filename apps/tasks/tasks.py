from celery import shared_task
import logging

from .attachment_service import remove_stored_files

logger = logging.getLogger(__name__)


@shared_task
def remove_stored_files_task(names):
    """
    Remove stored attachment files whose rows were deleted.
    """
    removed = remove_stored_files(names)
    logger.info(f"Removed {removed} of {len(names)} stored file(s)")
    return removed
