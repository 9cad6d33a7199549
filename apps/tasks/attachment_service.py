"""
Attachment service for task documents.

Validates uploads, enforces the per-task cap and removes stored files.
Storage is whatever Django's default storage is configured to be
(local disk under MEDIA_ROOT, or S3 via django-storages).
"""
import logging
import mimetypes
import os
from typing import Iterable, List, Optional, Tuple

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import UploadedFile

logger = logging.getLogger(__name__)

MAX_ATTACHMENTS = 3
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB

# Allowed extensions and the MIME types browsers send for them
ALLOWED_TYPES = {
    '.pdf': {'application/pdf'},
    '.doc': {'application/msword'},
    '.docx': {'application/vnd.openxmlformats-officedocument.wordprocessingml.document'},
    '.jpg': {'image/jpeg', 'image/pjpeg'},
    '.jpeg': {'image/jpeg', 'image/pjpeg'},
    '.png': {'image/png'},
    '.gif': {'image/gif'},
}

# Some clients send no useful type for office documents
GENERIC_MIME_TYPES = {'', 'application/octet-stream'}


def _extension(filename: str) -> str:
    return os.path.splitext(filename or '')[1].lower()


def validate_upload_file(file: UploadedFile) -> Tuple[bool, Optional[str]]:
    """
    Validate an uploaded task document.
    
    Returns:
        Tuple of (is_valid, error_message)
    """
    if file.size > MAX_FILE_SIZE:
        return False, (
            f"{file.name}: file too large. "
            f"Maximum size is {MAX_FILE_SIZE // (1024 * 1024)} MB"
        )
    
    ext = _extension(file.name)
    allowed_mimes = ALLOWED_TYPES.get(ext)
    if allowed_mimes is None:
        return False, (
            f"{file.name}: invalid file type. "
            "Allowed: PDF, DOC, DOCX, JPG, PNG, GIF"
        )
    
    mime_type = (file.content_type or '').lower()
    if mime_type not in allowed_mimes and mime_type not in GENERIC_MIME_TYPES:
        return False, f"{file.name}: content type {mime_type} does not match its extension"
    
    return True, None


def resolve_mimetype(file: UploadedFile) -> str:
    """Declared MIME type, or the one implied by the extension when none was sent."""
    mime_type = (file.content_type or '').lower()
    if mime_type in GENERIC_MIME_TYPES:
        guessed, _ = mimetypes.guess_type(file.name)
        return guessed or 'application/octet-stream'
    return mime_type


def accept_uploads(existing_count: int, files: Optional[Iterable[UploadedFile]]) -> List[UploadedFile]:
    """
    Return the uploads that fit under MAX_ATTACHMENTS after existing_count.
    
    Uploads beyond the cap are dropped without error.
    """
    files = list(files or [])
    room = max(MAX_ATTACHMENTS - existing_count, 0)
    kept = files[:room]
    dropped = len(files) - len(kept)
    if dropped:
        logger.info(
            f"Dropped {dropped} upload(s) over the {MAX_ATTACHMENTS}-attachment cap"
        )
    return kept


def remove_stored_files(names: Iterable[str]) -> int:
    """
    Delete stored files by storage name.
    
    Missing files are skipped. Any storage error (disk or S3) is logged and
    skipped so one bad file does not keep the others around.
    
    Returns:
        Number of files actually removed.
    """
    removed = 0
    for name in names:
        if not name:
            continue
        try:
            if default_storage.exists(name):
                default_storage.delete(name)
                removed += 1
        except Exception:
            logger.exception(f"Could not remove stored file {name}")
    return removed
