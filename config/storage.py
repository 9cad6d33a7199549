"""
Storage configuration for task attachments.
Supports AWS S3 for production and local disk for development.
"""
import os
from pathlib import Path

# Check if S3 should be used
USE_S3 = os.getenv('USE_S3_STORAGE', 'false').lower() == 'true'

STATICFILES_BACKEND = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}


def get_storage_settings(base_dir: Path) -> dict:
    """
    Returns storage-related settings based on environment configuration.
    
    Args:
        base_dir: The BASE_DIR from Django settings
        
    Returns:
        Dictionary of storage settings to be merged into Django settings
    """
    if USE_S3:
        # Production: attachments live in a private bucket
        return {
            'STORAGES': {
                'default': {'BACKEND': 'storages.backends.s3.S3Storage'},
                'staticfiles': STATICFILES_BACKEND,
            },
            'AWS_ACCESS_KEY_ID': os.getenv('AWS_ACCESS_KEY_ID'),
            'AWS_SECRET_ACCESS_KEY': os.getenv('AWS_SECRET_ACCESS_KEY'),
            'AWS_STORAGE_BUCKET_NAME': os.getenv('AWS_STORAGE_BUCKET_NAME', 'tasktracker-uploads'),
            'AWS_S3_REGION_NAME': os.getenv('AWS_S3_REGION_NAME', 'us-east-1'),
            'AWS_S3_FILE_OVERWRITE': False,
            'AWS_DEFAULT_ACL': 'private',
            'AWS_S3_CUSTOM_DOMAIN': os.getenv('AWS_S3_CUSTOM_DOMAIN') or None,
            'AWS_QUERYSTRING_AUTH': True,  # Use signed URLs for private files
            'MEDIA_URL': '/uploads/',
            'MEDIA_ROOT': base_dir / 'uploads',
        }
    else:
        # Development: files are written under <base>/uploads and served at /uploads/
        return {
            'STORAGES': {
                'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
                'staticfiles': STATICFILES_BACKEND,
            },
            'MEDIA_URL': '/uploads/',
            'MEDIA_ROOT': Path(os.getenv('UPLOADS_DIR', base_dir / 'uploads')),
        }


def is_s3_enabled() -> bool:
    """Check if S3 storage is enabled."""
    return USE_S3
