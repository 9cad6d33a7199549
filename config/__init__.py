"""
Tracker project package.

Loads the Celery app on Django startup so that ``@shared_task``
definitions bind to it when TASK_BACKEND=celery.
"""
from .celery import app as celery_app

__all__ = ('celery_app',)
