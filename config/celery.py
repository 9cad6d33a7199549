"""
Celery configuration for the task tracker.

Only used when TASK_BACKEND=celery. Workers are started with:
    celery -A config worker -l info
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
