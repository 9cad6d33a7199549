"""
Celery task backend.

Requires CELERY_BROKER_URL and a worker started with
``celery -A config worker``.
"""

import uuid
import logging
from typing import Any, Dict

from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)

# Task name -> (registered Celery task, payload keys passed positionally)
CELERY_TASKS = {
    "remove_stored_files": ("apps.tasks.tasks.remove_stored_files_task", ("names",)),
}


def _get_celery_task(task_name: str):
    from celery import current_app

    if task_name not in CELERY_TASKS:
        raise ValueError(f"No Celery task mapped for: {task_name}")
    current_app.loader.import_default_modules()
    task = current_app.tasks.get(CELERY_TASKS[task_name][0])
    if task is None:
        raise ValueError(f"Celery task not registered: {CELERY_TASKS[task_name][0]}")
    return task


class CeleryTaskService(TaskServiceInterface):
    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        task = _get_celery_task(task_name)
        task_id = str(uuid.uuid4())
        args = [payload.get(key) for key in CELERY_TASKS[task_name][1]]

        options = {'task_id': task_id}
        if delay_seconds > 0:
            options['countdown'] = delay_seconds
        task.apply_async(args=args, **options)

        logger.info(f"[CELERY] Queued {task_name} (id={task_id})")
        return task_id
