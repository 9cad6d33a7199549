"""
Background work that must run outside a request's database transaction.

Callers go through the TaskService facade; the backend that actually
runs the work is picked by settings.TASK_BACKEND:

    local   run in-process, synchronously (development, tests)
    celery  queue on the Celery broker
    lambda  send to SQS for lambda_handlers.sqs_task_handler

Example:
    from apps.core.task_service import TaskService
    TaskService.remove_stored_files(["3f2a9c...c1.pdf"])
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from django.conf import settings

logger = logging.getLogger(__name__)

BACKENDS = {
    'local': 'apps.core.backends.local_backend.LocalTaskService',
    'celery': 'apps.core.backends.celery_backend.CeleryTaskService',
    'lambda': 'apps.core.backends.lambda_backend.LambdaTaskService',
}


class TaskServiceInterface(ABC):
    """A way of running named tasks with a JSON-serializable payload."""

    @abstractmethod
    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """
        Hand a task to the backend.

        Args:
            task_name: key in the handler registry
            payload: keyword arguments for the handler
            delay_seconds: earliest start, where the backend supports it

        Returns:
            Task id for log correlation
        """


def _get_backend() -> TaskServiceInterface:
    from django.utils.module_loading import import_string

    name = getattr(settings, 'TASK_BACKEND', 'local')
    path = BACKENDS.get(name)
    if path is None:
        raise ValueError(f"Unknown TASK_BACKEND: {name}")
    return import_string(path)()


class TaskService:
    """One static method per kind of background work."""

    @staticmethod
    def remove_stored_files(names: List[str]) -> str:
        """Delete stored attachment files whose rows are already gone."""
        names = list(names)
        logger.info(f"Queueing removal of {len(names)} stored file(s)")
        return _get_backend().send_task(
            task_name="remove_stored_files",
            payload={"names": names},
        )
