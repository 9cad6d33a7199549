"""
In-process task backend, and the handler registry every backend shares.

Handlers registered here are what LocalTaskService runs directly and
what the SQS consumer looks up by task name.
"""

import uuid
import logging
from typing import Any, Callable, Dict

from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)

TASK_HANDLERS: Dict[str, Callable[..., Any]] = {}


def register_handler(task_name: str):
    def decorator(func):
        TASK_HANDLERS[task_name] = func
        return func
    return decorator


class LocalTaskService(TaskServiceInterface):
    """Runs the handler immediately; errors propagate to the caller."""

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        task_id = str(uuid.uuid4())
        if delay_seconds > 0:
            logger.warning(f"[LOCAL] delay_seconds={delay_seconds} ignored for {task_name}")

        handler = TASK_HANDLERS.get(task_name)
        if handler is None:
            logger.warning(f"[LOCAL] No handler registered for task: {task_name}")
            return task_id

        result = handler(**payload)
        logger.info(f"[LOCAL] {task_name} (id={task_id}): {result}")
        return task_id


@register_handler("remove_stored_files")
def handle_remove_stored_files(names: list):
    from apps.tasks.attachment_service import remove_stored_files
    removed = remove_stored_files(names)
    return f"removed {removed} of {len(names)} file(s)"
