"""
Lambda Task Backend - Async execution via AWS SQS + Lambda.

Messages go to the queue named by settings.TASK_QUEUE_URL; the queue
triggers lambda_handlers.sqs_task_handler, which decodes them with
decode_message and runs the handler from the local registry.
"""

import json
import uuid
import logging
from typing import Any, Dict, Tuple

from django.conf import settings

from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)

SQS_MAX_DELAY_SECONDS = 900


def encode_message(task_id: str, task_name: str, payload: Dict[str, Any]) -> str:
    return json.dumps({"task_id": task_id, "task_name": task_name, "payload": payload})


def decode_message(body: str) -> Tuple[str, str, Dict[str, Any]]:
    """
    Returns (task_id, task_name, payload).

    Raises:
        ValueError: body is not JSON or has no task_name.
    """
    message = json.loads(body)
    if not isinstance(message, dict) or not message.get("task_name"):
        raise ValueError("Task message has no task_name")
    return message.get("task_id", "unknown"), message["task_name"], message.get("payload") or {}


class LambdaTaskService(TaskServiceInterface):
    """Send tasks to SQS for the queue-triggered Lambda consumer."""

    def __init__(self, sqs_client=None):
        self._sqs_client = sqs_client
        self.queue_url = getattr(settings, 'TASK_QUEUE_URL', '')

    @property
    def sqs_client(self):
        if self._sqs_client is None:
            import boto3
            self._sqs_client = boto3.client('sqs', region_name=settings.AWS_REGION)
        return self._sqs_client

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        if not self.queue_url:
            raise RuntimeError("TASK_QUEUE_URL is not set; cannot use the lambda task backend")

        task_id = str(uuid.uuid4())
        response = self.sqs_client.send_message(
            QueueUrl=self.queue_url,
            MessageBody=encode_message(task_id, task_name, payload),
            DelaySeconds=min(max(delay_seconds, 0), SQS_MAX_DELAY_SECONDS),
        )
        logger.info(
            f"[LAMBDA] Queued {task_name} (id={task_id}, MessageId={response['MessageId']})"
        )
        return task_id
