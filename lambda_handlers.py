"""
Entry points for AWS Lambda.

- sqs_task_handler: background work queued by the lambda task backend
- api_handler: HTTP requests from API Gateway, served through Mangum
"""

import os
import logging

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

import django
django.setup()

logger = logging.getLogger(__name__)


def sqs_task_handler(event, context):
    """
    Run queued tasks from an SQS batch.

    Failed records are reported back as batchItemFailures so SQS retries
    only those (the event source mapping must enable
    ReportBatchItemFailures). Unknown task names are logged and dropped.
    """
    from apps.core.backends.lambda_backend import decode_message
    from apps.core.backends.local_backend import TASK_HANDLERS

    failures = []
    for record in event.get('Records', []):
        message_id = record.get('messageId')
        try:
            task_id, task_name, payload = decode_message(record['body'])
        except (KeyError, ValueError) as e:
            logger.error(f"Dropping malformed task message {message_id}: {e}")
            continue

        handler = TASK_HANDLERS.get(task_name)
        if handler is None:
            logger.error(f"No handler for task {task_name} (id={task_id})")
            continue

        try:
            result = handler(**payload)
            logger.info(f"Task {task_name} (id={task_id}) completed: {result}")
        except Exception as e:
            logger.exception(f"Task {task_name} (id={task_id}) failed: {e}")
            failures.append({'itemIdentifier': message_id})

    return {'batchItemFailures': failures}


def api_handler(event, context):
    from config.asgi import lambda_handler
    return lambda_handler(event, context)
