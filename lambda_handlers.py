"""
Lambda Handlers - Entry points for AWS Lambda functions.

1. SQS task processing - consumes the task queue fed by LambdaTaskService
2. Django API (via Mangum) - HTTP requests through API Gateway
3. Scheduled events - EventBridge triggers mirroring the Celery beat schedule
"""

import os
import sys
import json
import logging

# Ensure the project root is in the path for Lambda
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# Configure Django before importing any models
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

import django
django.setup()

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def _ok(body: dict) -> dict:
    return {'statusCode': 200, 'body': json.dumps(body)}


def sqs_task_handler(event, context):
    """
    AWS Lambda handler for SQS task messages.

    Event structure:
    {
        "Records": [
            {"body": "{\"task_id\": \"...\", \"task_name\": \"...\", \"payload\": {...}}"}
        ]
    }

    A failing message re-raises so SQS retries it and eventually moves it
    to the dead-letter queue.
    """
    from apps.core.backends.local_backend import TASK_HANDLERS

    processed = 0
    skipped = 0

    for record in event.get('Records', []):
        message = json.loads(record['body'])
        task_id = message.get('task_id', 'unknown')
        task_name = message['task_name']

        handler = TASK_HANDLERS.get(task_name)
        if handler is None:
            logger.error(f"No handler for task: {task_name} (id={task_id})")
            skipped += 1
            continue

        logger.info(f"Processing task {task_name} (id={task_id})")
        try:
            result = handler(**message.get('payload', {}))
        except Exception as e:
            logger.exception(f"Task {task_name} (id={task_id}) failed: {e}")
            raise
        logger.info(f"Task {task_name} completed: {result}")
        processed += 1

    return _ok({'processed': processed, 'skipped': skipped})


# =============================================================================
# Scheduled handlers (EventBridge)
# =============================================================================

def scheduled_check_due_keywords(event, context):
    """
    Schedule: hourly.

    Fans out one check_keyword_ranking task per due keyword.
    """
    from apps.core.task_service import TaskService
    from apps.seo.keyword_service import keywords_due_for_check

    logger.info("Running scheduled check_due_keywords")
    queued = 0
    for keyword_id in keywords_due_for_check().values_list('id', flat=True):
        TaskService.check_keyword_ranking(keyword_id)
        queued += 1

    return _ok({'keywords_queued': queued})


def scheduled_cleanup_serpapi_keys(event, context):
    """Schedule: daily."""
    from apps.seo import api_key_service

    logger.info("Running scheduled cleanup_serpapi_keys")
    return _ok({'deleted_count': api_key_service.cleanup_old_records()})


def scheduled_reset_free_minutes(event, context):
    """Schedule: 1st of each month."""
    from apps.telephony import billing_service

    logger.info("Running scheduled reset_free_minutes")
    return _ok({'users_reset': billing_service.reset_free_minutes()})


def scheduled_renew_phone_numbers(event, context):
    """Schedule: daily."""
    from apps.telephony import billing_service

    logger.info("Running scheduled renew_phone_numbers")
    return _ok(billing_service.renew_phone_numbers())


# =============================================================================
# Django API Handler (Mangum)
# =============================================================================

def api_handler(event, context):
    """HTTP requests via API Gateway, wrapped by Mangum."""
    from config.asgi import lambda_handler
    return lambda_handler(event, context)
