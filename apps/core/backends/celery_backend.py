"""
Celery Task Backend - Async execution via Celery + Redis.

Usage:
    Set TASK_BACKEND=celery in your .env file.
    Requires Redis and Celery worker running.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


# Task name -> (Celery task path, payload keys passed as positional args)
TASK_MAP = {
    "check_due_keywords": ("apps.seo.tasks.check_due_keywords", []),
    "check_keyword_ranking": ("apps.seo.tasks.check_keyword_ranking", ["keyword_id"]),
    "cleanup_serpapi_keys": ("apps.seo.tasks.cleanup_serpapi_keys", []),
    "reset_free_minutes": ("apps.telephony.tasks.reset_free_minutes", []),
    "renew_phone_numbers": ("apps.telephony.tasks.renew_phone_numbers", []),
}


def _get_celery_task(task_name: str):
    """Get the Celery task function for a task name."""
    if task_name not in TASK_MAP:
        raise ValueError(f"No Celery task mapped for: {task_name}")

    from celery import current_app
    return current_app.tasks.get(TASK_MAP[task_name][0])


class CeleryTaskService(TaskServiceInterface):
    """Execute tasks via Celery + Redis."""

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Queue task via Celery."""
        task_id = str(uuid.uuid4())

        logger.info(f"[CELERY] Queueing task {task_name} (id={task_id})")

        task = _get_celery_task(task_name)

        if task is None:
            logger.error(f"[CELERY] Task not found: {task_name}")
            raise ValueError(f"Celery task not found: {task_name}")

        args = [payload.get(key) for key in TASK_MAP[task_name][1]]

        if delay_seconds > 0:
            task.apply_async(args=args, countdown=delay_seconds, task_id=task_id)
        else:
            task.apply_async(args=args, task_id=task_id)

        return task_id
