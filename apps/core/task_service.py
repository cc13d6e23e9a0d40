"""
TaskService - Abstraction layer for async task execution.

This module provides a platform-agnostic interface for executing background tasks.
The actual backend is determined by the TASK_BACKEND environment variable.

Usage:
    from apps.core.task_service import TaskService

    # Queue a rank check for one tracked keyword
    TaskService.check_keyword_ranking(keyword_id=42)

    # Refill monthly calling minutes
    TaskService.reset_free_minutes()

Environment Configuration:
    TASK_BACKEND=local   # Sync execution (development)
    TASK_BACKEND=lambda  # AWS Lambda + SQS (production)
    TASK_BACKEND=celery  # Celery + Redis (fallback)
"""

import os
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

logger = logging.getLogger(__name__)


class TaskServiceInterface(ABC):
    """
    Abstract interface for async task execution.

    Implementations:
    - LocalTaskService: Sync execution for development/testing
    - LambdaTaskService: AWS Lambda + SQS for production
    - CeleryTaskService: Celery + Redis as fallback
    """

    @abstractmethod
    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """
        Queue a task for async execution.

        Args:
            task_name: Identifier for the task handler
            payload: Data to pass to the task
            delay_seconds: Delay before execution (0 = immediate)

        Returns:
            Task ID for tracking
        """
        pass


def _get_backend() -> TaskServiceInterface:
    """Get the configured task backend based on TASK_BACKEND env var."""
    backend = os.getenv('TASK_BACKEND', 'local')

    if backend == 'local':
        from apps.core.backends.local_backend import LocalTaskService
        return LocalTaskService()
    elif backend == 'lambda':
        from apps.core.backends.lambda_backend import LambdaTaskService
        return LambdaTaskService()
    elif backend == 'celery':
        from apps.core.backends.celery_backend import CeleryTaskService
        return CeleryTaskService()
    else:
        raise ValueError(f"Unknown TASK_BACKEND: {backend}")


class TaskService:
    """
    Facade for sending async tasks.

    One static method per task type, delegating to the configured backend.
    """

    @staticmethod
    def check_due_keywords() -> str:
        """
        Queue the sweep over every keyword whose check frequency has elapsed.

        Used by: Hourly schedule.
        """
        logger.info("Queueing check_due_keywords task")
        return _get_backend().send_task(
            task_name="check_due_keywords",
            payload={}
        )

    @staticmethod
    def check_keyword_ranking(keyword_id: int) -> str:
        """
        Queue a rank check for a single tracked keyword.

        Used by: Fan-out from the scheduled keyword sweep.
        """
        logger.info(f"Queueing check_keyword_ranking task for keyword {keyword_id}")
        return _get_backend().send_task(
            task_name="check_keyword_ranking",
            payload={"keyword_id": keyword_id}
        )

    @staticmethod
    def cleanup_serpapi_keys() -> str:
        logger.info("Queueing cleanup_serpapi_keys task")
        return _get_backend().send_task(
            task_name="cleanup_serpapi_keys",
            payload={}
        )

    @staticmethod
    def reset_free_minutes() -> str:
        """
        Queue the monthly free-minute refill.

        Used by: Scheduled job on the 1st of each month.
        """
        logger.info("Queueing reset_free_minutes task")
        return _get_backend().send_task(
            task_name="reset_free_minutes",
            payload={}
        )

    @staticmethod
    def renew_phone_numbers() -> str:
        logger.info("Queueing renew_phone_numbers task")
        return _get_backend().send_task(
            task_name="renew_phone_numbers",
            payload={}
        )
