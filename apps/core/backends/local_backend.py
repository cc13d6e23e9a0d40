"""
Local Task Backend - Synchronous execution for development.

This backend executes tasks immediately in the same process.
No Redis, SQS, or external dependencies required.

Usage:
    Set TASK_BACKEND=local in your .env file.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


# Task handler registry - maps task names to handler functions
TASK_HANDLERS = {}


def register_handler(task_name: str):
    """Decorator to register a task handler."""
    def decorator(func):
        TASK_HANDLERS[task_name] = func
        return func
    return decorator


class LocalTaskService(TaskServiceInterface):
    """
    Execute tasks synchronously in the same process.

    Tasks run in the same request cycle, so they block the response.
    Only use for development and tests.
    """

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Execute task synchronously."""
        task_id = str(uuid.uuid4())

        logger.info(f"[LOCAL] Executing task {task_name} (id={task_id})")

        if delay_seconds > 0:
            logger.warning(
                f"[LOCAL] delay_seconds={delay_seconds} ignored in local backend"
            )

        handler = TASK_HANDLERS.get(task_name)
        if handler:
            try:
                result = handler(**payload)
                logger.info(f"[LOCAL] Task {task_name} completed: {result}")
            except Exception as e:
                logger.exception(f"[LOCAL] Task {task_name} failed: {e}")
                raise
        else:
            logger.warning(f"[LOCAL] No handler registered for task: {task_name}")

        return task_id


# =============================================================================
# Task Handlers - shared with the SQS consumer in lambda_handlers.py
# =============================================================================

@register_handler("check_due_keywords")
def handle_check_due_keywords():
    """Fan out one rank check per due keyword."""
    from apps.seo.keyword_service import keywords_due_for_check
    from apps.core.task_service import TaskService

    keyword_ids = list(keywords_due_for_check().values_list('id', flat=True))
    for keyword_id in keyword_ids:
        # In local mode, this executes synchronously
        TaskService.check_keyword_ranking(keyword_id)

    return f"Queued {len(keyword_ids)} keyword checks"


@register_handler("check_keyword_ranking")
def handle_check_keyword_ranking(keyword_id: int):
    from apps.seo import keyword_service
    from apps.seo.api_key_service import NoAvailableApiKeyError
    from apps.seo.models import KeywordTracking
    from apps.seo.serpapi_client import ExternalServiceError

    tracking = KeywordTracking.objects.filter(id=keyword_id).first()
    if tracking is None:
        return f"Keyword {keyword_id} not found. Skipping."

    try:
        checked = keyword_service.check_ranking(tracking.org_id, tracking.id)
    except (NoAvailableApiKeyError, ExternalServiceError) as e:
        logger.warning(f"[LOCAL] Rank check for keyword {keyword_id} failed: {e}")
        return f"Keyword {keyword_id} not checked: {e}"

    if checked is None:
        return f"Keyword {keyword_id} not found. Skipping."
    return f"Keyword {keyword_id} rank: {checked[1].rank}"


@register_handler("cleanup_serpapi_keys")
def handle_cleanup_serpapi_keys():
    from apps.seo import api_key_service
    count = api_key_service.cleanup_old_records()
    return f"Removed {count} expired key rows"


@register_handler("reset_free_minutes")
def handle_reset_free_minutes():
    from apps.telephony import billing_service
    count = billing_service.reset_free_minutes()
    return f"Reset free minutes for {count} users"


@register_handler("renew_phone_numbers")
def handle_renew_phone_numbers():
    from apps.telephony import billing_service
    result = billing_service.renew_phone_numbers()
    return f"Renewed {result['renewed']} numbers, deactivated {result['deactivated']}"
