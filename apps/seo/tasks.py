"""Celery tasks for the SEO app."""
import logging

from celery import shared_task

from . import api_key_service, keyword_service
from .api_key_service import NoAvailableApiKeyError
from .models import KeywordTracking
from .serpapi_client import ExternalServiceError

logger = logging.getLogger(__name__)


@shared_task
def check_due_keywords():
    """Run every keyword rank check that is due."""
    result = keyword_service.check_due_keywords()
    logger.info(f"Due keyword checks finished: {result}")
    return result


@shared_task
def check_keyword_ranking(keyword_id):
    """
    Check one keyword on demand.
    """
    try:
        tracking = KeywordTracking.objects.get(id=keyword_id)
    except KeywordTracking.DoesNotExist:
        logger.error(f"KeywordTracking {keyword_id} not found.")
        return None

    try:
        tracking, result = keyword_service.check_ranking(tracking.org_id, tracking.id)
    except (NoAvailableApiKeyError, ExternalServiceError) as e:
        logger.warning(f"Rank check for keyword {keyword_id} failed: {e}")
        return None
    return result.rank


@shared_task
def cleanup_serpapi_keys():
    return api_key_service.cleanup_old_records()
