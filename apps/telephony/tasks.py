"""Celery tasks for the calling wallet."""
import logging

from celery import shared_task

from . import billing_service

logger = logging.getLogger(__name__)


@shared_task
def reset_free_minutes():
    """Refill monthly free minutes for every user not yet reset this month."""
    count = billing_service.reset_free_minutes()
    logger.info(f"Free minutes reset for {count} users")
    return count


@shared_task
def renew_phone_numbers():
    result = billing_service.renew_phone_numbers()
    logger.info(f"Phone number renewals: {result}")
    return result
