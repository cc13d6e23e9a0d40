"""
SerpApi key rotation.

Free SerpApi plans allow a fixed number of searches per month, so the
workspace pools several keys and spends them in id order. Each key row
counts the calls made in the last WINDOW_DAYS days.

Callers that are about to hit SerpApi should use reserve_api_key(): it
locks the candidate row and adds the calls in the same transaction, so
two concurrent workers can never push a key past LIMIT. Calls that end
up not being made are handed back with release_api_key().
"""
import logging
from datetime import timedelta
from typing import List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .dtos import ApiKeyUsageDTO
from .models import SerpApiKey

logger = logging.getLogger(__name__)

WINDOW_DAYS = 30
LIMIT = 249
HIGH_USAGE = 200
MEDIUM_USAGE = 100


class NoAvailableApiKeyError(Exception):
    """Every key in the pool has used up its monthly allowance."""

    def __init__(self, message: str = None):
        super().__init__(
            message or f"No available SerpApi keys. All keys have reached their monthly limit ({LIMIT} calls)."
        )


def window_start():
    return timezone.now() - timedelta(days=WINDOW_DAYS)


def _in_window():
    return SerpApiKey.objects.filter(date_created__gte=window_start())


def usage_status(count: int) -> str:
    if count >= LIMIT:
        return 'LIMIT_REACHED'
    if count >= HIGH_USAGE:
        return 'HIGH_USAGE'
    if count >= MEDIUM_USAGE:
        return 'MEDIUM_USAGE'
    return 'LOW_USAGE'


# =============================================================================
# Selection
# =============================================================================

def get_available_api_key() -> Optional[str]:
    """
    First key (by id) with calls left in the current window.

    Read-only; use reserve_api_key() when the calls are about to be made.
    """
    row = _in_window().filter(count__lt=LIMIT).order_by('id').first()
    return row.api_key if row else None


def reserve_api_key(calls: int = 1) -> str:
    """
    Claim `calls` searches on the first key that can still afford them.

    The row is locked with SELECT ... FOR UPDATE SKIP LOCKED so concurrent
    reservations move on to the next key instead of waiting, and the counter
    is bumped with an F() expression inside the same transaction.

    Raises:
        ValueError: calls is not positive.
        NoAvailableApiKeyError: no key can take `calls` more searches.
    """
    if calls < 1:
        raise ValueError("calls must be at least 1")

    with transaction.atomic():
        row = (
            _in_window()
            .select_for_update(skip_locked=True)
            .filter(count__lte=LIMIT - calls)
            .order_by('id')
            .first()
        )
        if row is None:
            raise NoAvailableApiKeyError()

        SerpApiKey.objects.filter(pk=row.pk).update(
            count=F('count') + calls,
            date_updated=timezone.now(),
        )

    logger.info(f"Reserved {calls} SerpApi call(s) on key #{row.pk}")
    return row.api_key


def release_api_key(api_key: str, calls: int = 1) -> bool:
    """
    Give back reserved calls that were never made.

    Returns False when there is no in-window row to credit, or when it has
    fewer recorded calls than `calls`.
    """
    if calls < 1:
        return False

    with transaction.atomic():
        row = (
            _in_window()
            .select_for_update()
            .filter(api_key=api_key)
            .order_by('-id')
            .first()
        )
        if row is None:
            return False
        updated = SerpApiKey.objects.filter(pk=row.pk, count__gte=calls).update(
            count=F('count') - calls,
            date_updated=timezone.now(),
        )

    if not updated:
        logger.warning(f"Nothing to release on key #{row.pk}: fewer than {calls} call(s) recorded")
        return False

    logger.info(f"Released {calls} SerpApi call(s) on key #{row.pk}")
    return True


def increment_usage(api_key: str, calls: int = 1) -> None:
    """
    Record calls made outside a reservation.

    Credits the newest in-window row for the key, or starts a new window
    row when the key has aged out.
    """
    with transaction.atomic():
        row = (
            _in_window()
            .select_for_update()
            .filter(api_key=api_key)
            .order_by('-id')
            .first()
        )
        if row is not None:
            SerpApiKey.objects.filter(pk=row.pk).update(
                count=F('count') + calls,
                date_updated=timezone.now(),
            )
        else:
            SerpApiKey.objects.create(api_key=api_key, count=calls)


# =============================================================================
# Administration
# =============================================================================

def add_api_key(api_key: str) -> bool:
    """Add a key to the rotation. Returns False if it is already there."""
    api_key = (api_key or '').strip()
    if not api_key:
        raise ValueError("API key is required")
    if SerpApiKey.objects.filter(api_key=api_key).exists():
        return False
    SerpApiKey.objects.create(api_key=api_key, count=0)
    logger.info("Added SerpApi key to rotation")
    return True


def usage_stats() -> List[ApiKeyUsageDTO]:
    rows = _in_window().order_by('-count', 'id')
    return [
        ApiKeyUsageDTO(
            api_key=row.api_key,
            count=row.count,
            date_created=row.date_created,
            date_updated=row.date_updated,
            status=usage_status(row.count),
        )
        for row in rows
    ]


def cleanup_old_records() -> int:
    """Delete rows whose window has closed."""
    deleted, _ = SerpApiKey.objects.filter(date_created__lt=window_start()).delete()
    if deleted:
        logger.info(f"Removed {deleted} expired SerpApi key row(s)")
    return deleted
