"""
Keyword rank tracking.

A tracked keyword remembers its current and previous Google position.
Every successful check shifts the stored current rank into previous_rank
and records the movement as rank_change = previous_rank - current_rank,
so a positive change means the site moved up.
"""
import logging
from dataclasses import asdict
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.activity.services import log_activity, ActivityType
from apps.clients.models import Client
from apps.core.querying import apply_sorting
from . import api_key_service
from .dtos import KeywordTrackingIn, RankingResult
from .models import KeywordTracking, KeywordRankHistory, CheckFrequency
from .serpapi_client import search_google, ExternalServiceError

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ('created_at', 'updated_at', 'keyword', 'current_rank', 'last_checked')
DEFAULT_LIMIT = 50
HISTORY_LIMIT = 30

FREQUENCY_INTERVALS = {
    CheckFrequency.DAILY: timedelta(days=1),
    CheckFrequency.WEEKLY: timedelta(weeks=1),
    CheckFrequency.MONTHLY: timedelta(days=30),
}

UPDATABLE_FIELDS = (
    'keyword', 'target_url', 'search_engine', 'country',
    'location', 'check_frequency', 'is_active', 'notes',
)


class DuplicateKeywordError(ValueError):
    """The keyword is already tracked for this client."""


# =============================================================================
# CRUD
# =============================================================================

def list_keywords(
    org_id: UUID,
    client_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
) -> Tuple[List[KeywordTracking], dict]:
    queryset = KeywordTracking.objects.filter(org_id=org_id)
    if client_id:
        queryset = queryset.filter(client_id=client_id)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)
    if search:
        queryset = queryset.filter(Q(keyword__icontains=search) | Q(target_url__icontains=search))

    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    offset = max(offset or 0, 0)

    total = queryset.count()
    items = list(apply_sorting(queryset, sort_by, sort_dir, SORTABLE_FIELDS)[offset:offset + limit])
    return items, {
        'total': total,
        'limit': limit,
        'offset': offset,
        'hasMore': offset + limit < total,
    }


def get_keyword(org_id: UUID, keyword_id: int) -> Optional[KeywordTracking]:
    try:
        return KeywordTracking.objects.get(org_id=org_id, id=keyword_id)
    except KeywordTracking.DoesNotExist:
        return None


def create_keyword(org_id: UUID, user, payload: KeywordTrackingIn) -> KeywordTracking:
    """
    Start tracking a keyword for one of the workspace's clients.

    Raises:
        ValueError: required fields missing, unknown client or frequency.
        DuplicateKeywordError: same user, client, keyword, engine and country.
    """
    keyword = (payload.keyword or '').strip()
    target_url = (payload.target_url or '').strip()
    if not payload.client_id or not keyword or not target_url:
        raise ValueError("client_id, keyword, and target_url are required")
    if payload.check_frequency not in CheckFrequency.values:
        raise ValueError(f"check_frequency must be one of: {', '.join(CheckFrequency.values)}")

    try:
        client = Client.objects.get(org_id=org_id, id=payload.client_id)
    except Client.DoesNotExist:
        raise ValueError("Client not found")

    duplicate = KeywordTracking.objects.filter(
        user=user,
        client=client,
        keyword=keyword,
        search_engine=payload.search_engine,
        country=payload.country,
    ).exists()
    if duplicate:
        raise DuplicateKeywordError("Keyword already tracked")

    tracking = KeywordTracking.objects.create(
        org_id=org_id,
        user=user,
        client=client,
        keyword=keyword,
        target_url=target_url,
        search_engine=payload.search_engine,
        country=payload.country,
        location=payload.location,
        check_frequency=payload.check_frequency,
        notes=payload.notes,
    )

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.KEYWORD_TRACKED,
        title="Keyword tracking started",
        description=f'Tracking "{keyword}" for {client.name}',
        performed_by=user,
        metadata={"keyword_tracking_id": tracking.id, "client_id": client.id},
    )
    return tracking


def update_keyword(org_id: UUID, keyword_id: int, data: dict) -> Optional[KeywordTracking]:
    tracking = get_keyword(org_id, keyword_id)
    if tracking is None:
        return None

    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
    if not changes:
        raise ValueError("No fields to update")
    if 'check_frequency' in changes and changes['check_frequency'] not in CheckFrequency.values:
        raise ValueError(f"check_frequency must be one of: {', '.join(CheckFrequency.values)}")

    for attr, value in changes.items():
        setattr(tracking, attr, value)
    tracking.save()
    return tracking


def delete_keyword(org_id: UUID, keyword_id: int, user=None) -> bool:
    tracking = get_keyword(org_id, keyword_id)
    if tracking is None:
        return False

    keyword = tracking.keyword
    tracking.delete()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.KEYWORD_DELETED,
        title="Keyword tracking removed",
        description=f'Stopped tracking "{keyword}"',
        performed_by=user,
        metadata={"keyword_tracking_id": keyword_id},
    )
    return True


# =============================================================================
# Ranking
# =============================================================================

def update_ranking(
    tracking: KeywordTracking,
    current_rank: Optional[int],
    search_volume: Optional[int] = None,
    competition_level: Optional[str] = None,
    cpc=None,
    notes: Optional[str] = None,
) -> KeywordTracking:
    """
    Store a freshly fetched rank.

    previous_rank becomes the stored current rank; rank_change is only
    set when both ranks are known. A history row is written whenever the
    new rank is not None.
    """
    with transaction.atomic():
        locked = KeywordTracking.objects.select_for_update().get(pk=tracking.pk)

        previous_rank = locked.current_rank
        rank_change = None
        if current_rank is not None and previous_rank is not None:
            rank_change = previous_rank - current_rank

        locked.current_rank = current_rank
        locked.previous_rank = previous_rank
        locked.rank_change = rank_change
        locked.last_checked = timezone.now()
        locked.save(update_fields=[
            'current_rank', 'previous_rank', 'rank_change', 'last_checked', 'updated_at',
        ])

        if current_rank is not None:
            KeywordRankHistory.objects.create(
                keyword_tracking=locked,
                rank_position=current_rank,
                search_volume=search_volume,
                competition_level=competition_level,
                cpc=cpc,
                notes=notes,
            )

    if rank_change:
        direction = "up" if rank_change > 0 else "down"
        log_activity(
            org_id=locked.org_id,
            activity_type=ActivityType.KEYWORD_RANK_CHANGED,
            title="Keyword rank changed",
            description=(
                f'"{locked.keyword}" moved {direction} {abs(rank_change)} '
                f'position{"s" if abs(rank_change) > 1 else ""} to #{current_rank}'
            ),
            metadata={
                "keyword_tracking_id": locked.id,
                "previous_rank": previous_rank,
                "current_rank": current_rank,
            },
        )
    return locked


def fetch_ranking(keyword: str, target_url: str, country: str = 'us') -> RankingResult:
    """
    Look up where `target_url` ranks for `keyword` in the top 100 results.

    One SerpApi call is reserved up front and handed back if the request
    never reaches SerpApi.

    Raises:
        NoAvailableApiKeyError: the key pool is exhausted.
        ExternalServiceError: SerpApi failed or returned no organic results.
    """
    api_key = api_key_service.reserve_api_key(1)
    try:
        data = search_google(keyword, country, api_key)
    except ExternalServiceError:
        api_key_service.release_api_key(api_key, 1)
        raise

    organic = data.get('organic_results')
    if not organic:
        raise ExternalServiceError("No organic results found.")

    needle = target_url.lower()
    match = next(
        (r for r in organic if r.get('link') and needle in r['link'].lower()),
        None,
    )
    if match is None:
        return RankingResult(
            rank=None,
            raw_data={
                'keyword': keyword,
                'target_url': target_url,
                'position': None,
                'message': "URL not found in top 100 results.",
            },
        )

    return RankingResult(
        rank=match.get('position'),
        title=match.get('title'),
        snippet=match.get('snippet'),
        url=match.get('link'),
        raw_data={
            'keyword': keyword,
            'target_url': target_url,
            'position': match.get('position'),
            'title': match.get('title'),
            'snippet': match.get('snippet'),
            'link': match.get('link'),
        },
    )


def _check(tracking: KeywordTracking, label: str) -> Tuple[KeywordTracking, RankingResult]:
    result = fetch_ranking(tracking.keyword, tracking.target_url, tracking.country)
    found = f"Found at position {result.rank}" if result.rank else "Not found in top 100 results"
    updated = update_ranking(
        tracking,
        result.rank,
        search_volume=result.search_volume,
        competition_level=result.competition_level,
        cpc=result.cpc,
        notes=f"{label} on {timezone.now().isoformat()}. {found}",
    )
    return updated, result


def check_ranking(org_id: UUID, keyword_id: int) -> Optional[Tuple[KeywordTracking, RankingResult]]:
    """Manual check of one keyword; None if it is not in the workspace."""
    tracking = get_keyword(org_id, keyword_id)
    if tracking is None:
        return None
    return _check(tracking, "Manual check")


def bulk_check(org_id: UUID, ids: List[int]) -> dict:
    """Check several keywords, collecting per-id failures instead of stopping."""
    results, errors = [], []
    for keyword_id in ids:
        tracking = get_keyword(org_id, keyword_id)
        if tracking is None:
            errors.append({'id': keyword_id, 'error': 'Keyword tracking not found'})
            continue
        try:
            _, result = _check(tracking, "Bulk check")
        except (api_key_service.NoAvailableApiKeyError, ExternalServiceError) as e:
            logger.warning(f"Bulk rank check failed for keyword {keyword_id}: {e}")
            errors.append({'id': keyword_id, 'error': str(e)})
            continue
        results.append({'id': keyword_id, 'success': True, 'ranking_data': asdict(result)})

    return {
        'results': results,
        'errors': errors,
        'summary': {
            'total': len(ids),
            'successful': len(results),
            'failed': len(errors),
        },
    }


def rank_history(org_id: UUID, keyword_id: int, limit: int = HISTORY_LIMIT) -> Optional[List[KeywordRankHistory]]:
    tracking = get_keyword(org_id, keyword_id)
    if tracking is None:
        return None
    limit = limit if limit and limit > 0 else HISTORY_LIMIT
    return list(tracking.history.all()[:limit])


# =============================================================================
# Scheduled checks
# =============================================================================

def keywords_due_for_check(now=None):
    """Active keywords never checked, or last checked longer ago than their frequency."""
    now = now or timezone.now()
    due = Q(last_checked__isnull=True)
    for frequency, interval in FREQUENCY_INTERVALS.items():
        due |= Q(check_frequency=frequency, last_checked__lt=now - interval)
    return KeywordTracking.objects.filter(is_active=True).filter(due).order_by('last_checked', 'id')


def check_due_keywords() -> dict:
    """
    Run every due check. Stops early once the key pool runs dry.
    """
    checked, failed = 0, 0
    for tracking in keywords_due_for_check():
        try:
            _check(tracking, "Scheduled check")
            checked += 1
        except api_key_service.NoAvailableApiKeyError:
            logger.warning("SerpApi key pool exhausted; postponing remaining rank checks")
            break
        except ExternalServiceError as e:
            logger.warning(f"Scheduled rank check failed for keyword {tracking.id}: {e}")
            failed += 1
    return {'checked': checked, 'failed': failed}
