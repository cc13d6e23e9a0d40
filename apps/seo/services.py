"""
Services for the SEO app: saved keyword ideas and analytics snapshots.

Key rotation, rank tracking and the heatmap live in their own modules
(api_key_service, keyword_service, heatmap_service).
"""
from typing import List, Optional, Tuple

from django.db import IntegrityError, transaction

from .dtos import SavedKeywordIn
from .models import SavedKeyword, AnalyticsSnapshot

SAVED_KEYWORD_MAX_LIMIT = 500
SNAPSHOT_MAX_LIMIT = 200


class KeywordAlreadySavedError(ValueError):
    def __init__(self, message: str = "Keyword already saved by this user"):
        super().__init__(message)


def _clamp(value: Optional[int], default: int, maximum: int) -> int:
    if not value or value < 1:
        return default
    return min(value, maximum)


# =============================================================================
# Saved keywords
# =============================================================================

def is_keyword_saved(user, keyword: str) -> bool:
    return SavedKeyword.objects.filter(user=user, keyword=keyword.strip()).exists()


def save_keyword(user, payload: SavedKeywordIn) -> SavedKeyword:
    """
    Raises:
        ValueError: empty keyword.
        KeywordAlreadySavedError: the user already saved it.
    """
    keyword = (payload.keyword or '').strip()
    if not keyword:
        raise ValueError("Keyword is required")
    if is_keyword_saved(user, keyword):
        raise KeywordAlreadySavedError()

    data = payload.dict()
    data['keyword'] = keyword
    try:
        with transaction.atomic():
            return SavedKeyword.objects.create(user=user, **data)
    except IntegrityError:
        # Lost a race with a concurrent save of the same keyword
        raise KeywordAlreadySavedError()


def list_saved_keywords(
    user,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[SavedKeyword], dict]:
    queryset = SavedKeyword.objects.filter(user=user)
    if category:
        queryset = queryset.filter(category=category)
    if search and search.strip():
        queryset = queryset.filter(keyword__icontains=search.strip())

    limit = _clamp(limit, 50, SAVED_KEYWORD_MAX_LIMIT)
    offset = max(offset or 0, 0)
    total = queryset.count()
    return list(queryset[offset:offset + limit]), {
        'total': total,
        'limit': limit,
        'offset': offset,
        'hasMore': offset + limit < total,
    }


def get_saved_keyword(user, keyword_id: int) -> Optional[SavedKeyword]:
    try:
        return SavedKeyword.objects.get(user=user, id=keyword_id)
    except SavedKeyword.DoesNotExist:
        return None


def update_saved_keyword(user, keyword_id: int, data: dict) -> Optional[SavedKeyword]:
    saved = get_saved_keyword(user, keyword_id)
    if saved is None:
        return None
    for attr, value in data.items():
        setattr(saved, attr, value)
    saved.save()
    return saved


def delete_saved_keyword(user, keyword_id: int) -> bool:
    deleted, _ = SavedKeyword.objects.filter(user=user, id=keyword_id).delete()
    return deleted > 0


def bulk_save_keywords(user, keywords: List[SavedKeywordIn]) -> dict:
    saved, errors = [], []
    for item in keywords:
        try:
            saved.append(save_keyword(user, item))
        except KeywordAlreadySavedError:
            errors.append({'keyword': item.keyword, 'error': 'Already saved'})
        except ValueError as e:
            errors.append({'keyword': item.keyword or 'N/A', 'error': str(e)})

    return {
        'saved': saved,
        'errors': errors,
        'summary': {
            'total': len(keywords),
            'saved': len(saved),
            'errors': len(errors),
        },
    }


# =============================================================================
# Analytics snapshots
# =============================================================================

def create_snapshot(user, url: str, mode: str, snapshot: dict) -> AnalyticsSnapshot:
    return AnalyticsSnapshot.objects.create(user=user, url=url, mode=mode, snapshot_json=snapshot or {})


def list_snapshots(user, limit: int = 50, offset: int = 0) -> List[AnalyticsSnapshot]:
    limit = _clamp(limit, 50, SNAPSHOT_MAX_LIMIT)
    offset = max(offset or 0, 0)
    return list(AnalyticsSnapshot.objects.filter(user=user)[offset:offset + limit])


def get_snapshot(user, snapshot_id: int) -> Optional[AnalyticsSnapshot]:
    try:
        return AnalyticsSnapshot.objects.get(user=user, id=snapshot_id)
    except AnalyticsSnapshot.DoesNotExist:
        return None


def delete_snapshot(user, snapshot_id: int) -> bool:
    deleted, _ = AnalyticsSnapshot.objects.filter(user=user, id=snapshot_id).delete()
    return deleted > 0
