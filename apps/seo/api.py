"""
SEO endpoints: RapidAPI research proxy, Google Maps heatmap, SerpApi key
rotation, keyword rank tracking, saved keywords and analytics snapshots.
"""
from dataclasses import asdict
from typing import Optional
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_auth, require_permission, get_org_id
from apps.identity.permissions import Permissions
from .dtos import (
    KeywordTrackingOut, KeywordRankHistoryOut, KeywordTrackingIn, KeywordTrackingUpdate, BulkCheckIn,
    AnalysisIn, AddKeyIn, DomainIn, RankCheckIn,
    SavedKeywordOut, SavedKeywordIn, SavedKeywordUpdate, BulkSaveIn,
    AnalyticsSnapshotOut, AnalyticsSnapshotIn,
)
from . import api_key_service, heatmap_service, keyword_service, rapidapi_client, services
from .api_key_service import NoAvailableApiKeyError
from .serpapi_client import ExternalServiceError

router = Router(tags=["SEO"])
keyword_router = Router(tags=["Keyword Tracking"])
saved_keyword_router = Router(tags=["Saved Keywords"])
snapshot_router = Router(tags=["Analytics Snapshots"])


def _tracking(obj) -> dict:
    return KeywordTrackingOut.from_orm(obj).dict()


def _saved(obj) -> dict:
    return SavedKeywordOut.from_orm(obj).dict()


def _proxy(call, *args):
    try:
        return call(*args)
    except ExternalServiceError as e:
        raise HttpError(502, str(e))


# =============================================================================
# Research proxy (RapidAPI)
# =============================================================================

@router.get("/url-metrics", auth=None)
def url_metrics(request: HttpRequest, url: str):
    require_permission(request, Permissions.SEO_VIEW)
    return _proxy(rapidapi_client.url_metrics, url)


@router.get("/keyword-metrics", auth=None)
def keyword_metrics(request: HttpRequest, keyword: str, country: str = 'us'):
    require_permission(request, Permissions.SEO_VIEW)
    return _proxy(rapidapi_client.keyword_metrics, keyword, country)


@router.get("/keyword-generator", auth=None)
def keyword_generator(request: HttpRequest, keyword: str, country: str = 'us'):
    require_permission(request, Permissions.SEO_VIEW)
    return _proxy(rapidapi_client.keyword_generator, keyword, country)


@router.post("/domain-backlinks", auth=None)
def domain_backlinks(request: HttpRequest, payload: DomainIn):
    require_permission(request, Permissions.SEO_VIEW)
    return _proxy(rapidapi_client.domain_backlinks, payload.domain)


@router.post("/domain-keywords", auth=None)
def domain_keywords(request: HttpRequest, payload: DomainIn):
    require_permission(request, Permissions.SEO_VIEW)
    return _proxy(rapidapi_client.domain_keywords, payload.domain)


@router.post("/google-rank-check", auth=None)
def google_rank_check(request: HttpRequest, payload: RankCheckIn):
    require_permission(request, Permissions.SEO_VIEW)
    return _proxy(rapidapi_client.google_rank_check, payload.keyword, payload.url, payload.country, payload.id)


@router.get("/seo-health", response={200: dict, 503: dict}, auth=None)
def seo_health(request: HttpRequest):
    require_permission(request, Permissions.SEO_VIEW)
    try:
        return 200, rapidapi_client.health()
    except ExternalServiceError as e:
        return 503, {
            "status": "unhealthy",
            "rapidApiConnected": False,
            "error": str(e),
        }


# =============================================================================
# Heatmap & key rotation
# =============================================================================

@router.post("/analyze", auth=None)
def analyze(request: HttpRequest, payload: AnalysisIn):
    """Google Maps rank for a business at every point of a grid."""
    require_permission(request, Permissions.SEO_RUN)
    try:
        return heatmap_service.run_analysis(
            payload.business_address, payload.keyword, payload.target_business_name, payload.grid_size
        )
    except NoAvailableApiKeyError as e:
        raise HttpError(503, str(e))
    except ExternalServiceError as e:
        raise HttpError(502, str(e))
    except RuntimeError as e:
        raise HttpError(500, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))


@router.get("/grid-sizes", auth=None)
def grid_sizes(request: HttpRequest):
    return {"success": True, "grid_sizes": heatmap_service.grid_sizes()}


@router.post("/add-key", auth=None)
def add_key(request: HttpRequest, payload: AddKeyIn):
    require_permission(request, Permissions.SEO_MANAGE_KEYS)
    try:
        added = api_key_service.add_api_key(payload.api_key)
    except ValueError as e:
        raise HttpError(400, str(e))
    if not added:
        raise HttpError(409, "API key already exists in rotation")
    return {"success": True, "message": "API key added to rotation successfully"}


@router.get("/usage-stats", auth=None)
def usage_stats(request: HttpRequest):
    require_permission(request, Permissions.SEO_MANAGE_KEYS)
    return {"success": True, "stats": [asdict(s) for s in api_key_service.usage_stats()]}


# =============================================================================
# Keyword tracking
# =============================================================================
# Static paths are declared before /{keyword_id}.

@keyword_router.post("/bulk-check", auth=None)
def bulk_check(request: HttpRequest, payload: BulkCheckIn):
    require_permission(request, Permissions.SEO_RUN)
    if not payload.ids:
        raise HttpError(400, "IDs array is required")
    return {
        "message": "Bulk ranking check completed",
        "data": keyword_service.bulk_check(get_org_id(request), payload.ids),
    }


@keyword_router.post("", response={201: dict}, auth=None)
def create_tracking(request: HttpRequest, payload: KeywordTrackingIn):
    user = require_permission(request, Permissions.SEO_RUN)
    try:
        tracking = keyword_service.create_keyword(get_org_id(request), user, payload)
    except keyword_service.DuplicateKeywordError as e:
        raise HttpError(409, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, {"message": "Keyword tracking created successfully", "data": _tracking(tracking)}


@keyword_router.get("", auth=None)
def list_tracking(
    request: HttpRequest,
    client_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
):
    require_permission(request, Permissions.SEO_VIEW)
    items, pagination = keyword_service.list_keywords(
        get_org_id(request), client_id, is_active, search, limit, offset, sort_by, sort_dir
    )
    return {"data": [_tracking(t) for t in items], "pagination": pagination}


@keyword_router.get("/{keyword_id}", auth=None)
def get_tracking(request: HttpRequest, keyword_id: int):
    require_permission(request, Permissions.SEO_VIEW)
    tracking = keyword_service.get_keyword(get_org_id(request), keyword_id)
    if not tracking:
        raise HttpError(404, "Keyword tracking not found")
    return {"data": _tracking(tracking)}


@keyword_router.put("/{keyword_id}", auth=None)
def update_tracking(request: HttpRequest, keyword_id: int, payload: KeywordTrackingUpdate):
    require_permission(request, Permissions.SEO_RUN)
    try:
        tracking = keyword_service.update_keyword(
            get_org_id(request), keyword_id, payload.dict(exclude_unset=True)
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    if not tracking:
        raise HttpError(404, "Keyword tracking not found")
    return {"message": "Keyword tracking updated successfully", "data": _tracking(tracking)}


@keyword_router.delete("/{keyword_id}", auth=None)
def delete_tracking(request: HttpRequest, keyword_id: int):
    user = require_permission(request, Permissions.SEO_RUN)
    if not keyword_service.delete_keyword(get_org_id(request), keyword_id, user=user):
        raise HttpError(404, "Keyword tracking not found")
    return {"message": "Keyword tracking deleted successfully", "data": {"id": keyword_id}}


@keyword_router.post("/{keyword_id}/check-ranking", auth=None)
def check_ranking(request: HttpRequest, keyword_id: int):
    """Fetch the live Google position and store it."""
    require_permission(request, Permissions.SEO_RUN)
    try:
        checked = keyword_service.check_ranking(get_org_id(request), keyword_id)
    except NoAvailableApiKeyError as e:
        raise HttpError(503, str(e))
    except ExternalServiceError as e:
        raise HttpError(502, f"Failed to get ranking data: {e}")
    if checked is None:
        raise HttpError(404, "Keyword tracking not found")

    tracking, result = checked
    return {
        "message": "Ranking checked successfully",
        "data": {
            "keyword_tracking": _tracking(tracking),
            "ranking_data": asdict(result),
        },
    }


@keyword_router.get("/{keyword_id}/rank-history", auth=None)
def rank_history(request: HttpRequest, keyword_id: int, limit: int = 30):
    require_permission(request, Permissions.SEO_VIEW)
    org_id = get_org_id(request)
    history = keyword_service.rank_history(org_id, keyword_id, limit)
    if history is None:
        raise HttpError(404, "Keyword tracking not found")
    return {
        "data": {
            "keyword_tracking": _tracking(keyword_service.get_keyword(org_id, keyword_id)),
            "rank_history": [KeywordRankHistoryOut.from_orm(h).dict() for h in history],
        }
    }


# =============================================================================
# Saved keywords
# =============================================================================

@saved_keyword_router.post("/bulk", response={201: dict}, auth=None)
def bulk_save(request: HttpRequest, payload: BulkSaveIn):
    user = require_auth(request)
    if not payload.keywords:
        raise HttpError(400, "Keywords array is required")
    result = services.bulk_save_keywords(user, payload.keywords)
    result['saved'] = [_saved(s) for s in result['saved']]
    return 201, {"message": "Bulk save completed", "data": result}


@saved_keyword_router.get("/check", auth=None)
def check_saved(request: HttpRequest, keyword: str = '', category: str = 'idea'):
    user = require_auth(request)
    if not keyword.strip():
        raise HttpError(400, "Keyword parameter is required")
    return {
        "isSaved": services.is_keyword_saved(user, keyword),
        "keyword": keyword,
        "category": category,
    }


@saved_keyword_router.post("", response={201: dict}, auth=None)
def save_keyword(request: HttpRequest, payload: SavedKeywordIn):
    user = require_auth(request)
    try:
        saved = services.save_keyword(user, payload)
    except services.KeywordAlreadySavedError as e:
        raise HttpError(409, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, {"message": "Keyword saved successfully", "data": _saved(saved)}


@saved_keyword_router.get("", auth=None)
def list_saved(
    request: HttpRequest,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
):
    user = require_auth(request)
    items, pagination = services.list_saved_keywords(user, category, search, limit, offset)
    return {"data": [_saved(s) for s in items], "pagination": pagination}


@saved_keyword_router.get("/{saved_id}", auth=None)
def get_saved(request: HttpRequest, saved_id: int):
    user = require_auth(request)
    saved = services.get_saved_keyword(user, saved_id)
    if not saved:
        raise HttpError(404, "Saved keyword not found")
    return {"data": _saved(saved)}


@saved_keyword_router.put("/{saved_id}", auth=None)
def update_saved(request: HttpRequest, saved_id: int, payload: SavedKeywordUpdate):
    user = require_auth(request)
    saved = services.update_saved_keyword(user, saved_id, payload.dict(exclude_unset=True))
    if not saved:
        raise HttpError(404, "Saved keyword not found")
    return {"message": "Saved keyword updated successfully", "data": _saved(saved)}


@saved_keyword_router.delete("/{saved_id}", auth=None)
def delete_saved(request: HttpRequest, saved_id: int):
    user = require_auth(request)
    if not services.delete_saved_keyword(user, saved_id):
        raise HttpError(404, "Saved keyword not found")
    return {"message": "Saved keyword deleted successfully", "data": {"id": saved_id}}


# =============================================================================
# Analytics snapshots
# =============================================================================

@snapshot_router.post("", response={201: dict}, auth=None)
def create_snapshot(request: HttpRequest, payload: AnalyticsSnapshotIn):
    user = require_auth(request)
    snapshot = services.create_snapshot(user, payload.url, payload.mode, payload.snapshot)
    return 201, {"data": AnalyticsSnapshotOut.from_orm(snapshot).dict()}


@snapshot_router.get("", auth=None)
def list_snapshots(request: HttpRequest, limit: int = 50, offset: int = 0):
    user = require_auth(request)
    rows = services.list_snapshots(user, limit, offset)
    return {
        "data": [
            {"id": s.id, "url": s.url, "mode": s.mode, "created_at": s.created_at}
            for s in rows
        ],
        "total": len(rows),
    }


@snapshot_router.get("/{snapshot_id}", auth=None)
def get_snapshot(request: HttpRequest, snapshot_id: int):
    user = require_auth(request)
    snapshot = services.get_snapshot(user, snapshot_id)
    if not snapshot:
        raise HttpError(404, "Not found")
    data = AnalyticsSnapshotOut.from_orm(snapshot).dict()
    data['snapshot'] = snapshot.snapshot_json
    return {"data": data}


@snapshot_router.delete("/{snapshot_id}", auth=None)
def delete_snapshot(request: HttpRequest, snapshot_id: int):
    user = require_auth(request)
    if not services.delete_snapshot(user, snapshot_id):
        raise HttpError(404, "Not found")
    return {"success": True}
