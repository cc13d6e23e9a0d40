from django.http import HttpRequest
from django.utils import timezone
from ninja import Router

from apps.identity.decorators import require_permission, get_org_id
from apps.identity.permissions import Permissions
from . import services

router = Router(tags=["Dashboard"])


@router.get("/stats", auth=None)
def dashboard_stats(request: HttpRequest):
    """Headline numbers for the workspace with their 30-day change."""
    require_permission(request, Permissions.ACTIVITY_VIEW)
    org_id = get_org_id(request)
    return {
        "success": True,
        "data": services.get_stats(org_id),
        "timestamp": timezone.now(),
    }


@router.get("/recent-activity", auth=None)
def dashboard_recent_activity(request: HttpRequest, limit: int = services.DEFAULT_ACTIVITY_LIMIT):
    require_permission(request, Permissions.ACTIVITY_VIEW)
    org_id = get_org_id(request)
    data = services.get_recent_activity(org_id, limit=limit)
    return {"success": True, "data": data, "total": len(data)}
