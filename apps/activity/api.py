from typing import List, Optional
from django.http import HttpRequest
from ninja import Router

from apps.identity.decorators import require_permission, get_org_id
from apps.identity.permissions import Permissions
from .dtos import ActivityOut
from .services import list_activities

router = Router(tags=["Activity"])


@router.get("", response=List[ActivityOut], auth=None)
def list_activity_feed(
    request: HttpRequest,
    type: Optional[str] = None,
    website_id: Optional[int] = None,
    limit: int = 100,
):
    """
    Activity feed for the workspace, newest first.
    Supports filtering by type and website; limit is capped at 500.
    """
    require_permission(request, Permissions.ACTIVITY_VIEW)
    org_id = get_org_id(request)
    return list_activities(org_id, activity_type=type, website_id=website_id, limit=limit)
