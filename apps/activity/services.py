"""
Workspace activity feed.

Use log_activity() after any user-visible mutation. It is fire-and-forget:
it never raises, so a feed failure never breaks the calling request.

Usage:
    from apps.activity.services import log_activity, ActivityType

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.WEBSITE_CREATED,
        title="New website added",
        description=f"Website {website.domain} was added to the system",
        website=website,
        performed_by=request.user,
    )
"""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from django.utils import timezone

from .dtos import ActivityDTO
from .models import Activity

logger = logging.getLogger(__name__)

MAX_LIMIT = 500


class ActivityType:
    """
    Canonical activity type strings shown on the dashboard feed.
    """
    # ── Websites ──────────────────────────────────────────────────────
    WEBSITE_CREATED = "website_created"
    WEBSITE_UPDATED = "website_updated"
    WEBSITE_DELETED = "website_deleted"

    # ── Leads ─────────────────────────────────────────────────────────
    LEAD_CREATED = "lead_created"
    LEAD_UPDATED = "lead_updated"
    LEAD_DELETED = "lead_deleted"
    CALL_LOG_CREATED = "call_log_created"
    CALL_LOG_UPDATED = "call_log_updated"
    CALL_LOG_DELETED = "call_log_deleted"

    # ── Clients ───────────────────────────────────────────────────────
    CLIENT_CREATED = "client_created"
    CLIENT_UPDATED = "client_updated"
    CLIENT_DELETED = "client_deleted"

    # ── Tasks ─────────────────────────────────────────────────────────
    TASK_CREATED = "task_created"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_DELETED = "task_deleted"

    # ── SEO ───────────────────────────────────────────────────────────
    KEYWORD_TRACKED = "keyword_tracked"
    KEYWORD_RANK_CHANGED = "keyword_rank_changed"
    KEYWORD_DELETED = "keyword_deleted"

    # ── Telephony & media ─────────────────────────────────────────────
    PHONE_NUMBER_PURCHASED = "phone_number_purchased"
    VIDEO_UPLOADED = "video_uploaded"

    # ── Identity ──────────────────────────────────────────────────────
    USER_LOGIN = "user_login"
    SECURITY_QUESTIONS_SET = "security_questions_set"


def log_activity(
    *,
    org_id: Optional[UUID],
    activity_type: str,
    title: str,
    description: str = "",
    website=None,
    performed_by=None,
    metadata: Optional[dict] = None,
) -> Optional[Activity]:
    """
    Record an entry in the workspace activity feed.

    Args:
        org_id:        Workspace UUID for tenant isolation.
        activity_type: Constant from ActivityType.
        title:         Short headline (e.g. "New website added").
        description:   Sentence shown under the headline.
        website:       Related Website instance, if any.
        performed_by:  Django User instance or None.
        metadata:      Optional JSON-serializable dict.

    Returns:
        The created Activity, or None if it could not be written.
    """
    if not org_id:
        return None
    try:
        return Activity.objects.create(
            org_id=org_id,
            type=activity_type,
            title=title,
            description=description or "",
            website=website,
            performed_by=performed_by if getattr(performed_by, 'pk', None) else None,
            metadata=metadata or {},
        )
    except Exception:
        # Never let the activity feed break a request
        logger.exception(f"Failed to log activity {activity_type}")
        return None


def time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    """Human friendly relative time ("5 minutes ago")."""
    now = now or timezone.now()
    minutes = int((now - moment).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return f"{days} day{'s' if days > 1 else ''} ago"


def _to_dto(activity: Activity, now: datetime) -> ActivityDTO:
    return ActivityDTO(
        id=activity.id,
        type=activity.type,
        title=activity.title,
        description=activity.description,
        website=activity.website.domain if activity.website_id else None,
        performed_by_name=activity.performed_by.display_name if activity.performed_by_id else None,
        metadata=activity.metadata,
        timestamp=activity.created_at,
        timeAgo=time_ago(activity.created_at, now),
    )


def list_activities(
    org_id: UUID,
    activity_type: Optional[str] = None,
    website_id: Optional[int] = None,
    limit: int = 100,
) -> List[ActivityDTO]:
    qs = Activity.objects.filter(org_id=org_id).select_related('website', 'performed_by')
    if activity_type:
        qs = qs.filter(type=activity_type)
    if website_id:
        qs = qs.filter(website_id=website_id)

    now = timezone.now()
    return [_to_dto(a, now) for a in qs[:max(1, min(limit, MAX_LIMIT))]]


def recent_activity(org_id: UUID, limit: int = 10) -> List[ActivityDTO]:
    """Most recent entries for the dashboard feed."""
    return list_activities(org_id, limit=limit)
