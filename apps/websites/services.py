"""
Services for Websites app.
Other apps (dashboard, activity, taskboard) go through these functions.
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db.models import Q, Sum

from apps.activity.services import log_activity, ActivityType
from apps.core.querying import apply_sorting
from .models import Website, WebsiteStatus
from .dtos import WebsiteIn

SORTABLE_FIELDS = ('created_at', 'domain', 'monthly_revenue', 'domain_authority')


def list_websites(
    org_id: UUID,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
) -> List[Website]:
    queryset = Website.objects.filter(org_id=org_id)

    if status:
        queryset = queryset.filter(status=status)
    if search:
        queryset = queryset.filter(Q(domain__icontains=search) | Q(niche__icontains=search))

    return list(apply_sorting(queryset, sort_by, sort_dir, SORTABLE_FIELDS))


def get_website(org_id: UUID, website_id: int) -> Optional[Website]:
    try:
        return Website.objects.get(org_id=org_id, id=website_id)
    except Website.DoesNotExist:
        return None


def create_website(org_id: UUID, payload: WebsiteIn, user=None) -> Website:
    data = payload.dict()
    data['top_keywords'] = data['top_keywords'] or []
    data['competitors'] = data['competitors'] or []
    website = Website.objects.create(org_id=org_id, created_by=user, **data)

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.WEBSITE_CREATED,
        title="New website added",
        description=f"Website {website.domain} was added to the system",
        website=website,
        performed_by=user,
    )
    return website


def update_website(org_id: UUID, website_id: int, data: dict, user=None) -> Optional[Website]:
    website = get_website(org_id, website_id)
    if website is None:
        return None

    for attr, value in data.items():
        setattr(website, attr, value)
    website.save()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.WEBSITE_UPDATED,
        title="Website updated",
        description=f"Website {website.domain} was updated",
        website=website,
        performed_by=user,
    )
    return website


def delete_website(org_id: UUID, website_id: int, user=None) -> bool:
    website = get_website(org_id, website_id)
    if website is None:
        return False

    domain = website.domain
    website.delete()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.WEBSITE_DELETED,
        title="Website deleted",
        description=f"Website {domain} was deleted from the system",
        performed_by=user,
    )
    return True


def active_revenue(org_id: UUID) -> Decimal:
    """Sum of monthly revenue over active websites."""
    total = (
        Website.objects
        .filter(org_id=org_id, status=WebsiteStatus.ACTIVE)
        .aggregate(total=Sum('monthly_revenue'))['total']
    )
    return total or Decimal('0')
