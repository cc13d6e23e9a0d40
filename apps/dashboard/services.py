"""
Dashboard headline numbers for a workspace.

Each stat carries a `change` figure computed from the last 30 days:
revenue and leads as percentage growth over what existed before the
window, the other counts as the number added inside it.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db.models import Sum
from django.utils import timezone

from apps.activity.dtos import ActivityDTO
from apps.activity.services import recent_activity
from apps.clients.models import Client
from apps.leads.models import Lead
from apps.telephony.models import PhoneNumber
from apps.websites.models import Website, WebsiteStatus

CHANGE_WINDOW_DAYS = 30
DEFAULT_ACTIVITY_LIMIT = 10


def format_currency(amount) -> str:
    amount = Decimal(amount or 0)
    if amount == amount.to_integral_value():
        return f"${amount:,.0f}"
    return f"${amount:,.2f}"


def percent_change(recent, total) -> str:
    """Growth of `recent` over what existed before it, e.g. "+12.5%"."""
    recent = recent or 0
    previous = (total or 0) - recent
    if not previous:
        return "+100%" if recent else "+0%"
    pct = round(float(recent) / float(previous) * 100, 1)
    return f"+{pct:g}%" if pct >= 0 else f"{pct:g}%"


def count_change(recent: int) -> str:
    return f"+{recent}"


def _stat(value: str, change: str, label: str) -> dict:
    return {"value": value, "change": change, "label": label}


def get_stats(org_id: UUID, now: Optional[datetime] = None) -> dict:
    now = now or timezone.now()
    since = now - timedelta(days=CHANGE_WINDOW_DAYS)

    active_websites = Website.objects.filter(org_id=org_id, status=WebsiteStatus.ACTIVE)
    revenue = active_websites.aggregate(total=Sum('monthly_revenue'))['total'] or 0
    recent_revenue = active_websites.filter(created_at__gte=since).aggregate(
        total=Sum('monthly_revenue'))['total'] or 0

    leads = Lead.objects.filter(org_id=org_id)
    clients = Client.objects.filter(org_id=org_id)
    phones = PhoneNumber.objects.filter(user__org_id=org_id, is_active=True)
    total_leads = leads.count()

    return {
        "totalRevenue": _stat(format_currency(revenue), percent_change(recent_revenue, revenue), "Total Revenue"),
        "activeWebsites": _stat(
            str(active_websites.count()),
            count_change(active_websites.filter(created_at__gte=since).count()),
            "Active Websites",
        ),
        "totalLeads": _stat(
            str(total_leads),
            percent_change(leads.filter(created_at__gte=since).count(), total_leads),
            "Total Leads",
        ),
        "activeClients": _stat(
            str(clients.count()),
            count_change(clients.filter(created_at__gte=since).count()),
            "Active Clients",
        ),
        "totalPhones": _stat(
            str(phones.count()),
            count_change(phones.filter(created_at__gte=since).count()),
            "Phone Numbers",
        ),
    }


def get_recent_activity(org_id: UUID, limit: int = DEFAULT_ACTIVITY_LIMIT) -> List[dict]:
    return [_activity_row(a) for a in recent_activity(org_id, limit=limit)]


def _activity_row(activity: ActivityDTO) -> dict:
    return {
        "id": activity.id,
        "type": activity.type,
        "title": activity.title,
        "description": activity.description,
        "website": activity.website,
        "timestamp": activity.timestamp,
        "timeAgo": activity.timeAgo,
    }
