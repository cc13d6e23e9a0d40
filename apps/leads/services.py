"""
Services for Leads app: lead CRUD plus sales-call follow-up logs.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from django.db.models import Q
from django.utils import timezone

from apps.activity.services import log_activity, ActivityType
from apps.core.querying import apply_sorting, paginate
from .models import Lead, CallLog, FOLLOW_UP_DELAYS
from .dtos import LeadIn, CallLogIn, FollowUpDTO

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ('created_at', 'name', 'email', 'company')
DEFAULT_PER_PAGE = 15


class LeadNotFoundError(ValueError):
    """Lead does not exist in this workspace."""


# =============================================================================
# Leads
# =============================================================================

def list_leads(
    org_id: UUID,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
    page: Optional[int] = None,
    per_page: Optional[int] = None,
) -> Tuple[List[Lead], dict]:
    """
    Returns:
        (leads, pagination)
    """
    queryset = Lead.objects.filter(org_id=org_id)

    if status:
        queryset = queryset.filter(status=status)
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) |
            Q(company__icontains=search) |
            Q(email__icontains=search)
        )

    queryset = apply_sorting(queryset, sort_by, sort_dir, SORTABLE_FIELDS)
    return paginate(queryset, page, per_page, default_per_page=DEFAULT_PER_PAGE)


def get_lead(org_id: UUID, lead_id: UUID) -> Optional[Lead]:
    try:
        return Lead.objects.get(org_id=org_id, id=lead_id)
    except Lead.DoesNotExist:
        return None


def create_lead(org_id: UUID, payload: LeadIn, user=None) -> Lead:
    lead = Lead.objects.create(org_id=org_id, created_by=user, **payload.dict())

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.LEAD_CREATED,
        title="New lead added",
        description=f'Lead "{lead.name or lead.email}" was added to the system',
        performed_by=user,
        metadata={"lead_id": str(lead.id)},
    )
    return lead


def update_lead(org_id: UUID, lead_id: UUID, data: dict, user=None) -> Optional[Lead]:
    lead = get_lead(org_id, lead_id)
    if lead is None:
        return None

    for attr, value in data.items():
        setattr(lead, attr, value)
    lead.save()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.LEAD_UPDATED,
        title="Lead updated",
        description=f'Lead "{lead.name or lead.email}" was updated',
        performed_by=user,
        metadata={"lead_id": str(lead.id)},
    )
    return lead


def delete_lead(org_id: UUID, lead_id: UUID, user=None) -> bool:
    lead = get_lead(org_id, lead_id)
    if lead is None:
        return False

    label = lead.name or lead.email
    lead.delete()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.LEAD_DELETED,
        title="Lead deleted",
        description=f'Lead "{label}" was deleted from the system',
        performed_by=user,
    )
    return True


# =============================================================================
# Call logs / follow-ups
# =============================================================================

def follow_up_for_outcome(outcome: str, start: Optional[datetime] = None) -> Optional[datetime]:
    """Next call-back time implied by a call outcome."""
    delay = FOLLOW_UP_DELAYS.get(outcome)
    if delay is None:
        return None
    return (start or timezone.now()) + delay


def create_call_log(org_id: UUID, payload: CallLogIn, user=None) -> CallLog:
    """
    Raises:
        ValueError: missing fields
        LeadNotFoundError: lead is not in this workspace
    """
    if not payload.lead_id or not payload.outcome or not payload.notes:
        raise ValueError("lead_id, outcome, and notes are required")

    lead = get_lead(org_id, payload.lead_id)
    if lead is None:
        raise LeadNotFoundError("Lead not found")

    call_log = CallLog.objects.create(
        lead=lead,
        user=user,
        outcome=payload.outcome,
        notes=payload.notes,
        duration=payload.duration or 0,
        next_follow_up=payload.next_follow_up or follow_up_for_outcome(payload.outcome),
    )

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.CALL_LOG_CREATED,
        title="Call log added",
        description=f'Call log added for lead "{lead.name or lead.email}"',
        performed_by=user,
        metadata={"lead_id": str(lead.id), "call_log_id": call_log.id},
    )
    return call_log


def get_call_log(org_id: UUID, call_log_id: int) -> Optional[CallLog]:
    try:
        return CallLog.objects.select_related('lead').get(id=call_log_id, lead__org_id=org_id)
    except CallLog.DoesNotExist:
        return None


def list_call_logs_for_lead(org_id: UUID, lead_id: UUID) -> List[CallLog]:
    lead = get_lead(org_id, lead_id)
    if lead is None:
        raise LeadNotFoundError("Lead not found")
    return list(lead.call_logs.all())


def update_call_log(org_id: UUID, call_log_id: int, data: dict, user=None) -> Optional[CallLog]:
    call_log = get_call_log(org_id, call_log_id)
    if call_log is None:
        return None

    for attr, value in data.items():
        if value is not None:
            setattr(call_log, attr, value)
    call_log.save()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.CALL_LOG_UPDATED,
        title="Call log updated",
        description=f"Call log updated for lead ID {call_log.lead_id}",
        performed_by=user,
    )
    return call_log


def delete_call_log(org_id: UUID, call_log_id: int, user=None) -> bool:
    call_log = get_call_log(org_id, call_log_id)
    if call_log is None:
        return False

    lead_id = call_log.lead_id
    call_log.delete()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.CALL_LOG_DELETED,
        title="Call log deleted",
        description=f"Call log deleted for lead ID {lead_id}",
        performed_by=user,
    )
    return True


def upcoming_follow_ups(org_id: UUID, limit: int = 10) -> List[FollowUpDTO]:
    """Scheduled call-backs from now on, soonest first."""
    queryset = (
        CallLog.objects
        .filter(lead__org_id=org_id, next_follow_up__gte=timezone.now())
        .select_related('lead')
        .order_by('next_follow_up')
    )
    return [
        FollowUpDTO(
            id=log.id,
            lead_id=log.lead_id,
            lead_name=log.lead.name,
            lead_email=log.lead.email,
            outcome=log.outcome,
            notes=log.notes,
            next_follow_up=log.next_follow_up,
        )
        for log in queryset[:max(1, limit)]
    ]
