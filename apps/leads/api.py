"""
Lead pipeline and follow-up call log endpoints.
"""
from typing import List, Optional
from uuid import UUID
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_permission, get_org_id
from apps.identity.permissions import Permissions
from .dtos import (
    LeadOut, LeadIn, LeadUpdate, LeadListOut,
    CallLogOut, CallLogIn, CallLogUpdate, FollowUpOut,
)
from . import services

router = Router(tags=["Leads"])


# =============================================================================
# Call logs
# =============================================================================
# Declared before /{lead_id} so the static paths win.

@router.post("/call-logs", response={201: dict}, auth=None)
def create_call_log(request: HttpRequest, payload: CallLogIn):
    user = require_permission(request, Permissions.LEADS_MANAGE)
    try:
        call_log = services.create_call_log(get_org_id(request), payload, user=user)
    except services.LeadNotFoundError as e:
        raise HttpError(404, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, {"success": True, "data": CallLogOut.from_orm(call_log).dict()}


@router.get("/call-logs/upcoming", response=List[FollowUpOut], auth=None)
def upcoming_follow_ups(request: HttpRequest, limit: int = 10):
    """Scheduled call-backs, soonest first."""
    require_permission(request, Permissions.LEADS_VIEW)
    return services.upcoming_follow_ups(get_org_id(request), limit=limit)


@router.put("/call-logs/{call_log_id}", response=CallLogOut, auth=None)
def update_call_log(request: HttpRequest, call_log_id: int, payload: CallLogUpdate):
    user = require_permission(request, Permissions.LEADS_MANAGE)
    call_log = services.update_call_log(
        get_org_id(request), call_log_id, payload.dict(exclude_unset=True), user=user
    )
    if not call_log:
        raise HttpError(404, "Call log not found")
    return call_log


@router.delete("/call-logs/{call_log_id}", auth=None)
def delete_call_log(request: HttpRequest, call_log_id: int):
    user = require_permission(request, Permissions.LEADS_MANAGE)
    if not services.delete_call_log(get_org_id(request), call_log_id, user=user):
        raise HttpError(404, "Call log not found")
    return {"success": True, "message": "Call log deleted successfully"}


# =============================================================================
# Leads
# =============================================================================

@router.get("", response=LeadListOut, auth=None)
def list_leads(
    request: HttpRequest,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
    page: Optional[int] = None,
    per_page: Optional[int] = None,
):
    """
    Paginated lead list (15 per page by default).

    Query Parameters:
    - status: New, Contacted, Qualified, Converted, Lost
    - search: matches name, company or email
    - sort_by: created_at, name, email, company
    """
    require_permission(request, Permissions.LEADS_VIEW)
    leads, pagination = services.list_leads(
        get_org_id(request), status, search, sort_by, sort_dir, page, per_page
    )
    return {"data": leads, "pagination": pagination}


@router.get("/{lead_id}", response=LeadOut, auth=None)
def get_lead(request: HttpRequest, lead_id: UUID):
    require_permission(request, Permissions.LEADS_VIEW)
    lead = services.get_lead(get_org_id(request), lead_id)
    if not lead:
        raise HttpError(404, "Lead not found")
    return lead


@router.post("", response={201: LeadOut}, auth=None)
def create_lead(request: HttpRequest, payload: LeadIn):
    user = require_permission(request, Permissions.LEADS_MANAGE)
    return 201, services.create_lead(get_org_id(request), payload, user=user)


@router.put("/{lead_id}", response=LeadOut, auth=None)
def update_lead(request: HttpRequest, lead_id: UUID, payload: LeadUpdate):
    user = require_permission(request, Permissions.LEADS_MANAGE)
    lead = services.update_lead(get_org_id(request), lead_id, payload.dict(exclude_unset=True), user=user)
    if not lead:
        raise HttpError(404, "Lead not found")
    return lead


@router.delete("/{lead_id}", auth=None)
def delete_lead(request: HttpRequest, lead_id: UUID):
    user = require_permission(request, Permissions.LEADS_MANAGE)
    if not services.delete_lead(get_org_id(request), lead_id, user=user):
        raise HttpError(404, "Lead not found")
    return {"message": "Lead deleted successfully"}


@router.get("/{lead_id}/call-logs", response=List[CallLogOut], auth=None)
def lead_call_logs(request: HttpRequest, lead_id: UUID):
    require_permission(request, Permissions.LEADS_VIEW)
    try:
        return services.list_call_logs_for_lead(get_org_id(request), lead_id)
    except services.LeadNotFoundError as e:
        raise HttpError(404, str(e))
