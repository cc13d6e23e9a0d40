"""
Website portfolio endpoints.
"""
from typing import Optional
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_permission, get_org_id
from apps.identity.permissions import Permissions
from .dtos import WebsiteOut, WebsiteIn, WebsiteUpdate, WebsiteListOut
from . import services

router = Router(tags=["Websites"])


@router.get("", response=WebsiteListOut, auth=None)
def list_websites(
    request: HttpRequest,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
):
    """
    List websites in the workspace.

    Query Parameters:
    - status: active, inactive or suspended
    - search: matches domain or niche
    - sort_by: created_at, domain, monthly_revenue, domain_authority
    - sort_dir: asc or desc (default desc)
    """
    require_permission(request, Permissions.WEBSITES_VIEW)
    org_id = get_org_id(request)
    websites = services.list_websites(org_id, status, search, sort_by, sort_dir)
    return {"data": websites, "pagination": None}


@router.get("/{website_id}", response=WebsiteOut, auth=None)
def get_website(request: HttpRequest, website_id: int):
    require_permission(request, Permissions.WEBSITES_VIEW)
    website = services.get_website(get_org_id(request), website_id)
    if not website:
        raise HttpError(404, "Website not found")
    return website


@router.post("", response={201: WebsiteOut}, auth=None)
def create_website(request: HttpRequest, payload: WebsiteIn):
    user = require_permission(request, Permissions.WEBSITES_MANAGE)
    website = services.create_website(get_org_id(request), payload, user=user)
    return 201, website


@router.put("/{website_id}", response=WebsiteOut, auth=None)
def update_website(request: HttpRequest, website_id: int, payload: WebsiteUpdate):
    user = require_permission(request, Permissions.WEBSITES_MANAGE)
    website = services.update_website(
        get_org_id(request), website_id, payload.dict(exclude_unset=True), user=user
    )
    if not website:
        raise HttpError(404, "Website not found")
    return website


@router.delete("/{website_id}", auth=None)
def delete_website(request: HttpRequest, website_id: int):
    user = require_permission(request, Permissions.WEBSITES_MANAGE)
    if not services.delete_website(get_org_id(request), website_id, user=user):
        raise HttpError(404, "Website not found")
    return {"message": "Website deleted successfully"}
