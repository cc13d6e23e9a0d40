from typing import List
from uuid import UUID
from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest
from django.shortcuts import get_object_or_404

from apps.identity.decorators import has_permission
from apps.identity.permissions import Permissions
from apps.identity.services import EmailAlreadyRegisteredError
from .models import Organization
from .dtos import OrganizationOut, OrganizationIn, OnboardingRequest, OnboardingResponse
from .services import onboard_organization, update_organization

router = Router(tags=["Organizations"])

@router.post("/onboard", response=OnboardingResponse, auth=None)
def create_onboard(request: HttpRequest, payload: OnboardingRequest):
    """
    **Public Endpoint**: Register a new workspace.

    This creates:
    1. A new Organization tenant.
    2. An 'Initial Administrator' user linked to that organization.

    No authentication is required.
    """
    try:
        return onboard_organization(payload)
    except EmailAlreadyRegisteredError as e:
        raise HttpError(409, str(e))

@router.get("", response=List[OrganizationOut], auth=None)
@has_permission(Permissions.ORGANIZATION_MANAGE)
def list_organizations(request: HttpRequest):
    # Superusers see every workspace, admins only their own
    if request.user.is_superuser:
        return list(Organization.objects.all())

    if request.user.org_id:
        return list(Organization.objects.filter(id=request.user.org_id))

    return []

@router.get("/{org_id}", response=OrganizationOut, auth=None)
@has_permission(Permissions.ORGANIZATION_MANAGE)
def get_organization(request: HttpRequest, org_id: UUID):
    if not request.user.is_superuser and request.user.org_id != org_id:
        raise HttpError(403, "Permission denied: Cannot view other organizations")

    return get_object_or_404(Organization, id=org_id)

@router.put("/{org_id}", response=OrganizationOut, auth=None)
@has_permission(Permissions.ORGANIZATION_MANAGE)
def update_organization_endpoint(request: HttpRequest, org_id: UUID, payload: OrganizationIn):
    if not request.user.is_superuser and request.user.org_id != org_id:
        raise HttpError(403, "Permission denied: Cannot update other organizations")

    org = get_object_or_404(Organization, id=org_id)
    return update_organization(org, payload.dict())
