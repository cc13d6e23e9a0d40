"""
Services for Organizations app.
This is the public API for other apps to interact with organizations.
"""
import logging
from django.db import transaction
from .models import Organization
from .dtos import OnboardingRequest, OnboardingResponse, OrganizationOut
from apps.identity.dtos import UserCreate, UserDTO
from apps.identity.services import create_user
from apps.identity.models import UserRole

logger = logging.getLogger(__name__)


def get_organization_dto(org_id) -> OrganizationOut | None:
    """
    Get an organization by ID and return as DTO.
    This is the only way other apps should access organization data.
    """
    try:
        org = Organization.objects.get(id=org_id)
        return OrganizationOut.from_orm(org)
    except Organization.DoesNotExist:
        return None


def create_workspace_for_owner(workspace_name: str, owner: UserCreate) -> UserDTO:
    """
    Create a workspace and its ADMIN owner in one transaction.

    Used by self-service registration.
    """
    with transaction.atomic():
        org = Organization.objects.create(name=workspace_name)
        owner.role = UserRole.ADMIN
        user_dto = create_user(org_id=org.id, payload=owner)

    logger.info(f"Created workspace {org.id} for {user_dto.email}")
    return user_dto


def onboard_organization(payload: OnboardingRequest) -> OnboardingResponse:
    with transaction.atomic():
        # 1. Create Organization
        org = Organization.objects.create(**payload.organization.dict())

        # 2. Create Admin User (role is always ADMIN)
        user_payload = payload.admin_user
        user_payload.role = UserRole.ADMIN
        user_dto = create_user(org_id=org.id, payload=user_payload)

        return OnboardingResponse(
            organization=OrganizationOut.from_orm(org),
            admin_user=user_dto
        )


def update_organization(org: Organization, data: dict) -> Organization:
    for attr, value in data.items():
        setattr(org, attr, value)
    org.save()
    return org
