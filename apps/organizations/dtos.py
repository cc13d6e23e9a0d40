from ninja import Schema
from ninja.orm import create_schema
from typing import Optional, Dict, Any
from .models import Organization

OrganizationOut = create_schema(Organization, exclude=['created_at', 'updated_at'])

class OrganizationIn(Schema):
    name: str
    settings: Dict[str, Any] = {}
    logo: Optional[str] = None
    website: Optional[str] = None
    is_active: bool = True


from apps.identity.dtos import UserCreate, UserDTO

class OnboardingRequest(Schema):
    organization: OrganizationIn
    admin_user: UserCreate

class OnboardingResponse(Schema):
    organization: OrganizationOut
    admin_user: UserDTO
