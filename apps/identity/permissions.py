from typing import List, Dict
from .models import UserRole, User

# Define all available permissions here for reference
class Permissions:
    # Websites
    WEBSITES_VIEW = "websites.view"
    WEBSITES_MANAGE = "websites.manage"

    # Leads & follow-up calls
    LEADS_VIEW = "leads.view"
    LEADS_MANAGE = "leads.manage"

    # Clients & checklists
    CLIENTS_VIEW = "clients.view"
    CLIENTS_MANAGE = "clients.manage"

    # Task board
    TASKS_VIEW = "tasks.view"
    TASKS_MANAGE = "tasks.manage"

    # SEO tooling
    SEO_VIEW = "seo.view"
    SEO_RUN = "seo.run"
    SEO_MANAGE_KEYS = "seo.manage_keys"

    # Telephony
    TELEPHONY_VIEW = "telephony.view"
    TELEPHONY_CALL = "telephony.call"
    TELEPHONY_MANAGE_NUMBERS = "telephony.manage_numbers"

    # Videos
    VIDEOS_VIEW = "videos.view"
    VIDEOS_MANAGE = "videos.manage"

    # Activity / dashboard
    ACTIVITY_VIEW = "activity.view"

    # Identity
    IDENTITY_VIEW_USER = "identity.view_user"
    IDENTITY_MANAGE_USER = "identity.manage_user"

    # Organizations
    ORGANIZATION_MANAGE = "organization.manage"


_VIEW_ALL = [
    Permissions.WEBSITES_VIEW,
    Permissions.LEADS_VIEW,
    Permissions.CLIENTS_VIEW,
    Permissions.TASKS_VIEW,
    Permissions.SEO_VIEW,
    Permissions.TELEPHONY_VIEW,
    Permissions.VIDEOS_VIEW,
    Permissions.ACTIVITY_VIEW,
]


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN: _VIEW_ALL + [
        Permissions.WEBSITES_MANAGE,
        Permissions.LEADS_MANAGE,
        Permissions.CLIENTS_MANAGE,
        Permissions.TASKS_MANAGE,
        Permissions.SEO_RUN,
        Permissions.SEO_MANAGE_KEYS,
        Permissions.TELEPHONY_CALL,
        Permissions.TELEPHONY_MANAGE_NUMBERS,
        Permissions.VIDEOS_MANAGE,
        Permissions.IDENTITY_VIEW_USER,
        Permissions.IDENTITY_MANAGE_USER,
        Permissions.ORGANIZATION_MANAGE,
    ],
    UserRole.MANAGER: _VIEW_ALL + [
        # Everything except key rotation, user and workspace admin
        Permissions.WEBSITES_MANAGE,
        Permissions.LEADS_MANAGE,
        Permissions.CLIENTS_MANAGE,
        Permissions.TASKS_MANAGE,
        Permissions.SEO_RUN,
        Permissions.TELEPHONY_CALL,
        Permissions.TELEPHONY_MANAGE_NUMBERS,
        Permissions.VIDEOS_MANAGE,
        Permissions.IDENTITY_VIEW_USER,
    ],
    UserRole.STAFF: _VIEW_ALL + [
        # Day-to-day work on leads, clients and tasks
        Permissions.LEADS_MANAGE,
        Permissions.CLIENTS_MANAGE,
        Permissions.TASKS_MANAGE,
        Permissions.SEO_RUN,
        Permissions.TELEPHONY_CALL,
        Permissions.VIDEOS_MANAGE,
    ],
    UserRole.VIEWER: list(_VIEW_ALL),
}

def get_user_permissions(user: User) -> List[str]:
    """
    Returns a list of permission strings for the given user based on their role.
    """
    if not user or not user.is_active:
        return []

    return ROLE_PERMISSIONS.get(user.role, [])
