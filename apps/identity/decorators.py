from functools import wraps
from typing import Callable
from ninja.errors import HttpError
from django.http import HttpRequest
from .permissions import get_user_permissions

def has_permission(required_perm: str):
    """
    Decorator to enforce a specific permission on a Django Ninja endpoint.

    Usage:
        @router.get("/some-path")
        @has_permission(Permissions.SOME_PERM)
        def my_view(request):
            ...
    """
    def decorator(view_func: Callable):
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args, **kwargs):
            if not request.user.is_authenticated:
                raise HttpError(401, "Unauthorized")

            perms = get_user_permissions(request.user)
            if required_perm not in perms:
                raise HttpError(403, "Permission denied")

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


def require_auth(request: HttpRequest):
    """Ensure user is authenticated and return it."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Unauthorized")
    return request.user


def require_permission(request: HttpRequest, permission: str):
    """Ensure user has the required permission and return it."""
    user = require_auth(request)
    if permission not in get_user_permissions(user):
        raise HttpError(403, f"Permission denied: {permission}")
    return user


def get_org_id(request: HttpRequest):
    """Get organization ID resolved by TenantMiddleware."""
    org_id = getattr(request, 'org_id', None) or request.user.org_id
    if not org_id:
        raise HttpError(400, "User has no organization context")
    return org_id
