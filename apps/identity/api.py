"""
Identity API endpoints with JWT authentication.

Provides registration, login, logout, token refresh, password management
and user administration endpoints. Uses JWT tokens in httpOnly cookies
(and a Bearer token in the body for non-browser clients).
"""
import os
from dataclasses import asdict
from typing import List, Optional
from uuid import UUID
from ninja import Router, Schema
from django.conf import settings
from django.contrib.auth.signals import user_logged_in
from django.http import HttpRequest, HttpResponse
from django.utils import timezone
from ninja.errors import HttpError

from .models import User
from .dtos import (
    UserDTO, UserCreate, UserUpdate, RegisterIn, LoginIn,
    ChangePasswordIn, ChangePasswordSimpleIn, ForgotPasswordIn, ResetPasswordIn,
    SetupQuestionsForgotIn,
)
from .decorators import require_auth, require_permission
from .services import (
    get_user_dto, create_user, list_users, update_user, soft_delete_user,
    register_user, authenticate_by_email, change_password, change_password_simple,
    forgot_password, reset_password, setup_questions_for_forgot_password,
    EmailAlreadyRegisteredError, InvalidCredentialsError, UserNotFoundError,
)
from .security_question_service import QuestionsAlreadyExistError
from .permissions import Permissions
from .jwt_auth import (
    create_token_pair,
    decode_token,
    create_access_token,
    get_access_token_cookie_settings,
    get_refresh_token_cookie_settings,
    ACCESS_COOKIE,
    REFRESH_COOKIE,
)

router = Router(tags=["Identity"])


# =============================================================================
# Schemas
# =============================================================================

class TokenResponse(Schema):
    success: bool
    user: Optional[UserDTO] = None
    token: Optional[str] = None
    message: Optional[str] = None


class MessageOut(Schema):
    success: bool = True
    message: str


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production (Lambda or DEBUG=False)."""
    return bool(os.getenv('AWS_LAMBDA_FUNCTION_NAME')) or not settings.DEBUG


def _auth_response(user: User, status: int = 200, message: Optional[str] = None) -> HttpResponse:
    """Build a JSON response carrying the user and set both token cookies."""
    access_token, refresh_token = create_token_pair(user.id, user.org_id)

    response_data = TokenResponse(
        success=True,
        user=get_user_dto(user.id),
        token=access_token,
        message=message,
    )
    response = HttpResponse(
        response_data.model_dump_json(),
        content_type='application/json',
        status=status,
    )

    prod = is_production()
    response.set_cookie(ACCESS_COOKIE, access_token, **get_access_token_cookie_settings(prod))
    response.set_cookie(REFRESH_COOKIE, refresh_token, **get_refresh_token_cookie_settings(prod))
    return response


# =============================================================================
# Auth Endpoints
# =============================================================================

@router.post("/register", response={201: TokenResponse}, auth=None)
def register(request: HttpRequest, payload: RegisterIn):
    """
    Create an account and its personal workspace, then sign in.
    """
    try:
        user = register_user(payload.name, payload.email, payload.password)
    except EmailAlreadyRegisteredError as e:
        raise HttpError(409, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))

    return _auth_response(user, status=201, message="User registered successfully")


@router.post("/login", response=TokenResponse, auth=None)
def login_user(request: HttpRequest, payload: LoginIn):
    """
    Authenticate by email and set JWT tokens in httpOnly cookies.
    """
    user = authenticate_by_email(payload.email, payload.password)
    if user is None:
        raise HttpError(401, "Invalid credentials")

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    user_logged_in.send(sender=User, request=request, user=user)

    return _auth_response(user, message="Login successful")


@router.post("/logout", response=TokenResponse, auth=None)
def logout_user(request: HttpRequest):
    """
    Clear authentication cookies.
    """
    response = HttpResponse(
        TokenResponse(success=True, message="Logged out").model_dump_json(),
        content_type='application/json'
    )
    response.delete_cookie(ACCESS_COOKIE, path='/')
    response.delete_cookie(REFRESH_COOKIE, path='/')
    return response


@router.post("/refresh", response=TokenResponse, auth=None)
def refresh_token(request: HttpRequest):
    """
    Refresh the access token using the refresh token cookie.
    """
    refresh_token_value = request.COOKIES.get(REFRESH_COOKIE)
    if not refresh_token_value:
        raise HttpError(401, "No refresh token")

    payload = decode_token(refresh_token_value)
    if not payload or payload.get('type') != 'refresh':
        raise HttpError(401, "Invalid refresh token")

    try:
        user = User.objects.get(id=UUID(payload['sub']), is_active=True)
    except (ValueError, User.DoesNotExist):
        raise HttpError(401, "Invalid refresh token")

    new_access_token = create_access_token(user.id, user.org_id)
    response = HttpResponse(
        TokenResponse(success=True, user=get_user_dto(user.id), token=new_access_token).model_dump_json(),
        content_type='application/json'
    )
    response.set_cookie(ACCESS_COOKIE, new_access_token, **get_access_token_cookie_settings(is_production()))
    return response


@router.get("/me", response=UserDTO, auth=None)
def get_me(request: HttpRequest):
    """
    Get current authenticated user's profile.
    """
    user = require_auth(request)
    user_dto = get_user_dto(user.id)
    if not user_dto:
        raise HttpError(404, "User not found")
    return user_dto


# =============================================================================
# Password Endpoints
# =============================================================================

@router.post("/change-password", response=MessageOut, auth=None)
def change_password_endpoint(request: HttpRequest, payload: ChangePasswordIn):
    """Change password for accounts without security questions."""
    user = require_auth(request)
    try:
        change_password(user, payload.currentPassword, payload.newPassword)
    except InvalidCredentialsError as e:
        raise HttpError(401, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return MessageOut(message="Password changed successfully")


@router.post("/change-password-simple", response=MessageOut, auth=None)
def change_password_simple_endpoint(request: HttpRequest, payload: ChangePasswordSimpleIn):
    """Set a new password for the signed-in user."""
    user = require_auth(request)
    try:
        change_password_simple(user, payload.newPassword)
    except ValueError as e:
        raise HttpError(400, str(e))
    return MessageOut(message="Password changed successfully")


@router.post("/forgot-password", auth=None)
def forgot_password_endpoint(request: HttpRequest, payload: ForgotPasswordIn):
    """Return the recovery questions (without answers) for an email."""
    try:
        user, questions = forgot_password(payload.email)
    except UserNotFoundError as e:
        raise HttpError(404, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))

    return {
        "message": "Security questions retrieved successfully",
        "email": user.email,
        "questions": [asdict(q) for q in questions],
    }


@router.post("/reset-password", response=MessageOut, auth=None)
def reset_password_endpoint(request: HttpRequest, payload: ResetPasswordIn):
    """Reset a password by answering the security questions."""
    try:
        reset_password(payload.email, payload.newPassword, payload.securityAnswers)
    except UserNotFoundError as e:
        raise HttpError(404, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return MessageOut(message="Password reset successfully")


@router.post("/setup-security-questions-forgot", response={201: dict}, auth=None)
def setup_questions_forgot_endpoint(request: HttpRequest, payload: SetupQuestionsForgotIn):
    """Set up recovery questions from the forgot-password flow."""
    try:
        user, questions = setup_questions_for_forgot_password(payload)
    except UserNotFoundError as e:
        raise HttpError(404, str(e))
    except QuestionsAlreadyExistError:
        raise HttpError(
            409,
            "User already has security questions set up. Please use the reset password endpoint."
        )
    except ValueError as e:
        raise HttpError(400, str(e))

    return 201, {
        "message": "Security questions set up successfully for forgot password",
        "email": user.email,
        "questions": [asdict(q) for q in questions],
    }


# =============================================================================
# User Management Endpoints
# =============================================================================

@router.post("/users", response=UserDTO, auth=None)
def create_org_user(request: HttpRequest, payload: UserCreate):
    """
    Create a new user in the organization.

    Requires IDENTITY_MANAGE_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_MANAGE_USER)
    try:
        return create_user(user.org_id, payload)
    except EmailAlreadyRegisteredError as e:
        raise HttpError(409, str(e))


@router.get("/users", response=List[UserDTO], auth=None)
def list_org_users(request: HttpRequest):
    """
    List all users in the organization.

    Requires IDENTITY_VIEW_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_VIEW_USER)
    return list_users(user.org_id)


@router.put("/users/{user_id}", response=UserDTO, auth=None)
def update_org_user(request: HttpRequest, user_id: UUID, payload: UserUpdate):
    """
    Update a user in the organization.

    Requires IDENTITY_MANAGE_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_MANAGE_USER)

    # Ensure target user belongs to same org
    target_user = get_user_dto(user_id)
    if not target_user or target_user.org_id != user.org_id:
        raise HttpError(404, "User not found")

    updated = update_user(user_id, payload.dict(exclude_unset=True))
    if not updated:
        raise HttpError(404, "User not found")
    return updated


@router.delete("/users/{user_id}", response={204: None}, auth=None)
def delete_org_user(request: HttpRequest, user_id: UUID):
    """
    Soft delete a user from the organization.

    Requires IDENTITY_MANAGE_USER permission.
    """
    user = require_permission(request, Permissions.IDENTITY_MANAGE_USER)

    target_user = get_user_dto(user_id)
    if not target_user or target_user.org_id != user.org_id:
        raise HttpError(404, "User not found")

    if not soft_delete_user(user_id):
        raise HttpError(404, "User not found")
    return 204
