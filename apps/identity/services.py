"""Services for Identity app."""
import logging
from typing import List, Optional

from django.db import transaction

from .models import User, UserRole
from .dtos import UserDTO, UserCreate, SetupQuestionsForgotIn
from .permissions import get_user_permissions
from apps.activity.services import log_activity, ActivityType
from . import security_question_service

logger = logging.getLogger(__name__)

MIN_REGISTER_PASSWORD = 6
MIN_PASSWORD = 8
MAX_PASSWORD = 255


class EmailAlreadyRegisteredError(ValueError):
    """A user with this email already exists."""


class InvalidCredentialsError(ValueError):
    """Email/password or current password mismatch."""


class UserNotFoundError(ValueError):
    """No user with the given email."""


def get_user_dto(user_id) -> UserDTO | None:
    try:
        user = User.objects.get(id=user_id)
        return UserDTO(
            id=user.id,
            username=user.username,
            email=user.email,
            name=user.display_name,
            role=user.role,
            org_id=user.org_id,
            is_active=user.is_active,
            balance=user.balance,
            free_minutes_remaining=user.free_minutes_remaining,
            has_claimed_free_number=user.has_claimed_free_number,
            permissions=get_user_permissions(user),
        )
    except User.DoesNotExist:
        return None


def get_user_by_email(email: Optional[str]) -> User | None:
    if not email:
        return None
    try:
        return User.objects.get(email__iexact=email.strip())
    except User.DoesNotExist:
        return None


def create_user(org_id, payload: UserCreate) -> UserDTO:
    if get_user_by_email(payload.email):
        raise EmailAlreadyRegisteredError("A user with this email already exists")

    user = User.objects.create_user(
        username=payload.username,
        email=payload.email.strip().lower(),
        password=payload.password,
        name=payload.name,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        phone=payload.phone or "",
        org_id=org_id,
        is_active=True
    )
    return get_user_dto(user.id)


def list_users(org_id) -> list[UserDTO]:
    users = User.objects.filter(org_id=org_id)
    return [get_user_dto(u.id) for u in users]


def update_user(user_id, data: dict) -> UserDTO | None:
    try:
        user = User.objects.get(id=user_id)

        for key, value in data.items():
            if value is not None:
                setattr(user, key, value)

        user.save()
        return get_user_dto(user_id)
    except User.DoesNotExist:
        return None


def soft_delete_user(user_id) -> bool:
    try:
        user = User.objects.get(id=user_id)
        user.is_active = False
        user.save()
        return True
    except User.DoesNotExist:
        return False


# =============================================================================
# Self-service registration & credentials
# =============================================================================

def register_user(name: str, email: str, password: str) -> User:
    """
    Sign up a new account owner.

    Creates a personal workspace (organization) and its ADMIN user.
    """
    from apps.organizations.services import create_workspace_for_owner

    if not name or not name.strip():
        raise ValueError("Name is required")
    if not email or '@' not in email:
        raise ValueError("Please enter a valid email address")
    if not password or len(password) < MIN_REGISTER_PASSWORD:
        raise ValueError(f"Password must be at least {MIN_REGISTER_PASSWORD} characters long")
    if get_user_by_email(email):
        raise EmailAlreadyRegisteredError("A user with this email already exists")

    with transaction.atomic():
        user_dto = create_workspace_for_owner(
            workspace_name=f"{name.strip()}'s Workspace",
            owner=UserCreate(
                username=email.strip().lower(),
                email=email,
                password=password,
                name=name.strip(),
                role=UserRole.ADMIN,
            ),
        )

    logger.info(f"Registered user {user_dto.id} ({user_dto.email})")
    return User.objects.get(id=user_dto.id)


def authenticate_by_email(email: str, password: str) -> User | None:
    """Return the active user matching email/password, else None."""
    user = get_user_by_email(email)
    if user is None or not user.is_active:
        return None
    if not user.check_password(password):
        return None
    return user


def _validate_new_password(new_password: Optional[str]) -> None:
    if not new_password:
        raise ValueError("New password is required")
    if len(new_password) < MIN_PASSWORD:
        raise ValueError(f"New password must be at least {MIN_PASSWORD} characters long")
    if len(new_password) > MAX_PASSWORD:
        raise ValueError(f"New password must be less than {MAX_PASSWORD} characters")


def _set_password(user: User, new_password: str) -> None:
    user.set_password(new_password)
    user.save(update_fields=['password'])


def change_password(user: User, current_password: Optional[str], new_password: Optional[str]) -> None:
    """
    Password change for accounts without security questions.

    Accounts with questions must go through change_password_with_answers.
    """
    if not current_password or not new_password:
        raise ValueError("Current password and new password are required")
    _validate_new_password(new_password)
    if not user.check_password(current_password):
        raise InvalidCredentialsError("Current password is incorrect")
    if security_question_service.has_security_questions(user):
        raise ValueError("Please use the security questions endpoint to change your password")
    _set_password(user, new_password)


def change_password_simple(user: User, new_password: Optional[str]) -> None:
    _validate_new_password(new_password)
    _set_password(user, new_password)


def change_password_with_answers(
    user: User,
    current_password: Optional[str],
    new_password: Optional[str],
    answers: Optional[List[str]],
) -> None:
    if not current_password or not new_password or not answers:
        raise ValueError("Current password, new password, and security answers are required")
    _validate_new_password(new_password)
    if not user.check_password(current_password):
        raise InvalidCredentialsError("Current password is incorrect")
    if not security_question_service.has_security_questions(user):
        raise ValueError("Please set up security questions before changing password")

    verification = security_question_service.verify_user_answers(user, answers)
    if not verification.success:
        raise ValueError(verification.message)
    _set_password(user, new_password)


def forgot_password(email: Optional[str]) -> tuple[User, list]:
    """
    Look up the recovery questions for an email.

    Returns:
        (user, questions)
    """
    if not email:
        raise ValueError("Email is required")
    user = get_user_by_email(email)
    if user is None:
        raise UserNotFoundError("No user found with this email address")
    questions = security_question_service.get_user_questions(user)
    if not questions:
        raise ValueError("This user has not set up security questions. Please contact support.")
    return user, questions


def reset_password(email: Optional[str], new_password: Optional[str], answers: Optional[List[str]]) -> None:
    if not email or not new_password or answers is None:
        raise ValueError(
            "Please provide your email address, new password, and security question "
            "answers to reset your password"
        )
    if len(new_password) < MIN_PASSWORD:
        raise ValueError(f"Your new password must be at least {MIN_PASSWORD} characters long")
    if not answers:
        raise ValueError("Please provide your security question answers as a list")

    user = get_user_by_email(email)
    if user is None:
        raise UserNotFoundError("No account found with this email address")
    if not security_question_service.has_security_questions(user):
        raise ValueError("This account has not set up security questions yet")

    verification = security_question_service.verify_user_answers(user, answers)
    if not verification.success:
        raise ValueError(
            "One or more of your security question answers are incorrect. "
            "Please check your answers and try again."
        )
    _set_password(user, new_password)
    logger.info(f"Password reset via security questions for user {user.id}")


def setup_questions_for_forgot_password(payload: SetupQuestionsForgotIn) -> tuple[User, list]:
    """
    Unauthenticated first-time question setup, keyed by email.

    Only accounts with no questions yet can be set up this way; the
    workspace feed gets an entry so admins can spot an unexpected setup.
    """
    if not payload.email:
        raise ValueError("Email is required")
    user = get_user_by_email(payload.email)
    if user is None:
        raise UserNotFoundError("No user found with this email address")
    questions = security_question_service.setup_questions(
        user,
        payload.questions,
        min_count=security_question_service.MIN_QUESTIONS,
    )
    logger.warning(f"Security questions set up without sign-in for user {user.id}")
    log_activity(
        org_id=user.org_id,
        activity_type=ActivityType.SECURITY_QUESTIONS_SET,
        title="Security questions set up",
        description=f"Recovery questions for {user.email} were set up from the forgot-password page",
        performed_by=user,
    )
    return user, questions
