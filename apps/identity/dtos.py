"""DTOs for Identity app."""
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID
from typing import Optional, List


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    username: str
    email: str
    name: str
    role: str
    org_id: Optional[UUID]
    is_active: bool
    balance: Decimal
    free_minutes_remaining: int
    has_claimed_free_number: bool
    permissions: List[str]


@dataclass(frozen=True)
class SecurityQuestionDTO:
    id: int
    predefined_question_id: int
    question: str
    category: str


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    message: str


from ninja import Schema
from pydantic import Field
from .models import UserRole

class UserCreate(Schema):
    username: str
    email: str
    password: str
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = UserRole.STAFF
    phone: Optional[str] = None


class UserUpdate(Schema):
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class RegisterIn(Schema):
    name: str = Field(..., max_length=255)
    email: str
    password: str


class LoginIn(Schema):
    email: str
    password: str


class ChangePasswordIn(Schema):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class ChangePasswordSimpleIn(Schema):
    newPassword: Optional[str] = None


class ForgotPasswordIn(Schema):
    email: Optional[str] = None


class ResetPasswordIn(Schema):
    email: Optional[str] = None
    newPassword: Optional[str] = None
    securityAnswers: Optional[List[str]] = None


class QuestionAnswerIn(Schema):
    predefined_question_id: Optional[int] = None
    answer: Optional[str] = None


class SetupQuestionsIn(Schema):
    questions: Optional[List[QuestionAnswerIn]] = None


class SetupQuestionsForgotIn(Schema):
    email: Optional[str] = None
    questions: Optional[List[QuestionAnswerIn]] = None


class VerifyAnswersIn(Schema):
    answers: Optional[List[str]] = None


class ChangePasswordWithAnswersIn(Schema):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None
    securityAnswers: Optional[List[str]] = None


class UpdateAnswersIn(Schema):
    answers: Optional[List[str]] = None


class DeleteQuestionsIn(Schema):
    questionIds: Optional[List[int]] = None
