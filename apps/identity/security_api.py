"""
Security question endpoints (password recovery setup and verification).
"""
from dataclasses import asdict
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from .decorators import require_auth
from .dtos import (
    SetupQuestionsIn, VerifyAnswersIn, ChangePasswordWithAnswersIn,
    UpdateAnswersIn, DeleteQuestionsIn,
)
from .services import change_password_with_answers, InvalidCredentialsError
from . import security_question_service as sq_service

router = Router(tags=["Security Questions"])

GUIDELINES = {
    "predefined": {
        "description": "Choose from our curated list of secure questions",
        "benefits": [
            "Tested for security",
            "Easy to remember",
            "Hard to guess",
            "No personal information required",
        ],
        "endpoint": "/api/security-questions/predefined-questions",
    },
    "custom": {
        "description": "Create your own questions",
        "requirements": [
            "Minimum 15 characters long",
            "Cannot contain personal information (name, email, password, etc.)",
            "Should be memorable but not easily guessable",
            "Avoid questions that might change over time",
        ],
        "examples": {
            "good": [
                "What was the name of your favorite childhood book?",
                "What was the first concert you ever attended?",
                "What was the name of your first boss?",
                "What was your favorite subject in college?",
            ],
            "bad": [
                "What is your name?",
                "What is your email address?",
                "What is your phone number?",
                "What is your birthday?",
            ],
        },
        "warning": "Custom questions are less secure than predefined ones. Use with caution.",
    },
}


def _questions_out(questions) -> list:
    return [asdict(q) for q in questions]


# =============================================================================
# Catalog
# =============================================================================

@router.get("/predefined-questions", auth=None)
def predefined_questions(request: HttpRequest):
    """Active predefined questions grouped with their categories."""
    questions = sq_service.list_predefined_questions()
    return {
        "message": "Predefined security questions retrieved successfully",
        "questions": [
            {"id": q.id, "question": q.question, "category": q.category}
            for q in questions
        ],
        "categories": sq_service.list_categories(),
        "info": {
            "minRequired": sq_service.MIN_QUESTIONS,
            "maxAllowed": sq_service.MAX_QUESTIONS,
            "totalAvailable": len(questions),
        },
    }


@router.get("/guidelines", auth=None)
def guidelines(request: HttpRequest):
    return {
        "message": "Security question guidelines retrieved successfully",
        "guidelines": GUIDELINES,
    }


# =============================================================================
# User questions
# =============================================================================

@router.get("/check", auth=None)
def check_questions(request: HttpRequest):
    user = require_auth(request)
    has_questions = sq_service.has_security_questions(user)
    return {
        "hasSecurityQuestions": has_questions,
        "message": (
            "User has security questions set up" if has_questions
            else "User needs to set up security questions"
        ),
    }


@router.get("/user-questions", auth=None)
def user_questions(request: HttpRequest):
    user = require_auth(request)
    return {
        "message": "User security questions retrieved successfully",
        "questions": _questions_out(sq_service.get_user_questions(user)),
    }


@router.post("/setup", response={201: dict}, auth=None)
def setup_questions(request: HttpRequest, payload: SetupQuestionsIn):
    """First-time setup of 1 to 5 questions."""
    user = require_auth(request)
    try:
        questions = sq_service.setup_questions(user, payload.questions)
    except sq_service.QuestionsAlreadyExistError as e:
        raise HttpError(409, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, {
        "message": "Security questions set up successfully",
        "questions": _questions_out(questions),
    }


@router.post("/verify", auth=None)
def verify_answers(request: HttpRequest, payload: VerifyAnswersIn):
    user = require_auth(request)
    if not payload.answers:
        raise HttpError(400, "Answers array is required")

    verification = sq_service.verify_user_answers(user, payload.answers)
    if not verification.success:
        raise HttpError(400, verification.message)
    return {"message": "Security questions verified successfully", "verified": True}


@router.post("/change-password", auth=None)
def change_password(request: HttpRequest, payload: ChangePasswordWithAnswersIn):
    """Change password after answering the security questions."""
    user = require_auth(request)
    try:
        change_password_with_answers(
            user, payload.currentPassword, payload.newPassword, payload.securityAnswers
        )
    except InvalidCredentialsError as e:
        raise HttpError(401, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return {"message": "Password changed successfully", "success": True}


@router.put("/update-answers", auth=None)
def update_answers(request: HttpRequest, payload: UpdateAnswersIn):
    user = require_auth(request)
    try:
        questions = sq_service.update_answers(user, payload.answers)
    except sq_service.NoQuestionsError as e:
        raise HttpError(404, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return {
        "message": "Security question answers updated successfully",
        "questions": _questions_out(questions),
    }


@router.post("/add", response={201: dict}, auth=None)
def add_questions(request: HttpRequest, payload: SetupQuestionsIn):
    user = require_auth(request)
    try:
        added, total = sq_service.add_questions(user, payload.questions)
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, {
        "message": "Security questions added successfully",
        "addedCount": added,
        "totalCount": total,
        "questions": _questions_out(sq_service.get_user_questions(user)),
    }


@router.delete("/delete", auth=None)
def delete_questions(request: HttpRequest, payload: DeleteQuestionsIn):
    user = require_auth(request)
    try:
        deleted, remaining = sq_service.delete_questions(user, payload.questionIds)
    except sq_service.NoQuestionsError as e:
        raise HttpError(404, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return {
        "message": "Security questions deleted successfully",
        "deletedCount": deleted,
        "remainingCount": remaining,
    }
