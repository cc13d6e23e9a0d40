"""
Security questions for password recovery.

Answers are normalized (lower-cased, stripped) and hashed with bcrypt.
Verification compares answers positionally against the user's questions
in creation order.
"""
import logging
from typing import Iterable, List, Optional, Tuple

import bcrypt
from django.conf import settings
from django.db import transaction

from .dtos import SecurityQuestionDTO, VerificationResult
from .models import PredefinedQuestion, SecurityQuestion, User

logger = logging.getLogger(__name__)

MIN_QUESTIONS = 2
MAX_QUESTIONS = 5
MIN_ANSWER_LENGTH = 2


class QuestionsAlreadyExistError(ValueError):
    """User already has security questions configured."""


class NoQuestionsError(ValueError):
    """User has not configured any security questions."""


# =============================================================================
# Hashing
# =============================================================================

def normalize_answer(answer: str) -> str:
    return answer.lower().strip()


def hash_answer(answer: str) -> str:
    rounds = getattr(settings, 'BCRYPT_ROUNDS', 12)
    hashed = bcrypt.hashpw(normalize_answer(answer).encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def check_answer(answer: str, answer_hash: str) -> bool:
    try:
        return bcrypt.checkpw(normalize_answer(answer).encode('utf-8'), answer_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Malformed security answer hash encountered")
        return False


# =============================================================================
# Predefined questions
# =============================================================================

def list_predefined_questions() -> List[PredefinedQuestion]:
    return list(PredefinedQuestion.objects.filter(is_active=True).order_by('category', 'question'))


def list_categories() -> List[str]:
    return list(
        PredefinedQuestion.objects.filter(is_active=True)
        .order_by('category')
        .values_list('category', flat=True)
        .distinct()
    )


def validate_question_ids(question_ids: Optional[List[int]]) -> Tuple[bool, Optional[str]]:
    """
    Returns:
        Tuple of (is_valid, error_message)
    """
    if not question_ids:
        return False, "Question IDs array is required"

    unique_ids = set(question_ids)
    found = PredefinedQuestion.objects.filter(id__in=unique_ids, is_active=True).count()
    if found != len(unique_ids):
        return False, "One or more question IDs are invalid or inactive"
    return True, None


# =============================================================================
# User questions
# =============================================================================

def _user_questions_qs(user: User):
    return (
        SecurityQuestion.objects
        .filter(user=user, predefined_question__is_active=True)
        .select_related('predefined_question')
        .order_by('id')
    )


def _to_dto(sq: SecurityQuestion) -> SecurityQuestionDTO:
    return SecurityQuestionDTO(
        id=sq.id,
        predefined_question_id=sq.predefined_question_id,
        question=sq.predefined_question.question,
        category=sq.predefined_question.category,
    )


def get_user_questions(user: User) -> List[SecurityQuestionDTO]:
    return [_to_dto(sq) for sq in _user_questions_qs(user)]


def has_security_questions(user: User) -> bool:
    return _user_questions_qs(user).exists()


def _validate_new_questions(questions: Optional[list], min_count: int, max_count: int) -> List[int]:
    """
    Shared validation for question/answer payloads.

    Returns the list of predefined question ids.
    """
    if not questions or len(questions) < min_count:
        if min_count > 1:
            raise ValueError(f"At least {min_count} security questions are required")
        raise ValueError("At least 1 security question is required")
    if len(questions) > max_count:
        raise ValueError(f"Maximum {max_count} security questions allowed")

    for q in questions:
        if not q.predefined_question_id or not q.answer:
            raise ValueError("Each question must have a predefined_question_id and answer")
        if len(q.answer.strip()) < MIN_ANSWER_LENGTH:
            raise ValueError(f"Answer must be at least {MIN_ANSWER_LENGTH} characters long")

    question_ids = [q.predefined_question_id for q in questions]
    is_valid, error = validate_question_ids(question_ids)
    if not is_valid:
        raise ValueError(error)
    if len(set(question_ids)) != len(question_ids):
        raise ValueError("Duplicate questions are not allowed")
    return question_ids


def _create_questions(user: User, questions: Iterable) -> None:
    SecurityQuestion.objects.bulk_create([
        SecurityQuestion(
            user=user,
            predefined_question_id=q.predefined_question_id,
            answer_hash=hash_answer(q.answer.strip()),
        )
        for q in questions
    ])


def setup_questions(user: User, questions: Optional[list], min_count: int = 1) -> List[SecurityQuestionDTO]:
    """
    First-time setup of a user's security questions.

    Raises:
        ValueError: invalid payload
        QuestionsAlreadyExistError: user already has questions
    """
    _validate_new_questions(questions, min_count, MAX_QUESTIONS)

    with transaction.atomic():
        if SecurityQuestion.objects.select_for_update().filter(user=user).exists():
            raise QuestionsAlreadyExistError(
                "User already has security questions set up. Use update endpoint to modify them."
            )
        _create_questions(user, questions)

    logger.info(f"Security questions set up for user {user.id}")
    return get_user_questions(user)


def verify_user_answers(user: User, answers: List[str]) -> VerificationResult:
    questions = list(_user_questions_qs(user))
    if not questions:
        return VerificationResult(False, "No security questions found")
    if len(questions) != len(answers):
        return VerificationResult(False, "Number of answers doesn't match number of questions")

    for question, answer in zip(questions, answers):
        if not isinstance(answer, str) or not check_answer(answer, question.answer_hash):
            return VerificationResult(False, "One or more security question answers are incorrect")

    return VerificationResult(True, "All security questions answered correctly")


def update_answers(user: User, answers: Optional[List[str]]) -> List[SecurityQuestionDTO]:
    """Replace the answers of all existing questions, positionally."""
    if not answers:
        raise ValueError("Answers array is required and cannot be empty")

    questions = list(_user_questions_qs(user))
    if not questions:
        raise NoQuestionsError(
            "You have not set up any security questions yet. Please set them up first."
        )
    if len(answers) != len(questions):
        raise ValueError(
            f"You have {len(questions)} security questions. "
            f"Please provide exactly {len(questions)} answers."
        )
    for i, answer in enumerate(answers):
        if not answer or len(answer.strip()) < MIN_ANSWER_LENGTH:
            raise ValueError(f"Answer {i + 1} must be at least {MIN_ANSWER_LENGTH} characters long")

    with transaction.atomic():
        for question, answer in zip(questions, answers):
            question.answer_hash = hash_answer(answer.strip())
            question.save(update_fields=['answer_hash', 'updated_at'])

    return get_user_questions(user)


def add_questions(user: User, questions: Optional[list]) -> Tuple[int, int]:
    """
    Add questions on top of the existing ones.

    Returns:
        (added_count, total_count)
    """
    if not questions:
        raise ValueError("At least 1 new security question is required")
    if len(questions) > MAX_QUESTIONS:
        raise ValueError(f"You can add up to {MAX_QUESTIONS} security questions at once")

    current_ids = set(
        SecurityQuestion.objects.filter(user=user).values_list('predefined_question_id', flat=True)
    )
    if len(current_ids) + len(questions) > MAX_QUESTIONS:
        raise ValueError(
            f"You currently have {len(current_ids)} questions. Adding {len(questions)} more "
            f"would exceed the maximum of {MAX_QUESTIONS} questions."
        )

    question_ids = _validate_new_questions(questions, 1, MAX_QUESTIONS)
    if current_ids.intersection(question_ids):
        raise ValueError("You cannot add questions that you already have set up")

    with transaction.atomic():
        _create_questions(user, questions)

    total = SecurityQuestion.objects.filter(user=user).count()
    return len(questions), total


def delete_questions(user: User, question_ids: Optional[List[int]]) -> Tuple[int, int]:
    """
    Delete some of the user's questions; at least one must remain.

    Returns:
        (deleted_count, remaining_count)
    """
    if not question_ids:
        raise ValueError("Question IDs array is required and cannot be empty")

    owned = set(SecurityQuestion.objects.filter(user=user).values_list('id', flat=True))
    if not owned:
        raise NoQuestionsError("You have not set up any security questions yet")

    invalid = [qid for qid in question_ids if qid not in owned]
    if invalid:
        raise ValueError(
            f"Question IDs {', '.join(str(i) for i in invalid)} do not belong to your account"
        )

    to_delete = set(question_ids)
    if len(owned - to_delete) < 1:
        raise ValueError("You must have at least 1 security question. Cannot delete all questions.")

    deleted, _ = SecurityQuestion.objects.filter(user=user, id__in=to_delete).delete()
    return deleted, len(owned) - deleted
