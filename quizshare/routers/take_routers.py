import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import require_user
from ..errors import NotFound, Unauthorized
from ..models.user_model import User
from ..schemas.quiz_schema import SelfResults, SubmitResponse, TakeQuizResponse
from ..security import current_optional_user
from ..services import quiz_service
from ..services.aggregation_service import score_answers
from ..services.validation_service import validate_answer_keys, validate_answer_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz/take", tags=["Take quiz"])


@router.get("/{shareable_id}", response_model=TakeQuizResponse)
async def get_quiz_to_take(
    shareable_id: str,
    user: User | None = Depends(current_optional_user),
    session: AsyncSession = Depends(get_async_session),
):
    # public view of a published quiz, correct answers stripped
    quiz = await quiz_service.get_published_quiz(session, shareable_id)
    questions = await quiz_service.get_ordered_questions(session, quiz.id)

    already_taken = False
    if user is not None:
        already_taken = await quiz_service.has_answered(session, quiz.id, user.id)

    return {"quiz": quiz_service.quiz_to_public_dict(quiz, questions), "already_taken": already_taken}


@router.post("/{shareable_id}/submit", response_model=SubmitResponse)
async def submit_quiz(
    shareable_id: str,
    payload: Dict[str, Any] = Body(...),
    user: User | None = Depends(current_optional_user),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Record the caller's answers. Allowed exactly once per quiz and user;
    the score is not returned here, it is read from the results view.
    """
    # an unknown link is a 404 whether or not the caller is signed in
    quiz = await quiz_service.get_published_quiz(session, shareable_id)
    if user is None:
        raise Unauthorized()
    questions = await quiz_service.get_ordered_questions(session, quiz.id)

    answers = validate_answer_payload(payload, len(questions))
    validate_answer_keys(answers, [q.id for q in questions])

    await quiz_service.submit_answers(session, quiz, user, answers, questions)
    logger.info("Quiz %s submitted by user %s", shareable_id, user.id)
    return {"success": True}


@router.get("/{shareable_id}/results", response_model=SelfResults)
async def get_my_results(
    shareable_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_async_session),
):
    quiz = await quiz_service.get_published_quiz(session, shareable_id)
    questions = await quiz_service.get_ordered_questions(session, quiz.id)

    answers = await quiz_service.get_answers(session, quiz.id, user.id)
    if not answers:
        raise NotFound("You haven't taken this quiz yet")

    return {
        "quiz": quiz_service.quiz_to_dict(quiz, questions),
        "user_answers": [quiz_service.answer_to_dict(a) for a in answers],
        "score": score_answers(answers),
        "total": len(questions),
    }
