import logging
import os
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from ..db import get_async_session
from ..dependencies import require_user
from ..errors import ValidationFailed
from ..models.answer_model import Answer
from ..models.user_model import User
from ..schemas.quiz_schema import CloneResponse, ImportPreview, OwnerResults, QuizRead
from ..services import quiz_service
from ..services.aggregation_service import average_score, respondent_summaries
from ..services.excel_service import parse_excel
from ..services.validation_service import validate_questions, validate_quiz_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["Quizzes"])


@router.post("", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    payload: Dict[str, Any] = Body(...),
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_async_session),
):
    validate_quiz_payload(payload)
    quiz, questions = await quiz_service.create_quiz(session, payload, user)
    logger.info("Quiz %s created by user %s with %d questions", quiz.id, user.id, len(questions))
    return quiz_service.quiz_to_dict(quiz, questions)


# Upload Excel & Preview
@router.post("/import", response_model=ImportPreview)
async def import_questions(file: UploadFile = File(...), user: User = Depends(require_user)):
    #  check file extension and return parsed preview
    file_extension = os.path.splitext(file.filename or "")[1].lower()
    allowed_extension = {".xlsx", ".xlsm", ".xls", ".xlsb", ".ods"}

    if file_extension not in allowed_extension:
        raise ValidationFailed(f"Invalid file extension. Only {sorted(allowed_extension)} are allowed.")
    try:
        preview = parse_excel(file.file)
    except KeyError as e:
        raise ValidationFailed(
            f"Column not found :{str(e)}. Please check the column in uploaded file. "
            "file must contain these columns [question, options(json), correct_answer]. "
            "Columns are case sensitive, so remove spaces or unusual characters from columns."
        )
    except ValueError as e:
        raise ValidationFailed(f"Could not read spreadsheet: {e}")

    validate_questions(preview)
    return {"total": len(preview), "preview": preview}


@router.get("/{quiz_id}", response_model=QuizRead)
async def get_quiz(quiz_id: UUID, user: User = Depends(require_user), session: AsyncSession = Depends(get_async_session)):
    quiz = await quiz_service.get_owned_quiz(session, quiz_id, user)
    questions = await quiz_service.get_ordered_questions(session, quiz.id)
    return quiz_service.quiz_to_dict(quiz, questions)


@router.put("/{quiz_id}", response_model=QuizRead)
async def update_quiz(
    quiz_id: UUID,
    payload: Dict[str, Any] = Body(...),
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_async_session),
):
    validate_quiz_payload(payload)
    quiz = await quiz_service.get_owned_quiz(session, quiz_id, user)
    questions = await quiz_service.replace_quiz(session, quiz, payload)
    return quiz_service.quiz_to_dict(quiz, questions)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(quiz_id: UUID, user: User = Depends(require_user), session: AsyncSession = Depends(get_async_session)):
    quiz = await quiz_service.get_owned_quiz(session, quiz_id, user)
    await quiz_service.delete_quiz(session, quiz)
    logger.info("Quiz %s deleted by user %s", quiz_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{quiz_id}/publish", response_model=QuizRead)
async def publish_quiz(quiz_id: UUID, user: User = Depends(require_user), session: AsyncSession = Depends(get_async_session)):
    quiz = await quiz_service.get_owned_quiz(session, quiz_id, user)
    questions = await quiz_service.publish_quiz(session, quiz)
    return quiz_service.quiz_to_dict(quiz, questions)


@router.post("/{quiz_id}/clone", response_model=CloneResponse, status_code=status.HTTP_201_CREATED)
async def clone_quiz(quiz_id: UUID, user: User = Depends(require_user), session: AsyncSession = Depends(get_async_session)):
    quiz = await quiz_service.get_quiz(session, quiz_id)
    new_quiz = await quiz_service.clone_quiz(session, quiz, user)
    return {"quiz_id": new_quiz.id}


@router.get("/{quiz_id}/results", response_model=OwnerResults)
async def get_quiz_results(quiz_id: UUID, user: User = Depends(require_user), session: AsyncSession = Depends(get_async_session)):
    """
    Creator view over every respondent: per-user score and date taken,
    plus the participant count and average score.
    """
    quiz = await quiz_service.get_owned_quiz(session, quiz_id, user)
    questions = await quiz_service.get_ordered_questions(session, quiz.id)

    stmt = (
        select(Answer, User)
        .join(User, User.id == Answer.user_id)
        .where(Answer.quiz_id == quiz.id)
        .order_by(Answer.created_at)
    )
    rows = (await session.execute(stmt)).all()
    answers = [a for a, _ in rows]
    users = {u.id: u for _, u in rows}

    participants = []
    for summary in respondent_summaries(answers, len(questions)):
        respondent = users[summary["user_id"]]
        participants.append({
            "user": {"id": respondent.id, "email": respondent.email, "full_name": respondent.full_name},
            "score": summary["score"],
            "total": summary["total"],
            "date_taken": summary["date_taken"],
            "answers": [quiz_service.answer_to_dict(a) for a in summary["answers"]],
        })

    return {
        "quiz": quiz_service.quiz_to_dict(quiz, questions),
        "participants": participants,
        "participant_count": len(participants),
        "average_score": average_score(answers),
    }
