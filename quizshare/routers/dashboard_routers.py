from fastapi import APIRouter, Depends
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import require_user
from ..models.answer_model import Answer, QuizSubmission
from ..models.quiz_model import Quiz
from ..models.user_model import User
from ..schemas.quiz_schema import DashboardResponse
from ..services import quiz_service
from ..services.aggregation_service import average_score, clamp_page, page_info, score_answers

router = APIRouter(tags=["Dashboard"])


@router.get("/quizzes", response_model=DashboardResponse)
async def list_my_quizzes(
    created_limit: int | None = None,
    created_skip: int | None = None,
    taken_limit: int | None = None,
    taken_skip: int | None = None,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Dashboard lists for the caller, each paginated on its own:
    - created: quizzes the caller owns, with question and respondent counts
    - taken: published quizzes the caller answered, with their score and the average
    """
    created_limit, created_skip = clamp_page(created_limit, created_skip)
    taken_limit, taken_skip = clamp_page(taken_limit, taken_skip)

    # created quizzes
    created_total = (await session.execute(
        select(func.count()).select_from(Quiz).where(Quiz.creator_id == user.id)
    )).scalar_one() or 0

    stmt = (
        select(Quiz)
        .where(Quiz.creator_id == user.id)
        .order_by(Quiz.created_at.desc())
        .offset(created_skip)
        .limit(created_limit)
    )
    created = (await session.execute(stmt)).scalars().all()

    created_out = []
    for quiz in created:
        question_count = await quiz_service.count_questions(session, quiz.id)
        respondents = (await session.execute(
            select(func.count(distinct(Answer.user_id))).where(Answer.quiz_id == quiz.id)
        )).scalar_one() or 0
        created_out.append({
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "published": quiz.published,
            "shareable_id": quiz.shareable_id,
            "created_at": quiz.created_at,
            "updated_at": quiz.updated_at,
            "question_count": question_count,
            "respondent_count": respondents,
        })

    # taken quizzes
    taken_filter = (
        Quiz.published == True,  # noqa: E712
        QuizSubmission.user_id == user.id,
    )
    taken_total = (await session.execute(
        select(func.count()).select_from(Quiz).join(QuizSubmission, QuizSubmission.quiz_id == Quiz.id).where(*taken_filter)
    )).scalar_one() or 0

    stmt = (
        select(Quiz, QuizSubmission.created_at)
        .join(QuizSubmission, QuizSubmission.quiz_id == Quiz.id)
        .where(*taken_filter)
        .order_by(Quiz.created_at.desc())
        .offset(taken_skip)
        .limit(taken_limit)
    )
    taken = (await session.execute(stmt)).all()

    taken_out = []
    for quiz, submitted_at in taken:
        answers = await quiz_service.get_answers(session, quiz.id)
        mine = [a for a in answers if a.user_id == user.id]
        taken_out.append({
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "shareable_id": quiz.shareable_id,
            "created_at": quiz.created_at,
            "user_score": score_answers(mine),
            "total_questions": await quiz_service.count_questions(session, quiz.id),
            "avg_score": average_score(answers),
            "date_taken": min((a.created_at for a in mine), default=submitted_at),
        })

    return {
        "created_quizzes": created_out,
        "taken_quizzes": taken_out,
        "pagination": {
            "created": page_info(created_total, created_limit, created_skip),
            "taken": page_info(taken_total, taken_limit, taken_skip),
        },
    }
