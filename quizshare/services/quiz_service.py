import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import utcnow
from ..errors import AlreadySubmitted, Forbidden, InternalError, NotFound, ValidationFailed
from ..models.answer_model import Answer, QuizSubmission
from ..models.quiz_model import Question, Quiz
from .grading_service import build_answer_rows

logger = logging.getLogger(__name__)


async def get_quiz(session: AsyncSession, quiz_id) -> Quiz:
    res = await session.execute(select(Quiz).where(Quiz.id == quiz_id))
    quiz = res.scalar_one_or_none()
    if not quiz:
        raise NotFound("Quiz not found")
    return quiz


async def get_owned_quiz(session: AsyncSession, quiz_id, user) -> Quiz:
    # only the creator may read, edit, publish, delete or see results
    quiz = await get_quiz(session, quiz_id)
    if quiz.creator_id != user.id:
        raise Forbidden()
    return quiz


async def get_published_quiz(session: AsyncSession, shareable_id: str) -> Quiz:
    res = await session.execute(
        select(Quiz).where(Quiz.shareable_id == shareable_id, Quiz.published == True)  # noqa: E712
    )
    quiz = res.scalar_one_or_none()
    if not quiz:
        raise NotFound("Quiz not found")
    return quiz


async def get_ordered_questions(session: AsyncSession, quiz_id) -> List[Question]:
    stmt = select(Question).where(Question.quiz_id == quiz_id).order_by(Question.order)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def count_questions(session: AsyncSession, quiz_id) -> int:
    res = await session.execute(select(func.count()).select_from(Question).where(Question.quiz_id == quiz_id))
    return res.scalar_one() or 0


async def has_answered(session: AsyncSession, quiz_id, user_id) -> bool:
    res = await session.execute(
        select(Answer.id).where(Answer.quiz_id == quiz_id, Answer.user_id == user_id).limit(1)
    )
    return res.first() is not None


def question_to_dict(q: Question, include_answer: bool = True) -> Dict[str, Any]:
    out = {
        "id": q.id,
        "question": q.question,
        "question_image": q.question_image,
        "options": q.options or [],
        "option_images": q.option_images,
        "order": q.order,
    }
    if include_answer:
        out["correct_answer"] = q.correct_answer
    return out


def quiz_to_dict(quiz: Quiz, questions: List[Question]) -> Dict[str, Any]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "published": quiz.published,
        "shareable_id": quiz.shareable_id,
        "creator_id": quiz.creator_id,
        "created_at": quiz.created_at,
        "updated_at": quiz.updated_at,
        "questions": [question_to_dict(q) for q in sorted(questions, key=lambda q: q.order)],
    }


def quiz_to_public_dict(quiz: Quiz, questions: List[Question]) -> Dict[str, Any]:
    # correct answers must never reach someone taking the quiz
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "questions": [question_to_dict(q, include_answer=False) for q in sorted(questions, key=lambda q: q.order)],
    }


def answer_to_dict(a: Answer) -> Dict[str, Any]:
    return {
        "question_id": a.question_id,
        "answer": a.answer,
        "is_correct": a.is_correct,
    }


def _build_questions(quiz_id, questions: List[Dict[str, Any]]) -> List[Question]:
    # order is the position in the submitted list
    out = []
    for idx, q in enumerate(questions):
        out.append(Question(
            id=uuid.uuid4(),
            quiz_id=quiz_id,
            question=q["question"],
            question_image=q.get("question_image") or None,
            options=list(q["options"]),
            option_images=q.get("option_images"),
            correct_answer=q["correct_answer"],
            order=idx,
        ))
    return out


async def commit(session: AsyncSession, context: str, **ids) -> None:
    """Commit the unit of work, or roll all of it back and report a generic failure."""
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Database error while %s (%s)", context, ", ".join(f"{k}={v}" for k, v in ids.items()))
        raise InternalError()


async def create_quiz(session: AsyncSession, payload: Dict[str, Any], user) -> tuple[Quiz, List[Question]]:
    quiz = Quiz(
        id=uuid.uuid4(),
        title=payload["title"],
        description=payload.get("description"),
        published=payload.get("published") is True,
        creator_id=user.id,
    )
    session.add(quiz)
    # parent row first, questions reference it
    await session.flush()

    questions = _build_questions(quiz.id, payload["questions"])
    session.add_all(questions)
    await commit(session, "creating quiz", user_id=user.id)
    return quiz, questions


async def replace_quiz(session: AsyncSession, quiz: Quiz, payload: Dict[str, Any]) -> List[Question]:
    """
    Overwrite the quiz fields and its whole question list.

    Old questions are deleted and new ones inserted in the same transaction,
    so a failure leaves the previous question set intact.
    """
    quiz.title = payload["title"]
    quiz.description = payload.get("description")
    # publishing is one-way; an update can publish but never unpublish
    if payload.get("published") is True:
        quiz.published = True
    quiz.updated_at = utcnow()
    session.add(quiz)

    await session.execute(delete(Question).where(Question.quiz_id == quiz.id))
    questions = _build_questions(quiz.id, payload["questions"])
    session.add_all(questions)
    await commit(session, "updating quiz", quiz_id=quiz.id)
    return questions


async def delete_quiz(session: AsyncSession, quiz: Quiz) -> None:
    # remove dependants first so the delete works without FK cascades too
    await session.execute(delete(Answer).where(Answer.quiz_id == quiz.id))
    await session.execute(delete(QuizSubmission).where(QuizSubmission.quiz_id == quiz.id))
    await session.execute(delete(Question).where(Question.quiz_id == quiz.id))
    await session.execute(delete(Quiz).where(Quiz.id == quiz.id))
    await commit(session, "deleting quiz", quiz_id=quiz.id)


def check_publishable(questions: List[Question]) -> None:
    if len(questions) == 0:
        raise ValidationFailed("Cannot publish quiz with no questions")
    for q in questions:
        if not (q.question or "").strip() or not q.correct_answer:
            raise ValidationFailed("All questions must be complete before publishing")


async def publish_quiz(session: AsyncSession, quiz: Quiz) -> List[Question]:
    questions = await get_ordered_questions(session, quiz.id)
    check_publishable(questions)
    quiz.published = True
    session.add(quiz)
    await commit(session, "publishing quiz", quiz_id=quiz.id)
    return questions


async def clone_quiz(session: AsyncSession, quiz: Quiz, user) -> Quiz:
    """Copy a quiz into a new draft owned by ``user``."""
    if quiz.creator_id != user.id and not await has_answered(session, quiz.id, user.id):
        raise Forbidden("Only the creator or a respondent can clone this quiz")

    originals = await get_ordered_questions(session, quiz.id)
    new_quiz = Quiz(
        id=uuid.uuid4(),
        title=f"{quiz.title} (Copy)",
        description=quiz.description,
        published=False,
        creator_id=user.id,
    )
    session.add(new_quiz)
    await session.flush()

    session.add_all([
        Question(
            id=uuid.uuid4(),
            quiz_id=new_quiz.id,
            question=q.question,
            question_image=q.question_image,
            options=list(q.options or []),
            option_images=list(q.option_images) if q.option_images is not None else None,
            correct_answer=q.correct_answer,
            order=idx,
        )
        for idx, q in enumerate(originals)
    ])
    await commit(session, "cloning quiz", quiz_id=quiz.id, user_id=user.id)
    return new_quiz


async def submit_answers(session: AsyncSession, quiz: Quiz, user, answers: Dict[str, str], questions: List[Question]) -> None:
    """
    Record the caller's one and only answer set for ``quiz``.

    The existence check is a fast path; the unique constraint on
    quiz_submissions decides the winner when two submissions race.
    """
    # a rollback expires loaded instances, keep plain ids for logging
    quiz_id, user_id = quiz.id, user.id
    if await has_answered(session, quiz_id, user_id):
        raise AlreadySubmitted()

    submission = QuizSubmission(id=uuid.uuid4(), quiz_id=quiz_id, user_id=user_id)
    session.add(submission)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        logger.info("Duplicate submission rejected for quiz_id=%s user_id=%s", quiz_id, user_id)
        raise AlreadySubmitted()

    rows = build_answer_rows(quiz_id, user_id, submission.id, answers, questions)
    session.add_all([Answer(**row) for row in rows])
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info("Duplicate submission rejected for quiz_id=%s user_id=%s", quiz_id, user_id)
        raise AlreadySubmitted()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Database error while submitting answers for quiz_id=%s user_id=%s", quiz_id, user_id)
        raise InternalError()


async def get_answers(session: AsyncSession, quiz_id, user_id=None) -> List[Answer]:
    stmt = select(Answer).where(Answer.quiz_id == quiz_id)
    if user_id is not None:
        stmt = stmt.where(Answer.user_id == user_id)
    res = await session.execute(stmt.order_by(Answer.created_at))
    return list(res.scalars().all())
