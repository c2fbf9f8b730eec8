from ..db import Base, utcnow
import uuid

from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from fastapi_users_db_sqlalchemy.generics import GUID


class QuizSubmission(Base):
    """One row per (quiz, respondent). The unique constraint makes answers write-once."""

    __tablename__ = "quiz_submissions"
    __table_args__ = (UniqueConstraint("quiz_id", "user_id", name="uq_quiz_submission_user"),)

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(GUID, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Answer(Base):
    __tablename__ = "answers"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    submission_id = Column(GUID, ForeignKey("quiz_submissions.id", ondelete="CASCADE"), nullable=False)
    quiz_id = Column(GUID, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    # question ids change when a quiz is edited, old answers keep their snapshot
    question_id = Column(GUID, ForeignKey("questions.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    answer = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
