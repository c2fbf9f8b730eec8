from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from .user_schema import UserPublic


class QuestionPublic(BaseModel):
    """A question as shown to someone taking the quiz: no correct answer."""
    id: UUID
    question: str
    question_image: Optional[str] = None
    options: List[str]
    option_images: Optional[List[Optional[str]]] = None
    order: int


class QuestionRead(QuestionPublic):
    correct_answer: str


class QuizRead(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    published: bool
    shareable_id: str
    creator_id: UUID
    created_at: datetime
    updated_at: datetime
    # ordered by Question.order
    questions: List[QuestionRead] = []


class QuizPublic(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    questions: List[QuestionPublic] = []


class TakeQuizResponse(BaseModel):
    quiz: QuizPublic
    already_taken: bool = False


class CloneResponse(BaseModel):
    quiz_id: UUID


class SubmitResponse(BaseModel):
    success: bool = True


class AnswerRead(BaseModel):
    question_id: Optional[UUID] = None
    answer: Optional[str] = None
    is_correct: bool


class SelfResults(BaseModel):
    quiz: QuizRead
    user_answers: List[AnswerRead]
    score: int
    total: int


class ParticipantResult(BaseModel):
    user: UserPublic
    score: int
    total: int
    date_taken: datetime
    answers: List[AnswerRead]


class OwnerResults(BaseModel):
    quiz: QuizRead
    participants: List[ParticipantResult]
    participant_count: int
    average_score: float


class PageInfo(BaseModel):
    total: int
    limit: int
    skip: int
    has_more: bool


class CreatedQuizSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    published: bool
    shareable_id: str
    created_at: datetime
    updated_at: datetime
    question_count: int
    respondent_count: int


class TakenQuizSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    shareable_id: str
    created_at: datetime
    user_score: int
    total_questions: int
    avg_score: float
    date_taken: datetime


class DashboardPagination(BaseModel):
    created: PageInfo
    taken: PageInfo


class DashboardResponse(BaseModel):
    created_quizzes: List[CreatedQuizSummary] = Field(default_factory=list)
    taken_quizzes: List[TakenQuizSummary] = Field(default_factory=list)
    pagination: DashboardPagination


class ImportPreview(BaseModel):
    total: int
    preview: List[dict]
