from ..db import Base, utcnow
import json
import secrets
import uuid

from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.types import TypeDecorator
from fastapi_users_db_sqlalchemy.generics import GUID


"""
Quizzes and Questions
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `title` | VARCHAR(200) | |
| `description` | VARCHAR(1000) | nullable |
| `published` | BOOLEAN | Default `false` |
| `shareable_id` | VARCHAR | unique public token for the take link |
| `creator_id` | UUID | FK -> Users |

### Questions
| Column | Type | Notes |
| :--- | :--- | :--- |
| `quiz_id` | UUID | FK -> Quizzes, cascade |
| `options` | TEXT | JSON encoded list of strings |
| `option_images` | TEXT | JSON encoded list of data URLs or nulls |
| `order` | INTEGER | 0-based position in the quiz |
"""


class JSONList(TypeDecorator):
    """A list stored as JSON text. Callers only ever see Python lists."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return json.loads(value)


def generate_shareable_id() -> str:
    return secrets.token_urlsafe(12)


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)
    published = Column(Boolean, default=False, nullable=False)
    shareable_id = Column(String(32), unique=True, nullable=False, default=generate_shareable_id)
    creator_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Question(Base):
    __tablename__ = "questions"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(GUID, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(String(500), nullable=False)
    question_image = Column(Text, nullable=True)
    options = Column(JSONList, nullable=False)
    option_images = Column(JSONList, nullable=True)
    correct_answer = Column(String, nullable=False)
    order = Column(Integer, nullable=False)
