import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from quizshare.app import app
from quizshare.db import Base, enable_sqlite_foreign_keys, get_async_session
from quizshare.models import answer_model, quiz_model, user_model  # noqa: F401

PASSWORD = "correct-horse-battery"


@pytest.fixture
def db_file(tmp_path):
    # fresh sqlite file per test, tables created up front
    path = tmp_path / "quizshare-test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def db_session(db_file):
    """A plain synchronous session on the test database, for seeding rows directly."""
    engine = create_engine(f"sqlite:///{db_file}", poolclass=NullPool)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture
def client(db_file):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Register a user and return bearer headers for them."""
    def _login(email, full_name="Quiz User"):
        r = client.post("/auth/register", json={"email": email, "password": PASSWORD, "full_name": full_name})
        assert r.status_code == 201, r.text
        r = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}
    return _login


def _make_quiz_payload(n_questions=2, **overrides):
    questions = []
    for i in range(n_questions):
        questions.append({
            "question": f"Q{i + 1}",
            "options": ["A", "B", "C"],
            "correct_answer": "A",
        })
    payload = {"title": "General knowledge", "description": "A short quiz", "questions": questions}
    payload.update(overrides)
    return payload


@pytest.fixture
def quiz_payload():
    return _make_quiz_payload


@pytest.fixture
def published_quiz(client, login):
    """A published two-question quiz; returns (owner headers, quiz json)."""
    owner = login("owner@quizshare.io", "Quiz Owner")
    r = client.post("/api/quiz", json=_make_quiz_payload(2), headers=owner)
    assert r.status_code == 201, r.text
    quiz = r.json()
    r = client.post(f"/api/quiz/{quiz['id']}/publish", headers=owner)
    assert r.status_code == 200, r.text
    return owner, r.json()
