from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from fastapi import Depends
from dotenv import load_dotenv
import os
from sqlalchemy.orm import DeclarativeBase

load_dotenv()
SECRET = os.getenv("SECRET", "quizshare-development-secret-change-me")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./quizshare.db")
SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    # timestamps are stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    # sqlite ignores ON DELETE clauses unless the pragma is set per connection
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


connect_args = {}
if SCHEMA_SEARCH_PATH and DATABASE_URL.startswith("postgresql"):
    connect_args["server_settings"] = {"search_path": SCHEMA_SEARCH_PATH}

engine = create_async_engine(DATABASE_URL, connect_args=connect_args, echo=SQL_ECHO)
enable_sqlite_foreign_keys(engine)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():

    from quizshare.models import user_model, quiz_model, answer_model  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    from quizshare.models.user_model import User
    from fastapi_users.db import SQLAlchemyUserDatabase
    yield SQLAlchemyUserDatabase(session, User)
