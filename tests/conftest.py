"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import Engine, StaticPool
from sqlalchemy.orm import Session

from chessbot.board.cache import BoardCache
from chessbot.core.config import Settings
from chessbot.core.models import UserId
from chessbot.db.database import create_db_engine, init_db, make_session_factory
from chessbot.db.schema import Base
from chessbot.db.sql_repository import SQLGameStore
from chessbot.services.session_engine import SessionEngine


class RecordingNotifier:
    """Collects every notification instead of sending it anywhere."""

    def __init__(self) -> None:
        self.sent: list[tuple[UserId, str]] = []

    def notify(self, user_id: UserId, text: str) -> None:
        self.sent.append((user_id, text))

    def texts_for(self, user_id: UserId) -> list[str]:
        return [text for recipient, text in self.sent if recipient == user_id]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def memory_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite database. A single shared connection, so only for tests that run on one thread."""
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    init_db(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def file_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """SQLite database file, one connection per thread. Used for tests with concurrent workers."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'chessbot.sqlite3'}", busy_timeout=60)
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def db_session_repo(memory_engine: Engine) -> Generator[Session, None, None]:
    """A plain session on the test database, for exercising the repository directly."""
    db = make_session_factory(memory_engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(memory_engine: Engine) -> SQLGameStore:
    return SQLGameStore(make_session_factory(memory_engine))


@pytest.fixture
def shared_store(file_engine: Engine) -> SQLGameStore:
    return SQLGameStore(make_session_factory(file_engine))


@pytest.fixture
def cache() -> BoardCache:
    return BoardCache()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def session_engine(
    store: SQLGameStore, notifier: RecordingNotifier, cache: BoardCache, settings: Settings
) -> SessionEngine:
    return SessionEngine(store, notifier, cache=cache, settings=settings)
