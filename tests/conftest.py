"""Test configuration and fixtures for the library database.

1. Isolated databases - each test gets a fresh in-memory schema
2. Configuration isolation - no LIBRARY_DB_* variables or .env leak in
3. Sample data - the reference books, members and loans on demand
"""

import os
from collections.abc import Generator
from pathlib import Path

import logfire
import pytest
from sqlalchemy.orm import Session

from library_db.config import reset_config
from library_db.database import (
    BookCreateSchema,
    BookRepository,
    CirculationRepository,
    DatabaseManager,
    MemberCreateSchema,
    MemberRepository,
    ReportRepository,
    get_db_manager,
    reset_db_manager,
)
from library_db.seed import SeedSummary, load_sample_data


@pytest.fixture(scope="session", autouse=True)
def quiet_logfire() -> None:
    """Keep circulation spans local and silent during tests."""
    logfire.configure(send_to_logfire=False, console=False)


# === Environment Fixtures ===


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Run every test without LIBRARY_DB_* variables, from an empty directory.

    Changing into ``tmp_path`` keeps a developer's ``.env`` out of the tests
    and puts the default ``data/library.db`` somewhere disposable.
    """
    for key in list(os.environ):
        if key.startswith("LIBRARY_DB_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_config()

    yield

    reset_db_manager()
    reset_config()


# === Database Fixtures ===


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """Global database manager bound to a fresh in-memory database."""
    reset_db_manager()
    manager = get_db_manager("sqlite:///:memory:")
    manager.init_database()
    yield manager
    reset_db_manager()


@pytest.fixture
def file_db_manager(tmp_path: Path) -> Generator[DatabaseManager, None, None]:
    """Database manager on a SQLite file, for tests that need several connections."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'library.db'}")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Provide a database session for tests."""
    session = db_manager.create_session()
    yield session
    session.close()


@pytest.fixture
def sample_data(session: Session) -> SeedSummary:
    """Load the reference data set: 4 books, 4 members, 4 borrow records."""
    return load_sample_data(session)


# === Repository Fixtures ===


@pytest.fixture
def book_repo(session: Session) -> BookRepository:
    return BookRepository(session)


@pytest.fixture
def member_repo(session: Session) -> MemberRepository:
    return MemberRepository(session)


@pytest.fixture
def circulation_repo(session: Session) -> CirculationRepository:
    return CirculationRepository(session)


@pytest.fixture
def report_repo(session: Session) -> ReportRepository:
    return ReportRepository(session)


@pytest.fixture
def make_book(book_repo: BookRepository):
    """Factory for catalog entries with sensible defaults."""

    def _make_book(**overrides):
        data = {
            "title": "The Hobbit",
            "author": "J.R.R. Tolkien",
            "genre": "Fantasy",
            "publication_year": 1937,
            "available_copies": 1,
        }
        data.update(overrides)
        return book_repo.create(BookCreateSchema(**data))

    return _make_book


@pytest.fixture
def make_member(member_repo: MemberRepository):
    """Factory for members with sensible defaults."""

    def _make_member(**overrides):
        data = {"first_name": "Ada", "last_name": "Lovelace"}
        data.update(overrides)
        return member_repo.register(MemberCreateSchema(**data))

    return _make_member
