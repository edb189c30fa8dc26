"""
Database session management for the library database.

This module provides connection management and session handling for
SQLAlchemy. Proper session management matters here because:

1. Atomicity: a borrow (guard, insert, decrement) is one transaction
2. Foreign keys: SQLite only enforces them when asked, per connection
3. Isolation: each unit of work gets its own short-lived session

Sessions should be used through ``session_scope()`` so that every unit of
work is committed or rolled back and always closed.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from . import ddl
from .exceptions import translate_db_error
from .schema import Base

# Configure logging for database operations
logger = logging.getLogger(__name__)

T = TypeVar("T")

EXPECTED_TABLES = frozenset({"books", "members", "borrow_records"})


def _is_memory_url(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in database_url


class DatabaseManager:
    """
    Manages the engine and sessions for the library database.

    This class provides:
    - Lazy engine creation with per-dialect settings
    - Foreign key enforcement for SQLite connections
    - Session factory with explicit transactions
    - Schema creation and teardown (tables, trigger and view)
    """

    def __init__(self, database_url: str | None = None, echo: bool | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, taken from configuration.
            echo: Echo SQL statements. If None, taken from configuration.
        """
        config = get_config()
        if database_url is None:
            database_url = config.get_database_url()
            logger.info("Using database from configuration: %s", database_url)

        self.database_url = database_url
        self.echo = config.echo_sql if echo is None else echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        SQLite engines get foreign keys switched on for every new connection;
        an in-memory database is pinned to a single connection (StaticPool)
        so that every session sees the same data.
        """
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                engine_kwargs = {
                    "connect_args": {"check_same_thread": False},
                    "echo": self.echo,
                }
                if _is_memory_url(self.database_url):
                    engine_kwargs["poolclass"] = StaticPool

                self._engine = create_engine(self.database_url, **engine_kwargs)

                # ON DELETE CASCADE is a no-op in SQLite without this pragma
                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                # PostgreSQL, MySQL or other server databases
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=self.echo,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                # Keep objects usable after commit
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """
        Create a new database session.

        Sessions should be used with context managers or properly closed
        to prevent connection leaks.
        """
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            book = session.get(Book, 1)
        # Session is automatically committed or rolled back
        ```

        Raises:
            Any database errors are logged and re-raised
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the schema: tables, the borrow guard trigger and the view.

        Args:
            drop_existing: If True, drop everything first (DROP DATABASE IF EXISTS)
        """
        if drop_existing:
            self.drop_database()

        logger.info(
            "Creating database tables, trigger %s and view %s", ddl.TRIGGER_NAME, ddl.VIEW_NAME
        )
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database initialization complete")

    def drop_database(self) -> None:
        """Drop the view, the trigger and every table."""
        logger.warning("Dropping all existing tables...")
        Base.metadata.drop_all(bind=self.engine)

    def table_names(self) -> set[str]:
        """Names of the tables currently present."""
        return set(inspect(self.engine).get_table_names())

    def view_names(self) -> set[str]:
        """Names of the views currently present."""
        return set(inspect(self.engine).get_view_names())

    def verify_connection(self) -> bool:
        """
        Verify the database connection is working.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Close and forget the global database manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """
    Get a new database session.

    Prefer using session_scope() for proper transaction management.
    """
    return get_db_manager().create_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Convenience context manager for database sessions.

    Example:
        ```python
        with session_scope() as session:
            books = session.query(Book).all()
        ```
    """
    with get_db_manager().session_scope() as session:
        yield session


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit a session, rolling back and translating constraint failures.

    Args:
        session: The database session
        operation: Description of the operation (for error messages)

    Raises:
        ConstraintViolationError: If a constraint rejected the changes
        BorrowRejectedError: If the borrow guard trigger rejected an insert
    """
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        translated = translate_db_error(e, operation)
        if translated is e:
            raise
        raise translated from e


def safe_flush(session: Session, operation: str) -> None:
    """Flush pending changes with the same error translation as safe_commit."""
    try:
        session.flush()
    except SQLAlchemyError as e:
        session.rollback()
        translated = translate_db_error(e, operation)
        if translated is e:
            raise
        raise translated from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, translating engine errors like safe_commit does.

    Constraint failures become repository exceptions; any other engine error
    (missing table, lost connection) is re-raised unchanged.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Error message prefix

    Returns:
        Query result
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed: %s", error_msg)
        translated = translate_db_error(e, error_msg)
        if translated is e:
            raise
        raise translated from e
