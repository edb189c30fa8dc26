"""
Database package for the library circulation system.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- The borrow guard trigger and the current_borrows view (ddl.py)
- Session management and connection handling (session.py)
- Repositories for books, members, circulation and reports

Importing the package registers the trigger and view DDL, so any
``Base.metadata.create_all()`` builds the complete schema.
"""

from .book_repository import BookCreateSchema, BookRepository, BookSearchParams, BookUpdateSchema
from .circulation_repository import BorrowCreateSchema, CirculationRepository, LedgerEntrySchema
from .ddl import BORROW_REJECTED_MESSAGE, TRIGGER_NAME, VIEW_NAME, current_borrows_view
from .exceptions import (
    BorrowRejectedError,
    ConstraintViolationError,
    LoanAlreadyClosedError,
    NotFoundError,
    RepositoryException,
)
from .member_repository import MemberCreateSchema, MemberRepository, MemberUpdateSchema
from .report_repository import ReportRepository
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Base, Book, BorrowRecord, Member
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    safe_commit,
    safe_flush,
    safe_query,
    session_scope,
)

__all__ = [
    "BORROW_REJECTED_MESSAGE",
    "TRIGGER_NAME",
    "VIEW_NAME",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "BookSearchParams",
    "BookUpdateSchema",
    "BorrowCreateSchema",
    "BorrowRecord",
    "BorrowRejectedError",
    "CirculationRepository",
    "ConstraintViolationError",
    "DatabaseManager",
    "LedgerEntrySchema",
    "LoanAlreadyClosedError",
    "Member",
    "MemberCreateSchema",
    "MemberRepository",
    "MemberUpdateSchema",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "ReportRepository",
    "RepositoryException",
    "current_borrows_view",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "safe_commit",
    "safe_flush",
    "safe_query",
    "session_scope",
]
