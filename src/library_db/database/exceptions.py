"""
Error taxonomy for the library database.

Everything raised by the repositories derives from ``RepositoryException``.
Constraint failures reported by the engine are translated by
``translate_db_error``; engine errors that are not constraint failures
(connectivity, syntax) are returned unchanged so they reach the caller as-is.
"""

from sqlalchemy.exc import DBAPIError, IntegrityError

from .ddl import BORROW_REJECTED_MESSAGE


class RepositoryException(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryException):
    """Raised when a book, member or borrow record does not exist."""


class ConstraintViolationError(RepositoryException):
    """Raised when a uniqueness, not-null, foreign-key or check constraint fails."""


class BorrowRejectedError(ConstraintViolationError):
    """Raised when a borrow is attempted while no copies are available."""

    def __init__(self, message: str = BORROW_REJECTED_MESSAGE):
        super().__init__(message)


class LoanAlreadyClosedError(RepositoryException):
    """Raised when returning a loan whose return date is already set."""


def is_borrow_rejection(error: BaseException) -> bool:
    """Check whether an engine error was raised by the borrow guard trigger."""
    orig = getattr(error, "orig", None)
    return BORROW_REJECTED_MESSAGE in str(orig if orig is not None else error)


def translate_db_error(error: Exception, operation: str) -> Exception:
    """
    Map an SQLAlchemy error onto the repository taxonomy.

    The guard trigger surfaces differently per engine (IntegrityError on
    SQLite, OperationalError on MySQL, InternalError on PostgreSQL), so it is
    recognised by its message rather than by its class.

    Args:
        error: The exception raised while flushing or committing
        operation: Description of the operation (for error messages)

    Returns:
        The exception to raise in place of ``error``
    """
    if isinstance(error, DBAPIError) and is_borrow_rejection(error):
        return BorrowRejectedError()
    if isinstance(error, IntegrityError):
        return ConstraintViolationError(f"Database operation '{operation}' failed: {error.orig}")
    return error
