"""
Circulation repository implementation for the library database.

This repository manages the loan ledger:

1. **Borrowing**: the atomic borrow - guard, ledger insert and copy decrement
   in a single transaction
2. **Returns**: closing a loan exactly once and putting the copy back
3. **Ledger inserts**: raw borrow records without touching the copy count,
   for loading historical data
4. **Lookups**: open loans and per-member history

The ``prevent_borrow_if_no_copies`` trigger guards every insert into
``borrow_records``, including the ones made here. ``borrow_book`` additionally
locks the book row and decrements its copy count with a conditional UPDATE,
so the check, the insert and the decrement either all happen or none do.
"""

import logging
from datetime import date, timedelta

import logfire
from pydantic import BaseModel, model_validator
from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from ..config import get_config
from ..models.circulation import BorrowRecord as BorrowModel
from .book_repository import BookRepository
from .exceptions import BorrowRejectedError, LoanAlreadyClosedError, NotFoundError
from .schema import Book as BookDB
from .schema import BorrowRecord as BorrowDB
from .schema import Member as MemberDB
from .session import safe_commit, safe_flush, safe_query

logger = logging.getLogger(__name__)


class BorrowCreateSchema(BaseModel):
    """Schema for borrowing a book."""

    book_id: int
    member_id: int
    borrow_date: date | None = None  # If not provided, today
    due_date: date | None = None  # If not provided, borrow date + default loan period

    @model_validator(mode="after")
    def validate_dates(self) -> "BorrowCreateSchema":
        if self.borrow_date and self.due_date and self.due_date < self.borrow_date:
            raise ValueError("Due date cannot be before borrow date")
        return self


class LedgerEntrySchema(BorrowCreateSchema):
    """Schema for a raw ledger insert; may describe an already closed loan."""

    due_date: date
    return_date: date | None = None


class CirculationRepository:
    """
    Repository for circulation operations.

    Coordinates writes across ``books`` and ``borrow_records``; every public
    write is one transaction.
    """

    def __init__(self, session: Session, default_loan_days: int | None = None):
        """Initialize with database session and the book repository."""
        self.session = session
        self.book_repo = BookRepository(session)
        self.default_loan_days = (
            default_loan_days if default_loan_days is not None else get_config().default_loan_days
        )

    def borrow_book(self, borrow_data: BorrowCreateSchema) -> BorrowModel:
        """
        Lend a copy of a book to a member.

        1. Locks the book row (SELECT ... FOR UPDATE where the engine supports it)
        2. Inserts the borrow record; the guard trigger rejects it when no
           copies are left
        3. Decrements ``available_copies`` with a conditional UPDATE
        4. Commits, or rolls everything back on any failure

        Args:
            borrow_data: Book, member and optional dates

        Returns:
            The new, open borrow record

        Raises:
            NotFoundError: If the book or member does not exist
            BorrowRejectedError: If no copies are available
        """
        with logfire.span(
            "circulation.borrow_book",
            book_id=borrow_data.book_id,
            member_id=borrow_data.member_id,
        ):
            book = safe_query(
                self.session,
                lambda s: s.execute(
                    select(BookDB).where(BookDB.id == borrow_data.book_id).with_for_update()
                ).scalar_one_or_none(),
                "Failed to get book for borrowing",
            )
            if book is None:
                self.session.rollback()
                raise NotFoundError(f"Book {borrow_data.book_id} not found")

            member = safe_query(
                self.session,
                lambda s: s.get(MemberDB, borrow_data.member_id),
                "Failed to get member for borrowing",
            )
            if member is None:
                self.session.rollback()
                raise NotFoundError(f"Member {borrow_data.member_id} not found")

            borrow_date = borrow_data.borrow_date or date.today()
            due_date = borrow_data.due_date or borrow_date + timedelta(days=self.default_loan_days)

            record = BorrowDB(
                book_id=book.id,
                member_id=member.id,
                borrow_date=borrow_date,
                due_date=due_date,
            )
            self.session.add(record)
            safe_flush(self.session, "borrow book")

            if not self.book_repo.decrement_available_copies(book.id, commit=False):
                self.session.rollback()
                raise BorrowRejectedError()

            safe_commit(self.session, "borrow book")
            self.session.refresh(record)

            logger.info(
                "Book %s lent to member %s (record %s, due %s)",
                record.book_id,
                record.member_id,
                record.id,
                record.due_date,
            )
            return self._to_model(record)

    def record_borrow(self, entry: LedgerEntrySchema) -> BorrowModel:
        """
        Insert a ledger row without changing the book's copy count.

        The guard trigger still applies. Useful for loading historical loans
        whose copies are already accounted for in ``available_copies``.

        Raises:
            BorrowRejectedError: If the book has no copies available
            ConstraintViolationError: If the book or member does not exist
        """
        record = BorrowDB(
            book_id=entry.book_id,
            member_id=entry.member_id,
            borrow_date=entry.borrow_date or date.today(),
            due_date=entry.due_date,
            return_date=entry.return_date,
        )
        self.session.add(record)
        safe_commit(self.session, "record borrow")
        self.session.refresh(record)
        return self._to_model(record)

    def return_book(self, borrow_id: int, return_date: date | None = None) -> BorrowModel:
        """
        Close a loan and put the copy back on the shelf.

        The return date is written with a conditional UPDATE (``return_date IS
        NULL``), so a loan can be closed only once even under concurrent calls.

        Args:
            borrow_id: Borrow record to close
            return_date: Defaults to today

        Returns:
            The closed borrow record

        Raises:
            NotFoundError: If the borrow record does not exist
            LoanAlreadyClosedError: If the loan was already returned
        """
        with logfire.span("circulation.return_book", borrow_id=borrow_id):
            record = safe_query(
                self.session,
                lambda s: s.get(BorrowDB, borrow_id),
                "Failed to get borrow record for return",
            )
            if record is None:
                self.session.rollback()
                raise NotFoundError(f"Borrow record {borrow_id} not found")
            if record.return_date is not None:
                returned_on = record.return_date
                self.session.rollback()
                raise LoanAlreadyClosedError(
                    f"Borrow record {borrow_id} was already returned on {returned_on}"
                )

            return_date = return_date or date.today()
            if return_date < record.borrow_date:
                self.session.rollback()
                raise ValueError("Return date cannot be before borrow date")

            result = safe_query(
                self.session,
                lambda s: s.execute(
                    update(BorrowDB)
                    .where(BorrowDB.id == borrow_id, BorrowDB.return_date.is_(None))
                    .values(return_date=return_date)
                    .execution_options(synchronize_session=False)
                ),
                "Failed to close borrow record",
            )
            if result.rowcount != 1:
                self.session.rollback()
                raise LoanAlreadyClosedError(f"Borrow record {borrow_id} was already returned")

            self.book_repo.increment_available_copies(record.book_id, commit=False)
            safe_commit(self.session, "return book")
            self.session.refresh(record)

            logger.info("Borrow record %s closed on %s", borrow_id, return_date)
            return self._to_model(record)

    def get_borrow(self, borrow_id: int) -> BorrowModel | None:
        """Get a borrow record by ID."""
        record = safe_query(
            self.session,
            lambda s: s.get(BorrowDB, borrow_id),
            "Failed to get borrow record",
        )
        return self._to_model(record) if record else None

    def get_open_loans(self, member_id: int | None = None) -> list[BorrowModel]:
        """
        Open loans ordered by due date, optionally for one member.

        Args:
            member_id: Filter by member
        """
        query = select(BorrowDB).where(BorrowDB.return_date.is_(None))
        if member_id is not None:
            query = query.where(BorrowDB.member_id == member_id)
        query = query.order_by(BorrowDB.due_date, BorrowDB.id)

        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get open loans",
        )
        return [self._to_model(r) for r in results]

    def get_member_history(self, member_id: int) -> list[BorrowModel]:
        """All loans of a member, most recent first."""
        query = (
            select(BorrowDB)
            .where(BorrowDB.member_id == member_id)
            .order_by(desc(BorrowDB.borrow_date), desc(BorrowDB.id))
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get member history",
        )
        return [self._to_model(r) for r in results]

    def _to_model(self, record: BorrowDB) -> BorrowModel:
        """Convert borrow DB object to Pydantic model."""
        return BorrowModel.model_validate(record, from_attributes=True)
