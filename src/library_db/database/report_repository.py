"""
Analytical queries over the library database.

Every report is a single SELECT returning Pydantic rows:

- available_books: titles with copies on the shelf
- overdue_loans: open loans past their due date
- borrow_counts_by_member: ledger size per member, members without loans included
- most_borrowed_genre: the genre with the most borrow records
- current_borrows: the ``current_borrows`` view
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models.circulation import CurrentBorrow
from ..models.reports import AvailableBook, GenreBorrowCount, MemberBorrowCount, OverdueLoan
from .ddl import current_borrows_view
from .schema import Book as BookDB
from .schema import BorrowRecord as BorrowDB
from .schema import Member as MemberDB
from .session import safe_query


class ReportRepository:
    """Read-only reports; never writes to the session."""

    def __init__(self, session: Session):
        self.session = session

    def available_books(self) -> list[AvailableBook]:
        """Books with at least one available copy, ordered by title."""
        query = (
            select(BookDB.title, BookDB.author, BookDB.available_copies)
            .where(BookDB.available_copies > 0)
            .order_by(BookDB.title, BookDB.id)
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to list available books",
        )
        return [AvailableBook.model_validate(row, from_attributes=True) for row in rows]

    def overdue_loans(self, as_of: date | None = None) -> list[OverdueLoan]:
        """
        Open loans whose due date is strictly before ``as_of``.

        A loan due on ``as_of`` itself is not overdue yet.

        Args:
            as_of: Reference date; defaults to today
        """
        as_of = as_of or date.today()
        query = (
            select(MemberDB.first_name, MemberDB.last_name, BookDB.title, BorrowDB.due_date)
            .join(BorrowDB, MemberDB.id == BorrowDB.member_id)
            .join(BookDB, BorrowDB.book_id == BookDB.id)
            .where(BorrowDB.return_date.is_(None), BorrowDB.due_date < as_of)
            .order_by(BorrowDB.due_date, BorrowDB.id)
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to list overdue loans",
        )
        return [OverdueLoan.model_validate(row, from_attributes=True) for row in rows]

    def borrow_counts_by_member(self) -> list[MemberBorrowCount]:
        """
        Number of borrow records per member, open and closed alike.

        Members who never borrowed appear with a count of zero. Grouping is by
        member id, so two members sharing a name are counted separately.
        """
        query = (
            select(
                MemberDB.id.label("member_id"),
                MemberDB.first_name,
                MemberDB.last_name,
                func.count(BorrowDB.id).label("books_borrowed"),
            )
            .outerjoin(BorrowDB, MemberDB.id == BorrowDB.member_id)
            .group_by(MemberDB.id, MemberDB.first_name, MemberDB.last_name)
            .order_by(MemberDB.id)
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to count borrows per member",
        )
        return [MemberBorrowCount.model_validate(row, from_attributes=True) for row in rows]

    def most_borrowed_genre(self) -> GenreBorrowCount | None:
        """
        The genre with the most borrow records, or None for an empty ledger.

        Ties are broken by genre name, ascending.
        """
        borrow_count = func.count(BorrowDB.id).label("borrow_count")
        query = (
            select(BookDB.genre, borrow_count)
            .join(BorrowDB, BookDB.id == BorrowDB.book_id)
            .group_by(BookDB.genre)
            .order_by(borrow_count.desc(), BookDB.genre.asc())
            .limit(1)
        )
        row = safe_query(
            self.session,
            lambda s: s.execute(query).first(),
            "Failed to find most borrowed genre",
        )
        if row is None:
            return None
        return GenreBorrowCount.model_validate(row, from_attributes=True)

    def current_borrows(self) -> list[CurrentBorrow]:
        """Rows of the ``current_borrows`` view, earliest due first."""
        view = current_borrows_view.c
        query = select(current_borrows_view).order_by(view.due_date, view.last_name, view.first_name)
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to read current borrows",
        )
        return [CurrentBorrow.model_validate(row, from_attributes=True) for row in rows]
