"""
SQLAlchemy database schema for the library circulation system.

Three tables make up the model:

1. ``books`` - the catalog, with a running count of copies on the shelf
2. ``members`` - registered borrowers
3. ``borrow_records`` - the ledger of loans; a NULL ``return_date`` marks an
   open loan

Deleting a book or a member removes its borrow records through
``ON DELETE CASCADE``. The ORM relationships use ``passive_deletes`` so the
engine, not the session, performs that cascade. The guard trigger and the
``current_borrows`` view live in ``ddl.py``.
"""

from datetime import date

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

# Base class for all SQLAlchemy models
Base = declarative_base()

# Portable "today" default for rows inserted with plain SQL
CURRENT_DATE_DEFAULT = text("(CURRENT_DATE)")


class Book(Base):
    """
    Books table - the library catalog.

    ``available_copies`` is decremented when a copy is borrowed and
    incremented when it comes back. It never goes below zero.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(100), nullable=False)
    author = Column(String(50), nullable=False)
    genre = Column(String(30), nullable=True)
    publication_year = Column(Integer, nullable=True)
    isbn = Column(String(13), nullable=True, unique=True)
    available_copies = Column(Integer, nullable=False, default=1, server_default=text("1"))

    # Relationships
    borrow_records = relationship(
        "BorrowRecord",
        back_populates="book",
        cascade="all",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_genre", "genre"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint("length(isbn) <= 13", name="check_isbn_length"),
    )

    @property
    def is_available(self) -> bool:
        """Check if at least one copy can be borrowed."""
        return self.available_copies > 0

    def __repr__(self) -> str:
        return f"<Book id={self.id} title={self.title!r} available={self.available_copies}>"


class Member(Base):
    """
    Members table - registered library members.

    ``join_date`` defaults to the day the row is created.
    """

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), nullable=True, unique=True)
    phone = Column(String(15), nullable=True)
    join_date = Column(Date, nullable=False, default=date.today, server_default=CURRENT_DATE_DEFAULT)

    # Relationships
    borrow_records = relationship(
        "BorrowRecord",
        back_populates="member",
        cascade="all",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_member_last_name", "last_name"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Member id={self.id} name={self.full_name!r}>"


class BorrowRecord(Base):
    """
    Borrow records table - one row per loan.

    Inserts are gated by the ``prevent_borrow_if_no_copies`` trigger. The
    return date is written once, when the loan is closed.
    """

    __tablename__ = "borrow_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    borrow_date = Column(
        Date, nullable=False, default=date.today, server_default=CURRENT_DATE_DEFAULT
    )
    return_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=False)

    # Relationships
    book = relationship("Book", back_populates="borrow_records")
    member = relationship("Member", back_populates="borrow_records")

    # Indexes for common queries
    __table_args__ = (
        Index("idx_borrow_book", "book_id"),
        Index("idx_borrow_member", "member_id"),
        Index("idx_borrow_due_date", "due_date"),
    )

    @property
    def is_open(self) -> bool:
        """An open loan has no return date yet."""
        return self.return_date is None

    def __repr__(self) -> str:
        return (
            f"<BorrowRecord id={self.id} book_id={self.book_id} "
            f"member_id={self.member_id} open={self.is_open}>"
        )
