"""
Circulation models for the library database.

- BorrowRecord: one loan, open until its return date is set
- CurrentBorrow: one row of the ``current_borrows`` view
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class BorrowRecord(BaseModel):
    """
    Represents a loan in the ``borrow_records`` ledger.

    A record is open while ``return_date`` is None.
    """

    id: int = Field(..., description="Surrogate key assigned by the database")
    book_id: int = Field(..., description="Borrowed book")
    member_id: int = Field(..., description="Borrowing member")

    borrow_date: date = Field(
        ...,
        description="Date the book was borrowed",
        examples=["2025-03-01"],
    )

    due_date: date = Field(
        ...,
        description="Date the book should be returned",
        examples=["2025-03-15"],
    )

    return_date: date | None = Field(
        None,
        description="Date the book came back; None while on loan",
        examples=["2025-03-12", None],
    )

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    def is_overdue(self, as_of: date | None = None) -> bool:
        """Check if the loan is open and past its due date."""
        as_of = as_of or date.today()
        return self.is_open and self.due_date < as_of

    @property
    def loan_period_days(self) -> int:
        """Calculate the loan period in days."""
        return (self.due_date - self.borrow_date).days


class CurrentBorrow(BaseModel):
    """One open loan, as exposed by the ``current_borrows`` view."""

    first_name: str
    last_name: str
    title: str
    borrow_date: date
    due_date: date

    model_config = ConfigDict(from_attributes=True)

    @property
    def member_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

