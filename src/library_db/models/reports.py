"""Result rows of the analytical queries in ``ReportRepository``."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class AvailableBook(BaseModel):
    """A book with at least one copy on the shelf."""

    title: str
    author: str
    available_copies: int = Field(..., ge=1)

    model_config = ConfigDict(from_attributes=True)


class OverdueLoan(BaseModel):
    """An open loan whose due date has passed."""

    first_name: str
    last_name: str
    title: str
    due_date: date

    model_config = ConfigDict(from_attributes=True)

    def days_overdue(self, as_of: date) -> int:
        return (as_of - self.due_date).days


class MemberBorrowCount(BaseModel):
    """Number of borrow records (open or closed) for one member."""

    member_id: int
    first_name: str
    last_name: str
    books_borrowed: int = Field(..., ge=0)

    model_config = ConfigDict(from_attributes=True)


class GenreBorrowCount(BaseModel):
    """Borrow count for one genre; genre is None for books without one."""

    genre: str | None
    borrow_count: int = Field(..., ge=1)

    model_config = ConfigDict(from_attributes=True)
