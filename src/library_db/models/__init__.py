"""
Library database models.

Pydantic models for every entity and query result:

- Book: catalog entries
- Member: registered borrowers
- BorrowRecord / CurrentBorrow: the loan ledger and its open-loan view
- AvailableBook, OverdueLoan, MemberBorrowCount, GenreBorrowCount: report rows
"""

from .book import Book
from .circulation import BorrowRecord, CurrentBorrow
from .member import Member
from .reports import AvailableBook, GenreBorrowCount, MemberBorrowCount, OverdueLoan

__all__ = [
    "AvailableBook",
    "Book",
    "BorrowRecord",
    "CurrentBorrow",
    "GenreBorrowCount",
    "Member",
    "MemberBorrowCount",
    "OverdueLoan",
]
