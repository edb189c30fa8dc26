"""
Book repository implementation for the library database.

Catalog data access:

1. **Catalog entry**: create, update and delete books (delete cascades to
   the book's borrow records)
2. **Lookup**: by surrogate key, by ISBN, by title/author/genre filters
3. **Availability**: the guarded decrement used when a copy leaves the shelf,
   and the matching increment when it comes back
"""

import logging
from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import and_, select, update

from ..models.book import Book as BookModel
from ..models.book import BookBase, check_isbn, normalize_isbn
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Book as BookDB
from .session import safe_commit, safe_query

logger = logging.getLogger(__name__)


class BookCreateSchema(BookBase):
    """Schema for creating a new book - same fields as the base model."""


class BookUpdateSchema(BaseModel):
    """Schema for updating a book - all fields optional."""

    title: str | None = Field(None, min_length=1, max_length=100)
    author: str | None = Field(None, min_length=1, max_length=50)
    genre: str | None = Field(None, max_length=30)
    publication_year: int | None = Field(None, le=datetime.now().year + 1)
    isbn: str | None = Field(None, max_length=17)
    available_copies: int | None = Field(None, ge=0)

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        return check_isbn(v)

    @field_validator("genre")
    @classmethod
    def strip_genre(cls, v: str | None) -> str | None:
        return v.strip() if v else v


class BookSearchParams(BaseModel):
    """Search parameters for finding books."""

    title: str | None = None  # Title contains
    author: str | None = None  # Author contains
    genre: str | None = None  # Exact genre match
    available_only: bool = False  # Only show books with copies on the shelf


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """Repository for book data access."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def get_by_isbn(self, isbn: str) -> BookModel | None:
        """
        Get book by ISBN.

        Args:
            isbn: ISBN with or without hyphens

        Returns:
            Book model or None if not found
        """
        query = select(BookDB).where(BookDB.isbn == normalize_isbn(isbn))
        result = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by ISBN",
        )
        if result is None:
            return None
        return self._to_response_model(result)

    def search(
        self,
        search_params: BookSearchParams,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[BookModel]:
        """
        Search for books with title/author/genre filters, ordered by title.

        Args:
            search_params: Search and filter criteria
            pagination: Pagination parameters

        Returns:
            Paginated response with matching books
        """
        filters = []
        if search_params.title:
            filters.append(BookDB.title.ilike(f"%{search_params.title}%"))
        if search_params.author:
            filters.append(BookDB.author.ilike(f"%{search_params.author}%"))
        if search_params.genre:
            filters.append(BookDB.genre == search_params.genre)
        if search_params.available_only:
            filters.append(BookDB.available_copies > 0)

        query = select(BookDB)
        if filters:
            query = query.where(and_(*filters))
        query = query.order_by(BookDB.title.asc(), BookDB.id.asc())

        pagination = pagination or PaginationParams()
        pagination.validate_params()

        all_matches = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to search books",
        )
        total = len(all_matches)
        page_items = all_matches[pagination.offset : pagination.offset + pagination.page_size]

        return PaginatedResponse(
            items=[self._to_response_model(book) for book in page_items],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )

    def decrement_available_copies(self, book_id: int, commit: bool = True) -> bool:
        """
        Take one copy off the shelf.

        The UPDATE only matches while ``available_copies > 0``, so it can never
        drive the count negative, even under concurrent callers.

        Args:
            book_id: Book to update
            commit: Commit immediately; pass False to join a larger transaction

        Returns:
            True if a copy was taken, False if none was available or the
            book does not exist
        """
        statement = (
            update(BookDB)
            .where(BookDB.id == book_id, BookDB.available_copies > 0)
            .values(available_copies=BookDB.available_copies - 1)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session,
            lambda s: s.execute(statement),
            "Failed to decrement available copies",
        )
        self._expire_cached(book_id)
        changed = result.rowcount == 1
        if commit:
            safe_commit(self.session, "decrement available copies")
        logger.debug("Decrement copies of book %s: %s", book_id, "ok" if changed else "none left")
        return changed

    def increment_available_copies(self, book_id: int, commit: bool = True) -> bool:
        """Put one copy back on the shelf; returns False if the book does not exist."""
        statement = (
            update(BookDB)
            .where(BookDB.id == book_id)
            .values(available_copies=BookDB.available_copies + 1)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session,
            lambda s: s.execute(statement),
            "Failed to increment available copies",
        )
        self._expire_cached(book_id)
        if commit:
            safe_commit(self.session, "increment available copies")
        return result.rowcount == 1

    def _expire_cached(self, book_id: int) -> None:
        """Drop the stale copy count of a book loaded in this session."""
        key = self.session.identity_key(BookDB, book_id)
        cached = self.session.identity_map.get(key)
        if cached is not None:
            self.session.expire(cached, ["available_copies"])
