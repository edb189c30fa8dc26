"""
Book model for the library database.

Pydantic representation of a ``books`` row, returned by the repositories and
used as the base of the create schema. ISBNs are normalized (hyphens and
spaces stripped) before they reach the 13-character column.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_isbn(value: str | None) -> str | None:
    """Strip hyphens and spaces from an ISBN; empty strings become None."""
    if value is None:
        return None
    normalized = value.replace("-", "").replace(" ", "")
    return normalized or None


ISBN_MAX_LENGTH = 13


def check_isbn(value: str | None) -> str | None:
    """Normalize an ISBN and reject it if it does not fit the 13-character column."""
    normalized = normalize_isbn(value)
    if normalized is not None and len(normalized) > ISBN_MAX_LENGTH:
        raise ValueError(f"ISBN must be at most {ISBN_MAX_LENGTH} characters without hyphens")
    return normalized


class BookBase(BaseModel):
    """Fields shared by book input and output models."""

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=100,
        examples=["To Kill a Mockingbird", "1984"],
    )

    author: str = Field(
        ...,
        description="Author name as printed on the book",
        min_length=1,
        max_length=50,
        examples=["Harper Lee", "George Orwell"],
    )

    genre: str | None = Field(
        None,
        description="Literary genre or category of the book",
        max_length=30,
        examples=["Fiction", "Dystopian", "Romance"],
    )

    publication_year: int | None = Field(
        None,
        description="Year the book was published",
        le=datetime.now().year + 1,
        examples=[1813, 1949, 1960],
    )

    isbn: str | None = Field(
        None,
        description="ISBN (unique when present)",
        max_length=17,
        examples=["9780446310789", "978-0-451-52493-5"],
    )

    available_copies: int = Field(
        default=1,
        description="Number of copies currently available for borrowing",
        ge=0,
        examples=[0, 1, 4],
    )

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        """Normalize ISBN by removing hyphens for consistent storage."""
        return check_isbn(v)

    @field_validator("genre")
    @classmethod
    def strip_genre(cls, v: str | None) -> str | None:
        return v.strip() if v else v


class Book(BookBase):
    """A catalog entry as stored in the ``books`` table."""

    id: int = Field(..., description="Surrogate key assigned by the database")

    @property
    def is_available(self) -> bool:
        """Check if the book has any available copies."""
        return self.available_copies > 0

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "To Kill a Mockingbird",
                "author": "Harper Lee",
                "genre": "Fiction",
                "publication_year": 1960,
                "isbn": "9780446310789",
                "available_copies": 3,
            }
        },
    )
