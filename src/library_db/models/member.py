"""
Member model for the library database.

Represents a registered library member who can borrow books.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PHONE_PATTERN = r"^\+?[\d\s\-\(\)]+$"


def normalize_email(value: str | None) -> str | None:
    """Lower-case an email address so uniqueness and lookups agree."""
    return value.lower() if value else value


class MemberBase(BaseModel):
    """Fields shared by member input and output models."""

    first_name: str = Field(
        ...,
        description="Given name of the member",
        min_length=1,
        max_length=50,
        examples=["John", "Jane"],
    )

    last_name: str = Field(
        ...,
        description="Family name of the member",
        min_length=1,
        max_length=50,
        examples=["Doe", "Smith"],
    )

    email: EmailStr | None = Field(
        None,
        description="Email address (unique when present)",
        max_length=100,
        examples=["john.doe@email.com"],
    )

    phone: str | None = Field(
        None,
        description="Contact phone number",
        max_length=15,
        pattern=PHONE_PATTERN,
        examples=["555-0101"],
    )

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return normalize_email(v)


class Member(MemberBase):
    """A member as stored in the ``members`` table."""

    id: int = Field(..., description="Surrogate key assigned by the database")

    join_date: date = Field(
        ...,
        description="Date the member registered",
        examples=["2023-01-15"],
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    model_config = ConfigDict(from_attributes=True)
