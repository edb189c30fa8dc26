"""
Member repository implementation for the library database.

Registration, lookup and removal of members. Removing a member removes the
member's whole borrowing history (ON DELETE CASCADE).
"""

from datetime import date

from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import or_, select

from ..models.member import Member as MemberModel
from ..models.member import PHONE_PATTERN, MemberBase, normalize_email
from .repository import BaseRepository
from .schema import Member as MemberDB
from .session import safe_query


class MemberCreateSchema(MemberBase):
    """Schema for registering a new member; join_date defaults to today."""

    join_date: date | None = None


class MemberUpdateSchema(BaseModel):
    """Schema for updating a member - all fields optional."""

    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=50)
    email: EmailStr | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=15, pattern=PHONE_PATTERN)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return normalize_email(v)


class MemberRepository(
    BaseRepository[MemberDB, MemberCreateSchema, MemberUpdateSchema, MemberModel]
):
    """Repository for member data access."""

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel

    def register(self, data: MemberCreateSchema) -> MemberModel:
        """Register a new member (alias of create)."""
        return self.create(data)

    def get_by_email(self, email: str) -> MemberModel | None:
        """Get member by email address; emails are stored lower-cased."""
        query = select(MemberDB).where(MemberDB.email == normalize_email(email))
        result = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get member by email",
        )
        if result is None:
            return None
        return self._to_response_model(result)

    def find_by_name(self, name: str) -> list[MemberModel]:
        """Members whose first or last name contains ``name``."""
        pattern = f"%{name}%"
        query = (
            select(MemberDB)
            .where(or_(MemberDB.first_name.ilike(pattern), MemberDB.last_name.ilike(pattern)))
            .order_by(MemberDB.last_name, MemberDB.first_name)
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to search members",
        )
        return [self._to_response_model(m) for m in results]
