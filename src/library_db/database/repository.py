"""
Repository pattern implementation for the library database.

Repositories keep SQLAlchemy out of calling code:

1. **Separation**: callers work with Pydantic models, never with ORM rows
2. **Testability**: repositories take a session, so tests can hand in their own
3. **Consistency**: every write goes through ``safe_commit`` and surfaces the
   same error taxonomy (see ``exceptions.py``)

The base repository provides the common CRUD operations; the book, member,
circulation and report repositories add the domain-specific ones.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from .schema import Base
from .session import safe_commit, safe_query

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        """Validate pagination parameters."""
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 100:
            raise ValueError("Page size must be between 1 and 100")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for list operations."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common CRUD operations.

    Entities are addressed by their integer surrogate key.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: int) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == id)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.entity_name} by ID",
        )

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> list[ResponseSchemaType] | PaginatedResponse[ResponseSchemaType]:
        """
        Get all entities with optional pagination and sorting.

        Args:
            pagination: Pagination parameters
            order_by: Field name to order by (defaults to the primary key)
            order_desc: Whether to order descending

        Returns:
            List of entities, or a paginated response when pagination is given
        """
        query = select(self.model_class)

        order_field = self.model_class.id
        if order_by and hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
        query = query.order_by(desc(order_field) if order_desc else asc(order_field))

        if pagination:
            pagination.validate_params()

            count_query = select(func.count()).select_from(self.model_class)
            total = (
                safe_query(
                    self.session,
                    lambda s: s.execute(count_query).scalar(),
                    "Failed to get total count",
                )
                or 0
            )

            query = query.offset(pagination.offset).limit(pagination.page_size)
            results = safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get paginated results",
            )

            return PaginatedResponse(
                items=[self._to_response_model(item) for item in results],
                total=total,
                page=pagination.page,
                page_size=pagination.page_size,
                total_pages=(total + pagination.page_size - 1) // pagination.page_size,
                has_next=pagination.page * pagination.page_size < total,
                has_previous=pagination.page > 1,
            )

        results = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to get all results"
        )
        return [self._to_response_model(item) for item in results]

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity.

        Raises:
            ConstraintViolationError: If a unique or not-null constraint fails
        """
        db_obj = self.model_class(**data.model_dump(exclude_none=True))
        self.session.add(db_obj)
        safe_commit(self.session, f"create {self.entity_name}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType | None:
        """
        Update existing entity.

        Only fields explicitly set on ``data`` are written.

        Returns:
            Updated entity or None if not found

        Raises:
            ConstraintViolationError: If the new values break a constraint
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)

        safe_commit(self.session, f"update {self.entity_name}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def delete(self, id: int) -> bool:
        """
        Delete entity by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return False

        self.session.delete(db_obj)
        safe_commit(self.session, f"delete {self.entity_name}")
        return True

    def exists(self, id: int) -> bool:
        """Check if entity exists by ID."""
        query = select(func.count()).select_from(self.model_class).where(self.model_class.id == id)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return count > 0

    def count(self) -> int:
        """Count all entities."""
        query = select(func.count()).select_from(self.model_class)
        return safe_query(self.session, lambda s: s.execute(query).scalar(), "Failed to count") or 0
