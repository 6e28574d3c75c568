"""
SQLAlchemy declarative base and common model mixins.

This module provides the DeclarativeBase shared by every sandtrack table,
mixins for UUID primary keys, timestamps and optimistic version counters,
and the portable column types used so the same models run on PostgreSQL in
deployment and on SQLite in the test suite.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

from sqlalchemy import JSON, DateTime, Integer, Uuid, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from sandtrack.core.clock import utc_now
from sandtrack.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound="Base")

# JSON documents are stored as JSONB on PostgreSQL
JSONType = JSON().with_variant(JSONB(), "postgresql")


def enum_column_type(enum_cls: Type[Enum], name: str) -> SQLEnum:
    """
    Build a string-backed enum column type storing member values.

    Args:
        enum_cls: Python enum class
        name: Constraint name for the generated CHECK

    Returns:
        SQLAlchemy Enum type usable on every supported dialect
    """
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models with async support.

    Provides dictionary conversion and a primary-key based repr.
    """

    __abstract__ = True

    def to_dict(self, exclude: Optional[set[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            exclude: Set of attribute names to exclude from output

        Returns:
            Dictionary representation of the model columns
        """
        exclude = exclude or set()
        result = {}

        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif isinstance(value, uuid.UUID):
                result[column.name] = str(value)
            elif isinstance(value, Enum):
                result[column.name] = value.value
            else:
                result[column.name] = value

        return result

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """
        Create model instance from dictionary, ignoring unknown keys.

        Raises:
            ValueError: If the instance cannot be constructed
        """
        filtered_data = {
            key: value for key, value in data.items() if hasattr(cls, key)
        }
        try:
            return cls(**filtered_data)
        except (TypeError, ValueError) as e:
            logger.error(
                "Failed to create model from dictionary",
                model=cls.__name__,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ValueError(
                f"Failed to create {cls.__name__} from dictionary: {e}"
            ) from e

    def __repr__(self) -> str:
        pk_values = []
        for column in self.__table__.primary_key.columns:
            value = getattr(self, column.key, None)
            if value is not None:
                pk_values.append(f"{column.name}={value!r}")

        pk_str = ", ".join(pk_values) if pk_values else "no primary key"
        return f"<{self.__class__.__name__}({pk_str})>"


class TimestampMixin:
    """
    Mixin for created_at/updated_at columns.

    Values are assigned in Python so they are available on the instance
    right after flush; the server default covers rows written by migrations.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utc_now,
            server_default=func.now(),
            comment="Timestamp when record was created",
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utc_now,
            onupdate=utc_now,
            server_default=func.now(),
            comment="Timestamp when record was last updated",
        )


class UUIDMixin:
    """Mixin for a UUID primary key generated client side."""

    @declared_attr
    def id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False,
            comment="Unique identifier for the record",
        )


def version_column() -> Mapped[int]:
    """
    Optimistic lock counter column.

    Models wire it into the mapper with
    ``__mapper_args__ = {"version_id_col": version}`` so that an UPDATE
    against a row changed by another transaction raises StaleDataError.
    """
    return mapped_column(
        Integer,
        nullable=False,
        server_default="1",
        comment="Optimistic lock version counter",
    )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """
    Base model with UUID primary key and timestamps.

    Example:
        class Customer(BaseModel):
            __tablename__ = "customers"

            name: Mapped[str] = mapped_column(String(255))
    """

    __abstract__ = True


def create_table_args(
    *constraints: Any,
    comment: Optional[str] = None,
) -> tuple:
    """
    Create a __table_args__ tuple from constraints, indexes and a comment.

    Example:
        __table_args__ = create_table_args(
            Index("ix_trucks_status", "status"),
            comment="Fleet trucks",
        )
    """
    options: Dict[str, Any] = {}
    if comment:
        options["comment"] = comment
    return (*constraints, options)
