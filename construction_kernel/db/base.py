"""
Module: construction_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the opaque string primary key convention, the type annotation map for
    consistent column types, and the TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  ALL model files import from here.  MUST NOT import from models/,
    selectors/, domain/, or outer layers.

Invariants enforced:
    - Opaque identifiers: every record is keyed by a string id.  Ids coming
      from the upstream document store are kept verbatim; new rows get a
      uuid4 string.
    - Decimal precision: Python Decimal maps to ExactDecimal (Numeric(38, 9),
      a decimal string on SQLite) so amounts never round-trip through a
      float.  NEVER use float for monetary amounts.
    - Audit timestamps: TrackedBase provides created_at, updated_at and
      updated_by so that backfill corrections are attributable.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def new_id() -> str:
    """Generate an opaque identifier for rows created locally."""
    return str(uuid4())


class ExactDecimal(TypeDecorator):
    """
    Decimal column that never passes through float.

    Contract:
        Numeric(38, 9) on every backend with a native decimal type.  SQLite
        stores NUMERIC as REAL, so there the value is kept as its plain
        decimal string instead.

    Guarantees:
        - process_bind_param: Decimal -> plain decimal string on SQLite.
        - process_result_value: str -> Decimal on SQLite.
        - Other dialects receive and return Decimal unchanged.
        - Numeric SQL comparisons on SQLite must CAST the column (see
          ``RecordSelector.expenses_missing_rate``); text compares
          lexicographically.
    """

    impl = Numeric(38, 9, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(Numeric(38, 9, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return format(Decimal(str(value)), "f")

    def process_result_value(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return Decimal(value)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is an opaque String(64) primary key.
        - Decimal maps to ExactDecimal: Numeric(38, 9), or exact text on SQLite.
        - date maps to Date, datetime to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: ExactDecimal(),
        datetime: DateTime(timezone=True),
        date: Date,
        str: String(255),
    }

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Guarantees:
        - created_at is set on INSERT and never changes.
        - updated_at auto-updates on every UPDATE.
        - updated_by names the actor of the last modification (nullable;
          records written by upstream workflows leave it empty).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    updated_by: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
