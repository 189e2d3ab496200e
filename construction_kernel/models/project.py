"""
Project ORM Persistence Models (``construction_kernel.models.project``).

Responsibility:
    Projects and the two project-nested collections: expenses and sales.
    Each ORM class mirrors a DTO in ``construction_kernel.domain.records``
    and provides ``to_dto()`` / ``from_dto()`` conversion.

Invariants enforced:
    - All monetary fields use Decimal (ExactDecimal columns) -- NEVER float.
    - Enum fields are stored as String(50) holding the enum ``.value``.
    - ``ExpenseModel.exchange_rate`` is the only column the financial core
      ever writes (rate backfill).
"""

import datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from construction_kernel.db.base import TrackedBase
from construction_kernel.domain.records import Expense, Project, Sale, SaleStatus


class ProjectModel(TrackedBase):
    """A construction project (obra)."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="in_progress")

    def to_dto(self) -> Project:
        return Project(id=self.id, name=self.name, status=self.status)

    @classmethod
    def from_dto(cls, dto: Project) -> "ProjectModel":
        return cls(id=dto.id, name=dto.name, status=dto.status)

    def __repr__(self) -> str:
        return f"<ProjectModel {self.id}: {self.name}>"


class ExpenseModel(TrackedBase):
    """
    ORM model for ``Expense``.

    Guarantees:
        - ``supplier_id`` NULL means a services expense.
        - ``exchange_rate`` NULL means "never set"; values at or below the
          plausibility threshold are treated the same way by the backfill.
    """

    __tablename__ = "expenses"

    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id"), nullable=False,
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    supplier_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_expense_project_date", "project_id", "date"),
        Index("idx_expense_currency", "currency"),
    )

    def to_dto(self) -> Expense:
        return Expense(
            id=self.id,
            project_id=self.project_id,
            date=self.date,
            amount=self.amount,
            currency=self.currency,
            supplier_id=self.supplier_id,
            category_id=self.category_id,
            description=self.description,
            exchange_rate=self.exchange_rate,
            status=self.status,
        )

    @classmethod
    def from_dto(cls, dto: Expense) -> "ExpenseModel":
        return cls(
            id=dto.id,
            project_id=dto.project_id,
            date=dto.date,
            amount=dto.amount,
            currency=dto.currency,
            supplier_id=dto.supplier_id,
            category_id=dto.category_id,
            description=dto.description,
            exchange_rate=dto.exchange_rate,
            status=dto.status,
        )

    def __repr__(self) -> str:
        return (
            f"<ExpenseModel {self.id}: {self.amount} {self.currency} "
            f"on {self.date} rate={self.exchange_rate}>"
        )


class SaleModel(TrackedBase):
    """ORM model for ``Sale`` (project income)."""

    __tablename__ = "sales"

    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id"), nullable=False,
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_sale_project_date", "project_id", "date"),
    )

    def to_dto(self) -> Sale:
        return Sale(
            id=self.id,
            project_id=self.project_id,
            date=self.date,
            total_amount=self.total_amount,
            status=SaleStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto: Sale) -> "SaleModel":
        return cls(
            id=dto.id,
            project_id=dto.project_id,
            date=dto.date,
            total_amount=dto.total_amount,
            status=dto.status.value,
        )

    def __repr__(self) -> str:
        return f"<SaleModel {self.id}: {self.total_amount} ({self.status})>"
