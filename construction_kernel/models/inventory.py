"""
Inventory and settings ORM models (``construction_kernel.models.inventory``).

Stock movements feed project material cost (check-outs only).  The
``settings`` table is a plain key/value store; the global default
exchange rate lives under ``general.exchange_rate``.
"""

import datetime
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from construction_kernel.db.base import TrackedBase
from construction_kernel.domain.money import ZERO
from construction_kernel.domain.records import MovementType, StockMovement

GLOBAL_EXCHANGE_RATE_KEY = "general.exchange_rate"


class StockMovementModel(TrackedBase):
    """ORM model for ``StockMovement``."""

    __tablename__ = "stock_movements"

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    movement_type: Mapped[str] = mapped_column(String(50), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    __table_args__ = (
        Index("idx_stock_movement_project", "project_id", "movement_type"),
    )

    def to_dto(self) -> StockMovement:
        return StockMovement(
            id=self.id,
            project_id=self.project_id,
            movement_type=MovementType(self.movement_type),
            date=self.date,
            total_cost=self.total_cost if self.total_cost is not None else ZERO,
        )

    @classmethod
    def from_dto(cls, dto: StockMovement) -> "StockMovementModel":
        return cls(
            id=dto.id,
            project_id=dto.project_id,
            movement_type=dto.movement_type.value,
            date=dto.date,
            total_cost=dto.total_cost,
        )

    def __repr__(self) -> str:
        return (
            f"<StockMovementModel {self.movement_type} {self.project_id}: "
            f"{self.total_cost}>"
        )


class SettingModel(TrackedBase):
    """Key/value application setting.  Values are stored as text."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    value: Mapped[str] = mapped_column(String(500), nullable=False)

    def __repr__(self) -> str:
        return f"<SettingModel {self.key}={self.value}>"
