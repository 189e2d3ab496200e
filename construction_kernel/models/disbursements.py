"""
Disbursement ORM Persistence Models (``construction_kernel.models.disbursements``).

Responsibility:
    Contractor certifications and fund requests -- the two payouts that are
    settled together with the weekly payroll and also count as project
    cost.

Invariants enforced:
    - A record is tied to a payroll week (``payroll_week_id``), to a date,
      or to both.
    - ``currency`` holds the ISO code; conversion happens at read time.
"""

import datetime
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from construction_kernel.db.base import TrackedBase
from construction_kernel.domain.records import (
    CertificationStatus,
    ContractorCertification,
    FundRequest,
    FundRequestStatus,
)


class ContractorCertificationModel(TrackedBase):
    """ORM model for ``ContractorCertification``."""

    __tablename__ = "contractor_certifications"

    contractor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payroll_week_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_certification_week", "payroll_week_id"),
        Index("idx_certification_project", "project_id"),
    )

    def to_dto(self) -> ContractorCertification:
        return ContractorCertification(
            id=self.id,
            contractor_id=self.contractor_id,
            project_id=self.project_id,
            amount=self.amount,
            currency=self.currency,
            status=CertificationStatus(self.status),
            payroll_week_id=self.payroll_week_id,
            date=self.date,
        )

    @classmethod
    def from_dto(cls, dto: ContractorCertification) -> "ContractorCertificationModel":
        return cls(
            id=dto.id,
            contractor_id=dto.contractor_id,
            project_id=dto.project_id,
            payroll_week_id=dto.payroll_week_id,
            date=dto.date,
            amount=dto.amount,
            currency=dto.currency,
            status=dto.status.value,
        )

    def __repr__(self) -> str:
        return (
            f"<ContractorCertificationModel {self.contractor_id}: "
            f"{self.amount} {self.currency} ({self.status})>"
        )


class FundRequestModel(TrackedBase):
    """ORM model for ``FundRequest``."""

    __tablename__ = "fund_requests"

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payroll_week_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_fund_request_week", "payroll_week_id"),
        Index("idx_fund_request_project", "project_id"),
    )

    def to_dto(self) -> FundRequest:
        return FundRequest(
            id=self.id,
            amount=self.amount,
            currency=self.currency,
            status=FundRequestStatus(self.status),
            project_id=self.project_id,
            payroll_week_id=self.payroll_week_id,
            date=self.date,
            exchange_rate=self.exchange_rate,
        )

    @classmethod
    def from_dto(cls, dto: FundRequest) -> "FundRequestModel":
        return cls(
            id=dto.id,
            project_id=dto.project_id,
            payroll_week_id=dto.payroll_week_id,
            date=dto.date,
            amount=dto.amount,
            currency=dto.currency,
            exchange_rate=dto.exchange_rate,
            status=dto.status.value,
        )

    def __repr__(self) -> str:
        return (
            f"<FundRequestModel {self.id}: {self.amount} {self.currency} "
            f"({self.status})>"
        )
