"""
Personnel ORM Persistence Models (``construction_kernel.models.personnel``).

Responsibility:
    Employees, their effective-dated wage history, daily attendance, cash
    advances, and the payroll weeks those records are settled in.

Invariants enforced:
    - All monetary fields use Decimal (ExactDecimal columns) -- NEVER float.
    - Wage history is append-only from the core's point of view; the core
      never writes to ``wage_history``.
    - ``recorded_seq`` orders entries that share an effective date, so the
      latest recorded change wins deterministically.
"""

import datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from construction_kernel.db.base import TrackedBase, new_id
from construction_kernel.domain.money import ZERO
from construction_kernel.domain.records import (
    Attendance,
    AttendanceStatus,
    CashAdvance,
    Employee,
    PayrollWeek,
    PayrollWeekStatus,
    WageHistoryEntry,
)


class EmployeeModel(TrackedBase):
    """ORM model for ``Employee``.  ``daily_wage`` is the current base wage."""

    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
    daily_wage: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    def to_dto(self) -> Employee:
        return Employee(
            id=self.id,
            name=self.name,
            daily_wage=self.daily_wage,
            status=self.status,
        )

    @classmethod
    def from_dto(cls, dto: Employee) -> "EmployeeModel":
        return cls(
            id=dto.id,
            name=dto.name,
            daily_wage=dto.daily_wage,
            status=dto.status,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.id}: {self.name} ({self.daily_wage}/day)>"


class WageHistoryModel(TrackedBase):
    """
    ORM model for ``WageHistoryEntry`` -- one daily wage change.

    Guarantees:
        - ``(employee_id, recorded_seq)`` is unique; ``recorded_seq`` grows
          with every change recorded for the employee.
    """

    __tablename__ = "wage_history"

    employee_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.id"), nullable=False,
    )
    effective_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    recorded_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("employee_id", "recorded_seq", name="uq_wage_history_seq"),
        Index("idx_wage_history_lookup", "employee_id", "effective_date"),
    )

    def to_dto(self) -> WageHistoryEntry:
        return WageHistoryEntry(
            id=self.id,
            employee_id=self.employee_id,
            effective_date=self.effective_date,
            amount=self.amount,
        )

    @classmethod
    def from_dto(cls, dto: WageHistoryEntry, recorded_seq: int = 0) -> "WageHistoryModel":
        return cls(
            id=dto.id or new_id(),
            employee_id=dto.employee_id,
            effective_date=dto.effective_date,
            amount=dto.amount,
            recorded_seq=recorded_seq,
        )

    def __repr__(self) -> str:
        return (
            f"<WageHistoryModel {self.employee_id}: {self.amount} "
            f"from {self.effective_date}>"
        )


class PayrollWeekModel(TrackedBase):
    """ORM model for ``PayrollWeek``."""

    __tablename__ = "payroll_weeks"

    start_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="open")
    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("idx_payroll_week_range", "start_date", "end_date"),
    )

    def to_dto(self) -> PayrollWeek:
        return PayrollWeek(
            id=self.id,
            start_date=self.start_date,
            end_date=self.end_date,
            status=PayrollWeekStatus(self.status),
            exchange_rate=self.exchange_rate,
        )

    @classmethod
    def from_dto(cls, dto: PayrollWeek) -> "PayrollWeekModel":
        return cls(
            id=dto.id,
            start_date=dto.start_date,
            end_date=dto.end_date,
            status=dto.status.value,
            exchange_rate=dto.exchange_rate,
        )

    def __repr__(self) -> str:
        return f"<PayrollWeekModel {self.id}: {self.start_date}..{self.end_date}>"


class AttendanceModel(TrackedBase):
    """ORM model for ``Attendance`` -- one employee-day."""

    __tablename__ = "attendances"

    employee_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.id"), nullable=False,
    )
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    late_hours: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    payroll_week_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_day"),
        Index("idx_attendance_week", "payroll_week_id"),
        Index("idx_attendance_project_date", "project_id", "date"),
    )

    def to_dto(self) -> Attendance:
        return Attendance(
            id=self.id,
            employee_id=self.employee_id,
            project_id=self.project_id,
            date=self.date,
            status=AttendanceStatus(self.status),
            payroll_week_id=self.payroll_week_id,
            late_hours=self.late_hours if self.late_hours is not None else ZERO,
        )

    @classmethod
    def from_dto(cls, dto: Attendance) -> "AttendanceModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            project_id=dto.project_id,
            date=dto.date,
            status=dto.status.value,
            late_hours=dto.late_hours,
            payroll_week_id=dto.payroll_week_id,
        )

    def __repr__(self) -> str:
        return f"<AttendanceModel {self.employee_id} {self.date}: {self.status}>"


class CashAdvanceModel(TrackedBase):
    """ORM model for ``CashAdvance``."""

    __tablename__ = "cash_advances"

    employee_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.id"), nullable=False,
    )
    payroll_week_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    installments: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("idx_cash_advance_week", "payroll_week_id"),
    )

    def to_dto(self) -> CashAdvance:
        return CashAdvance(
            id=self.id,
            employee_id=self.employee_id,
            payroll_week_id=self.payroll_week_id,
            amount=self.amount,
            installments=self.installments,
            project_id=self.project_id,
            date=self.date,
        )

    @classmethod
    def from_dto(cls, dto: CashAdvance) -> "CashAdvanceModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            payroll_week_id=dto.payroll_week_id,
            amount=dto.amount,
            installments=dto.installments,
            project_id=dto.project_id,
            date=dto.date,
        )

    def __repr__(self) -> str:
        return (
            f"<CashAdvanceModel {self.employee_id}: {self.amount} "
            f"in {self.installments} installment(s)>"
        )
