"""
Record DTOs (``construction_kernel.domain.records``).

Responsibility
--------------
Frozen dataclass value objects for the records the financial core reads:
exchange-rate samples, employees and their wage history, attendance,
cash advances, contractor certifications, fund requests, expenses,
sales, stock movements, payroll weeks and projects.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Built by the
ORM models' ``to_dto()`` and by tests; consumed by the resolvers and
aggregators.

Invariants enforced
-------------------
* All DTOs are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Status enums accept ``-``/``_`` and case variants of their values, and map
  unknown upstream values to a fallback member instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from construction_kernel.domain.money import ZERO
from construction_kernel.exceptions import InvalidExchangeRateError


def _lookup_spelling(cls, value):
    """Match ``value`` to a member ignoring case and ``-``/``_`` spelling."""
    if isinstance(value, str):
        key = value.strip().lower().replace("_", "-")
        for member in cls:
            if member.value == key:
                return member
    return None


class AttendanceStatus(str, Enum):
    """Attendance states for one employee-day."""

    PRESENT = "present"
    ABSENT = "absent"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        return _lookup_spelling(cls, value) or cls.OTHER


class CertificationStatus(str, Enum):
    """Contractor certification lifecycle.  Unknown values never count."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"

    @classmethod
    def _missing_(cls, value):
        return _lookup_spelling(cls, value) or cls.PENDING

    @property
    def counts(self) -> bool:
        return self in (CertificationStatus.APPROVED, CertificationStatus.PAID)


class FundRequestStatus(str, Enum):
    """Fund request lifecycle.  Unknown values never count."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"

    @classmethod
    def _missing_(cls, value):
        return _lookup_spelling(cls, value) or cls.PENDING

    @property
    def counts(self) -> bool:
        return self in (FundRequestStatus.APPROVED, FundRequestStatus.PAID)


class SaleStatus(str, Enum):
    """
    Sale lifecycle.

    An unknown status is treated as ``pending-collection``: the sale counts
    as income but not as collected.
    """

    DRAFT = "draft"
    PENDING_COLLECTION = "pending-collection"
    COLLECTED = "collected"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value):
        return _lookup_spelling(cls, value) or cls.PENDING_COLLECTION


class MovementType(str, Enum):
    """Inventory movement kinds."""

    CHECK_OUT = "check-out"
    CHECK_IN = "check-in"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        return _lookup_spelling(cls, value) or cls.OTHER


class PayrollWeekStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class ExchangeRateSample:
    """One day's published sell rate of the foreign currency."""

    date: date
    rate: Decimal

    def __post_init__(self):
        if self.rate <= ZERO:
            raise InvalidExchangeRateError(self.rate, f"sample {self.date.isoformat()}")


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    status: str = "in_progress"


@dataclass(frozen=True)
class Employee:
    """An on-site employee.  ``daily_wage`` is the current/base wage."""

    id: str
    name: str
    daily_wage: Decimal
    status: str = "active"


@dataclass(frozen=True)
class WageHistoryEntry:
    """One effective-dated daily wage change."""

    employee_id: str
    effective_date: date
    amount: Decimal
    id: str | None = None


@dataclass(frozen=True)
class Attendance:
    id: str
    employee_id: str
    project_id: str | None
    date: date
    status: AttendanceStatus
    payroll_week_id: str | None = None
    late_hours: Decimal = ZERO

    @property
    def is_present(self) -> bool:
        return self.status is AttendanceStatus.PRESENT


@dataclass(frozen=True)
class CashAdvance:
    """Money advanced to an employee, repaid over ``installments`` weeks."""

    id: str
    employee_id: str
    payroll_week_id: str | None
    amount: Decimal
    installments: int = 1
    project_id: str | None = None
    date: date | None = None


@dataclass(frozen=True)
class ContractorCertification:
    id: str
    contractor_id: str
    project_id: str | None
    amount: Decimal
    currency: str
    status: CertificationStatus
    payroll_week_id: str | None = None
    date: date | None = None


@dataclass(frozen=True)
class FundRequest:
    id: str
    amount: Decimal
    currency: str
    status: FundRequestStatus
    project_id: str | None = None
    payroll_week_id: str | None = None
    date: date | None = None
    exchange_rate: Decimal | None = None


@dataclass(frozen=True)
class Expense:
    """
    A project expense.  ``supplier_id`` present means "materials",
    absent means "services".
    """

    id: str
    project_id: str
    date: date
    amount: Decimal
    currency: str
    supplier_id: str | None = None
    category_id: str | None = None
    description: str | None = None
    exchange_rate: Decimal | None = None
    status: str | None = None

    @property
    def is_materials(self) -> bool:
        return bool(self.supplier_id)


@dataclass(frozen=True)
class Sale:
    id: str
    project_id: str
    date: date
    total_amount: Decimal
    status: SaleStatus


@dataclass(frozen=True)
class StockMovement:
    id: str
    project_id: str | None
    movement_type: MovementType
    date: date
    total_cost: Decimal = ZERO


@dataclass(frozen=True)
class PayrollWeek:
    """
    The unit of payroll aggregation.  ``exchange_rate``, when set, is the
    locked-in rate for the week's foreign-currency items.
    """

    id: str
    start_date: date
    end_date: date
    status: PayrollWeekStatus = PayrollWeekStatus.OPEN
    exchange_rate: Decimal | None = None

    def contains(self, day: date | None) -> bool:
        return day is not None and self.start_date <= day <= self.end_date
