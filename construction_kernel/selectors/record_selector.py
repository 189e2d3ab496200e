"""
Module: construction_kernel.selectors.record_selector
Responsibility: "Fetch by collection + filter" over the record collections.
    Converts ORM rows to the frozen DTOs in ``construction_kernel.domain.records``.
Architecture position: Kernel > Selectors.  Consumed by the wage resolver,
    both aggregators and the rate backfill job.

Invariants enforced:
    - Read-only: no mutations are performed on any queried data.
    - Deterministic ordering: every result is ordered by the collection's
      date field, then recording time, then id, so aggregations that walk
      the results produce identical output across runs.
    - ``date_range`` bounds are inclusive on both ends.

Failure modes:
    - UnknownCollectionError for a collection name that is not registered.
    - ValueError for a filter on a field the collection does not have, or a
      date range on a collection without a date field.
    - InvalidExchangeRateError when the stored global default rate is not a
      positive number.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import Numeric, and_, cast, func, or_, select
from sqlalchemy.orm import Session

from construction_kernel.domain.money import ZERO, to_decimal
from construction_kernel.domain.records import (
    Attendance,
    CashAdvance,
    ContractorCertification,
    Employee,
    Expense,
    FundRequest,
    MovementType,
    PayrollWeek,
    Project,
    Sale,
    StockMovement,
    WageHistoryEntry,
)
from construction_kernel.exceptions import (
    InvalidExchangeRateError,
    UnknownCollectionError,
)
from construction_kernel.logging_config import get_logger
from construction_kernel.models import (
    GLOBAL_EXCHANGE_RATE_KEY,
    AttendanceModel,
    CashAdvanceModel,
    ContractorCertificationModel,
    EmployeeModel,
    ExpenseModel,
    FundRequestModel,
    PayrollWeekModel,
    ProjectModel,
    SaleModel,
    SettingModel,
    StockMovementModel,
    WageHistoryModel,
)
from construction_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.records")


class Collection(str, Enum):
    """The record collections the financial core reads."""

    PROJECTS = "projects"
    EXPENSES = "expenses"
    SALES = "sales"
    EMPLOYEES = "employees"
    WAGE_HISTORY = "wage_history"
    PAYROLL_WEEKS = "payroll_weeks"
    ATTENDANCES = "attendances"
    CASH_ADVANCES = "cash_advances"
    CERTIFICATIONS = "contractor_certifications"
    FUND_REQUESTS = "fund_requests"
    STOCK_MOVEMENTS = "stock_movements"


@dataclass(frozen=True)
class _CollectionSpec:
    model: type
    date_field: str | None
    order_fields: tuple[str, ...]


_COLLECTIONS: dict[Collection, _CollectionSpec] = {
    Collection.PROJECTS: _CollectionSpec(ProjectModel, None, ("name", "id")),
    Collection.EXPENSES: _CollectionSpec(ExpenseModel, "date", ("date", "created_at", "id")),
    Collection.SALES: _CollectionSpec(SaleModel, "date", ("date", "created_at", "id")),
    Collection.EMPLOYEES: _CollectionSpec(EmployeeModel, None, ("name", "id")),
    Collection.WAGE_HISTORY: _CollectionSpec(
        WageHistoryModel,
        "effective_date",
        ("employee_id", "effective_date", "recorded_seq", "created_at", "id"),
    ),
    Collection.PAYROLL_WEEKS: _CollectionSpec(
        PayrollWeekModel, "start_date", ("start_date", "id"),
    ),
    Collection.ATTENDANCES: _CollectionSpec(
        AttendanceModel, "date", ("date", "employee_id", "id"),
    ),
    Collection.CASH_ADVANCES: _CollectionSpec(
        CashAdvanceModel, "date", ("employee_id", "created_at", "id"),
    ),
    Collection.CERTIFICATIONS: _CollectionSpec(
        ContractorCertificationModel, "date", ("date", "created_at", "id"),
    ),
    Collection.FUND_REQUESTS: _CollectionSpec(
        FundRequestModel, "date", ("date", "created_at", "id"),
    ),
    Collection.STOCK_MOVEMENTS: _CollectionSpec(
        StockMovementModel, "date", ("date", "created_at", "id"),
    ),
}


def _resolve_collection(collection: Collection | str) -> Collection:
    if isinstance(collection, Collection):
        return collection
    try:
        return Collection(collection)
    except ValueError:
        raise UnknownCollectionError(str(collection)) from None


class RecordSelector(BaseSelector):
    """
    Selector for the record collections.

    Contract:
        ``fetch()`` is the generic read; the typed helpers below it are
        the queries the aggregators and the backfill job actually issue.

    Guarantees:
        - Returns tuples of DTOs, never ORM instances.
        - Absence of data yields an empty tuple or None, never an error.

    Non-goals:
        - No cross-collection joins; callers join in memory by
          ``employee_id``, ``project_id`` and ``payroll_week_id``.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # =========================================================================
    # Generic read
    # =========================================================================

    def fetch(
        self,
        collection: Collection | str,
        where: Mapping[str, Any] | None = None,
        date_range: tuple[date, date] | None = None,
    ) -> tuple[Any, ...]:
        """
        Fetch every record of ``collection`` matching the filters.

        ``where`` maps field names to values: ``None`` matches NULL, a
        list/tuple/set matches any of its members, anything else matches
        by equality.  ``date_range`` is an inclusive ``(start, end)`` on the
        collection's date field.
        """
        spec = _COLLECTIONS[_resolve_collection(collection)]
        stmt = select(spec.model).where(*self._conditions(spec, where, date_range))
        stmt = stmt.order_by(*(getattr(spec.model, f) for f in spec.order_fields))
        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars())

    def _conditions(
        self,
        spec: _CollectionSpec,
        where: Mapping[str, Any] | None,
        date_range: tuple[date, date] | None,
    ) -> list:
        conditions = []
        for field, value in (where or {}).items():
            if field not in spec.model.__table__.columns:
                raise ValueError(
                    f"{spec.model.__tablename__} has no field {field!r}"
                )
            column = getattr(spec.model, field)
            if value is None:
                conditions.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            elif isinstance(value, Enum):
                conditions.append(column == value.value)
            else:
                conditions.append(column == value)

        if date_range is not None:
            if spec.date_field is None:
                raise ValueError(
                    f"{spec.model.__tablename__} has no date field to range over"
                )
            start, end = date_range
            column = getattr(spec.model, spec.date_field)
            conditions.append(column >= start)
            conditions.append(column <= end)
        return conditions

    # =========================================================================
    # Projects and settings
    # =========================================================================

    def projects(self) -> tuple[Project, ...]:
        return self.fetch(Collection.PROJECTS)

    def project(self, project_id: str) -> Project | None:
        row = self.session.get(ProjectModel, project_id)
        return row.to_dto() if row is not None else None

    def global_default_rate(self) -> Decimal | None:
        """
        The global default exchange rate stored under ``general.exchange_rate``.

        Returns None when the setting is absent.
        """
        row = self.session.execute(
            select(SettingModel).where(SettingModel.key == GLOBAL_EXCHANGE_RATE_KEY)
        ).scalar_one_or_none()
        if row is None:
            return None
        try:
            rate = to_decimal(row.value, field=GLOBAL_EXCHANGE_RATE_KEY)
        except ValueError:
            raise InvalidExchangeRateError(row.value, GLOBAL_EXCHANGE_RATE_KEY) from None
        if rate <= ZERO:
            raise InvalidExchangeRateError(rate, GLOBAL_EXCHANGE_RATE_KEY)
        return rate

    # =========================================================================
    # Personnel
    # =========================================================================

    def employees(self, employee_ids: Iterable[str] | None = None) -> tuple[Employee, ...]:
        where = {"id": tuple(employee_ids)} if employee_ids is not None else None
        return self.fetch(Collection.EMPLOYEES, where=where)

    def wage_history(
        self, employee_ids: Iterable[str] | None = None,
    ) -> tuple[WageHistoryEntry, ...]:
        """Wage entries ordered by employee, effective date, recording order, id."""
        where = {"employee_id": tuple(employee_ids)} if employee_ids is not None else None
        return self.fetch(Collection.WAGE_HISTORY, where=where)

    def payroll_week(self, payroll_week_id: str) -> PayrollWeek | None:
        row = self.session.get(PayrollWeekModel, payroll_week_id)
        return row.to_dto() if row is not None else None

    def payroll_weeks(
        self, payroll_week_ids: Iterable[str] | None = None,
    ) -> tuple[PayrollWeek, ...]:
        where = {"id": tuple(payroll_week_ids)} if payroll_week_ids is not None else None
        return self.fetch(Collection.PAYROLL_WEEKS, where=where)

    def attendances_for_week(self, payroll_week_id: str) -> tuple[Attendance, ...]:
        return self.fetch(
            Collection.ATTENDANCES, where={"payroll_week_id": payroll_week_id},
        )

    def attendances_for_project(
        self, project_id: str, start: date, end: date,
    ) -> tuple[Attendance, ...]:
        return self.fetch(
            Collection.ATTENDANCES,
            where={"project_id": project_id},
            date_range=(start, end),
        )

    def cash_advances_for_week(self, payroll_week_id: str) -> tuple[CashAdvance, ...]:
        return self.fetch(
            Collection.CASH_ADVANCES, where={"payroll_week_id": payroll_week_id},
        )

    # =========================================================================
    # Disbursements
    # =========================================================================

    def certifications_for_week(
        self, week: PayrollWeek,
    ) -> tuple[ContractorCertification, ...]:
        """Certifications tagged with the week, or untagged and dated inside it."""
        return self._week_members(ContractorCertificationModel, week)

    def fund_requests_for_week(self, week: PayrollWeek) -> tuple[FundRequest, ...]:
        """Fund requests tagged with the week, or untagged and dated inside it."""
        return self._week_members(FundRequestModel, week)

    def _week_members(self, model: type, week: PayrollWeek) -> tuple[Any, ...]:
        stmt = (
            select(model)
            .where(
                or_(
                    model.payroll_week_id == week.id,
                    and_(
                        model.payroll_week_id.is_(None),
                        model.date >= week.start_date,
                        model.date <= week.end_date,
                    ),
                )
            )
            .order_by(model.date, model.created_at, model.id)
        )
        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars())

    def certifications_for_project(
        self, project_id: str,
    ) -> tuple[ContractorCertification, ...]:
        return self.fetch(Collection.CERTIFICATIONS, where={"project_id": project_id})

    def fund_requests_for_project(self, project_id: str) -> tuple[FundRequest, ...]:
        return self.fetch(Collection.FUND_REQUESTS, where={"project_id": project_id})

    # =========================================================================
    # Project collections
    # =========================================================================

    def expenses_for_project(
        self, project_id: str, start: date | None = None, end: date | None = None,
    ) -> tuple[Expense, ...]:
        date_range = (start, end) if start is not None and end is not None else None
        return self.fetch(
            Collection.EXPENSES, where={"project_id": project_id}, date_range=date_range,
        )

    def expenses_missing_rate(
        self, project_id: str, currency: str, threshold: Decimal,
    ) -> tuple[Expense, ...]:
        """
        Expenses in ``currency`` whose stored rate is NULL or at/below
        ``threshold`` -- the candidates for rate backfill.  The currency code
        is compared case-insensitively.
        """
        stmt = (
            select(ExpenseModel)
            .where(
                ExpenseModel.project_id == project_id,
                func.upper(ExpenseModel.currency) == currency.upper(),
                or_(
                    ExpenseModel.exchange_rate.is_(None),
                    cast(ExpenseModel.exchange_rate, Numeric(38, 9)) <= threshold,
                ),
            )
            .order_by(ExpenseModel.date, ExpenseModel.created_at, ExpenseModel.id)
        )
        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars())

    def sales_for_project(
        self, project_id: str, start: date, end: date,
    ) -> tuple[Sale, ...]:
        return self.fetch(
            Collection.SALES, where={"project_id": project_id}, date_range=(start, end),
        )

    def stock_check_outs(
        self, project_id: str, start: date, end: date,
    ) -> tuple[StockMovement, ...]:
        """Check-out movements in the range, whatever the stored spelling."""
        movement_type = func.lower(
            func.replace(func.trim(StockMovementModel.movement_type), "_", "-")
        )
        stmt = (
            select(StockMovementModel)
            .where(
                StockMovementModel.project_id == project_id,
                movement_type == MovementType.CHECK_OUT.value,
                StockMovementModel.date >= start,
                StockMovementModel.date <= end,
            )
            .order_by(
                StockMovementModel.date,
                StockMovementModel.created_at,
                StockMovementModel.id,
            )
        )
        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars())
