"""
Pytest fixtures for the construction financial core test suite.

Provides:
- An in-memory SQLite database (fresh schema per test)
- Record factories that insert ORM rows from DTOs
- A deterministic clock and a static rate feed
- Structured log capture

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL to run against another database.
  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from construction_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from construction_kernel.domain.clock import DeterministicClock
from construction_kernel.domain.records import (
    Attendance,
    AttendanceStatus,
    CashAdvance,
    CertificationStatus,
    ContractorCertification,
    Employee,
    Expense,
    FundRequest,
    FundRequestStatus,
    PayrollWeek,
    Project,
    Sale,
    SaleStatus,
    StockMovement,
    MovementType,
    WageHistoryEntry,
)
from construction_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from construction_kernel.models import (
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
from construction_kernel.models.inventory import GLOBAL_EXCHANGE_RATE_KEY
from construction_modules.rates import RateResolver, StaticRateFeed


DEFAULT_DATABASE_URL = "sqlite:///:memory:"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture construction_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, session):
            ...
            logs = captured_logs()
            assert any(r["message"] == "payroll_week_aggregated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("construction_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """A fresh engine and schema per test."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine):
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Rate fixtures
# =============================================================================


@pytest.fixture
def static_feed():
    """Two published rates: 1000 on 2025-01-01 and 1100 on 2025-01-10."""
    return StaticRateFeed.from_mapping({
        date(2025, 1, 1): "1000",
        date(2025, 1, 10): "1100",
    })


@pytest.fixture
def rate_resolver(static_feed):
    return RateResolver(static_feed)


# =============================================================================
# Record factories
# =============================================================================


class RecordFactory:
    """Inserts records through their ORM models and flushes."""

    def __init__(self, session):
        self.session = session
        self._seq = 0
        self._wage_seq: dict[str, int] = {}

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _add(self, model):
        self.session.add(model)
        self.session.flush()
        return model

    def project(self, name="Obra Norte", *, id=None, status="in_progress") -> Project:
        dto = Project(id=id or self._next("prj"), name=name, status=status)
        self._add(ProjectModel.from_dto(dto))
        return dto

    def employee(self, name="Juan", daily_wage="2500", *, id=None) -> Employee:
        dto = Employee(id=id or self._next("emp"), name=name, daily_wage=Decimal(daily_wage))
        self._add(EmployeeModel.from_dto(dto))
        return dto

    def wage(self, employee_id, effective_date, amount) -> WageHistoryEntry:
        recorded_seq = self._wage_seq.get(employee_id, 0)
        self._wage_seq[employee_id] = recorded_seq + 1
        dto = WageHistoryEntry(
            employee_id=employee_id,
            effective_date=effective_date,
            amount=Decimal(amount),
            id=self._next("wage"),
        )
        self._add(WageHistoryModel.from_dto(dto, recorded_seq=recorded_seq))
        return dto

    def week(self, start=date(2025, 3, 3), end=date(2025, 3, 9), *, id=None, exchange_rate=None) -> PayrollWeek:
        dto = PayrollWeek(
            id=id or self._next("week"),
            start_date=start,
            end_date=end,
            exchange_rate=Decimal(exchange_rate) if exchange_rate is not None else None,
        )
        self._add(PayrollWeekModel.from_dto(dto))
        return dto

    def attendance(
        self, employee_id, day, *, project_id=None, week_id=None,
        status=AttendanceStatus.PRESENT, late_hours="0",
    ) -> Attendance:
        dto = Attendance(
            id=self._next("att"),
            employee_id=employee_id,
            project_id=project_id,
            date=day,
            status=status,
            payroll_week_id=week_id,
            late_hours=Decimal(late_hours),
        )
        self._add(AttendanceModel.from_dto(dto))
        return dto

    def advance(self, employee_id, amount, *, week_id, installments=1, project_id=None) -> CashAdvance:
        dto = CashAdvance(
            id=self._next("adv"),
            employee_id=employee_id,
            payroll_week_id=week_id,
            amount=Decimal(amount),
            installments=installments,
            project_id=project_id,
        )
        self._add(CashAdvanceModel.from_dto(dto))
        return dto

    def certification(
        self, amount, *, currency="ARS", project_id=None, week_id=None, day=None,
        status=CertificationStatus.APPROVED,
    ) -> ContractorCertification:
        dto = ContractorCertification(
            id=self._next("cert"),
            contractor_id="ctr-1",
            project_id=project_id,
            amount=Decimal(amount),
            currency=currency,
            status=status,
            payroll_week_id=week_id,
            date=day,
        )
        self._add(ContractorCertificationModel.from_dto(dto))
        return dto

    def fund_request(
        self, amount, *, currency="ARS", project_id=None, week_id=None, day=None,
        status=FundRequestStatus.APPROVED, exchange_rate=None,
    ) -> FundRequest:
        dto = FundRequest(
            id=self._next("fund"),
            amount=Decimal(amount),
            currency=currency,
            status=status,
            project_id=project_id,
            payroll_week_id=week_id,
            date=day,
            exchange_rate=Decimal(exchange_rate) if exchange_rate is not None else None,
        )
        self._add(FundRequestModel.from_dto(dto))
        return dto

    def expense(
        self, project_id, day, amount, *, currency="ARS", supplier_id=None,
        category_id=None, exchange_rate=None,
    ) -> Expense:
        dto = Expense(
            id=self._next("exp"),
            project_id=project_id,
            date=day,
            amount=Decimal(amount),
            currency=currency,
            supplier_id=supplier_id,
            category_id=category_id,
            exchange_rate=Decimal(exchange_rate) if exchange_rate is not None else None,
        )
        self._add(ExpenseModel.from_dto(dto))
        return dto

    def sale(self, project_id, day, amount, *, status=SaleStatus.COLLECTED) -> Sale:
        dto = Sale(
            id=self._next("sale"),
            project_id=project_id,
            date=day,
            total_amount=Decimal(amount),
            status=status,
        )
        self._add(SaleModel.from_dto(dto))
        return dto

    def check_out(self, project_id, day, total_cost) -> StockMovement:
        dto = StockMovement(
            id=self._next("mov"),
            project_id=project_id,
            movement_type=MovementType.CHECK_OUT,
            date=day,
            total_cost=Decimal(total_cost),
        )
        self._add(StockMovementModel.from_dto(dto))
        return dto

    def setting(self, key, value):
        return self._add(SettingModel(key=key, value=value))

    def global_rate(self, value):
        return self.setting(GLOBAL_EXCHANGE_RATE_KEY, value)


@pytest.fixture
def records(session):
    """Record factory bound to the test session."""
    return RecordFactory(session)


@pytest.fixture
def make_records():
    """Factory for RecordFactory instances bound to an arbitrary session."""
    return RecordFactory
