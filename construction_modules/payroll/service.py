"""
Payroll Aggregator (``construction_modules.payroll.service``).

Responsibility
--------------
Compute the net weekly payroll obligation of one ``PayrollWeek``: on-site
personnel (wages less advances and late-hour deductions), approved
contractor certifications and approved fund requests, all in local
currency.

Architecture position
---------------------
**Modules layer** -- read-only service.  Reads through ``RecordSelector``,
prices attendance days through ``WageResolver``, and never consults the
rate feed: foreign payroll items use the week's locked-in rate.

Invariants enforced
-------------------
* ``net_personnel = gross_wages - advances_total - late_hours_deduction``,
  never clamped.
* ``grand_total = net_personnel + contractors_total + fund_requests_total``.
* Certification rate: week rate, else 1.  Fund request rate: week rate,
  else the request's own rate, else 1.
* Only approved/paid certifications and fund requests count.
* Output amounts are quantized once, on the way out.

Failure modes
-------------
* ``InvalidPayrollWeekError`` -- week without id, or ending before it starts.
* ``PayrollWeekNotFoundError`` -- ``aggregate_by_id`` with an unknown id.

Audit relevance
---------------
Every unit-rate fallback is logged and listed in the summary ``warnings``
so a reviewer can see which foreign amounts were paid at face value.

Usage::

    aggregator = PayrollAggregator(session)
    summary = aggregator.aggregate_by_id("week-2025-03")
    summary.grand_total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from construction_kernel.domain.currency import (
    Conversion,
    CurrencyPair,
    RateSource,
    convert,
    passthrough,
    usable_rate,
)
from construction_kernel.domain.money import (
    DEFAULT_MONEY_QUANTUM,
    ONE,
    ZERO,
    MoneyAccumulator,
    add,
    divide,
    multiply,
    quantize,
    subtract,
)
from construction_kernel.domain.records import (
    ContractorCertification,
    FundRequest,
    PayrollWeek,
)
from construction_kernel.exceptions import (
    InvalidPayrollWeekError,
    PayrollWeekNotFoundError,
)
from construction_kernel.logging_config import LogContext, get_logger
from construction_kernel.selectors import RecordSelector
from construction_modules.payroll.models import (
    EmployeePayrollLine,
    ProjectPayrollBreakdown,
    WeeklyPayrollSummary,
)
from construction_modules.wages import DEFAULT_HOURS_PER_DAY, WageResolver

logger = get_logger("modules.payroll.service")


class _ProjectBucket:
    __slots__ = ("personnel", "contractors", "fund_requests")

    def __init__(self) -> None:
        self.personnel = MoneyAccumulator()
        self.contractors = MoneyAccumulator()
        self.fund_requests = MoneyAccumulator()


@dataclass
class _EmployeeBucket:
    days_present: int = 0
    gross: Decimal = ZERO
    late: Decimal = ZERO
    advances: Decimal = ZERO


class PayrollAggregator:
    """
    PayrollWeek -> ``WeeklyPayrollSummary``.

    Contract:
        ``aggregate()`` is a pure function of the week and the records
        stored at call time.

    Guarantees:
        - An empty week yields an all-zero summary.
        - Per-project breakdown totals add up to the summary totals.

    Non-goals:
        - Does not persist the summary or mark the week closed.
    """

    def __init__(
        self,
        session: Session,
        *,
        currency: CurrencyPair | None = None,
        hours_per_day: Decimal | int = DEFAULT_HOURS_PER_DAY,
        money_quantum: Decimal = DEFAULT_MONEY_QUANTUM,
    ) -> None:
        self._selector = RecordSelector(session)
        self._currency = currency or CurrencyPair()
        self._hours_per_day = hours_per_day
        self._quantum = money_quantum

    def aggregate_by_id(self, payroll_week_id: str) -> WeeklyPayrollSummary:
        week = self._selector.payroll_week(payroll_week_id)
        if week is None:
            raise PayrollWeekNotFoundError(payroll_week_id)
        return self.aggregate(week)

    def aggregate(self, week: PayrollWeek) -> WeeklyPayrollSummary:
        if not week.id:
            raise InvalidPayrollWeekError(None, "payroll week has no id")
        if week.end_date < week.start_date:
            raise InvalidPayrollWeekError(week.id, "end date precedes start date")

        with LogContext.bind(payroll_week_id=week.id):
            return self._aggregate(week)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _aggregate(self, week: PayrollWeek) -> WeeklyPayrollSummary:
        selector = self._selector
        attendances = [a for a in selector.attendances_for_week(week.id) if a.is_present]
        advances = selector.cash_advances_for_week(week.id)
        certifications = [
            c for c in selector.certifications_for_week(week) if c.status.counts
        ]
        fund_requests = [
            r for r in selector.fund_requests_for_week(week) if r.status.counts
        ]

        employee_ids = sorted(
            {a.employee_id for a in attendances} | {a.employee_id for a in advances}
        )
        wages = WageResolver.from_selector(
            selector, employee_ids, hours_per_day=self._hours_per_day,
        )
        names = {e.id: e.name for e in selector.employees(employee_ids)}

        gross = MoneyAccumulator()
        late = MoneyAccumulator()
        advances_total = MoneyAccumulator()
        contractors = MoneyAccumulator()
        funds = MoneyAccumulator()
        by_project: dict[str | None, _ProjectBucket] = {}
        by_employee: dict[str, _EmployeeBucket] = {}
        warnings: list[str] = []

        # 1. Present attendance days
        for attendance in attendances:
            quote = wages.resolve(attendance.employee_id, attendance.date)
            deduction = ZERO
            if attendance.late_hours > ZERO:
                deduction = multiply(attendance.late_hours, quote.hourly_rate)
            gross.add(quote.daily_wage)
            late.add(deduction)

            bucket = by_project.setdefault(attendance.project_id, _ProjectBucket())
            bucket.personnel.add(subtract(quote.daily_wage, deduction))

            line = by_employee.setdefault(attendance.employee_id, _EmployeeBucket())
            line.days_present += 1
            line.gross += quote.daily_wage
            line.late += deduction

        # 2. Cash advance installments
        for advance in advances:
            installment = divide(advance.amount, Decimal(max(advance.installments, 1)))
            advances_total.add(installment)
            bucket = by_project.setdefault(advance.project_id, _ProjectBucket())
            bucket.personnel.add(-installment)
            line = by_employee.setdefault(advance.employee_id, _EmployeeBucket())
            line.advances += installment

        # 3. Contractor certifications
        for certification in certifications:
            converted = self._convert_certification(certification, week, warnings)
            contractors.add(converted.amount)
            by_project.setdefault(
                certification.project_id, _ProjectBucket(),
            ).contractors.add(converted.amount)

        # 4. Fund requests
        for request in fund_requests:
            converted = self._convert_fund_request(request, week, warnings)
            funds.add(converted.amount)
            by_project.setdefault(
                request.project_id, _ProjectBucket(),
            ).fund_requests.add(converted.amount)

        net_personnel = subtract(subtract(gross.total, advances_total.total), late.total)
        grand_total = add(net_personnel, contractors.total, funds.total)

        q = self._quantize
        summary = WeeklyPayrollSummary(
            payroll_week_id=week.id,
            start_date=week.start_date,
            end_date=week.end_date,
            gross_wages=q(gross.total),
            late_hours_deduction=q(late.total),
            advances_total=q(advances_total.total),
            net_personnel=q(net_personnel),
            contractors_total=q(contractors.total),
            fund_requests_total=q(funds.total),
            grand_total=q(grand_total),
            projects=self._project_rows(by_project),
            employees=tuple(
                EmployeePayrollLine(
                    employee_id=employee_id,
                    employee_name=names.get(employee_id),
                    days_present=line.days_present,
                    gross_wages=q(line.gross),
                    late_hours_deduction=q(line.late),
                    advances=q(line.advances),
                    net=q(line.gross - line.late - line.advances),
                )
                for employee_id, line in sorted(by_employee.items())
            ),
            warnings=tuple(warnings),
        )

        logger.info(
            "payroll_week_aggregated",
            extra={
                "attendances": len(attendances),
                "advances": len(advances),
                "certifications": len(certifications),
                "fund_requests": len(fund_requests),
                "net_personnel": summary.net_personnel,
                "grand_total": summary.grand_total,
                "warnings": len(warnings),
            },
        )
        return summary

    def _quantize(self, value: Decimal) -> Decimal:
        return quantize(value, self._quantum)

    def _project_rows(
        self, by_project: dict[str | None, _ProjectBucket],
    ) -> tuple[ProjectPayrollBreakdown, ...]:
        names = {p.id: p.name for p in self._selector.projects()}
        rows = []
        for project_id, bucket in by_project.items():
            personnel = bucket.personnel.total
            contractors = bucket.contractors.total
            fund_requests = bucket.fund_requests.total
            if personnel == ZERO and contractors == ZERO and fund_requests == ZERO:
                continue
            rows.append(
                ProjectPayrollBreakdown(
                    project_id=project_id,
                    project_name=names.get(project_id) if project_id else None,
                    personnel=self._quantize(personnel),
                    contractors=self._quantize(contractors),
                    fund_requests=self._quantize(fund_requests),
                    total=self._quantize(personnel + contractors + fund_requests),
                )
            )
        # Named projects alphabetically, the unassigned bucket last.
        rows.sort(key=lambda r: (r.project_id is None, r.project_name or "", r.project_id or ""))
        return tuple(rows)

    def _convert_certification(
        self,
        certification: ContractorCertification,
        week: PayrollWeek,
        warnings: list[str],
    ) -> Conversion:
        if not self._currency.is_foreign(certification.currency):
            return passthrough(certification.amount)
        if usable_rate(week.exchange_rate):
            return convert(certification.amount, week.exchange_rate, RateSource.WEEK)
        self._warn_unit_rate(warnings, "certification", certification.id)
        return convert(certification.amount, ONE, RateSource.UNIT)

    def _convert_fund_request(
        self,
        request: FundRequest,
        week: PayrollWeek,
        warnings: list[str],
    ) -> Conversion:
        if not self._currency.is_foreign(request.currency):
            return passthrough(request.amount)
        if usable_rate(week.exchange_rate):
            return convert(request.amount, week.exchange_rate, RateSource.WEEK)
        if usable_rate(request.exchange_rate):
            return convert(request.amount, request.exchange_rate, RateSource.RECORD)
        self._warn_unit_rate(warnings, "fund_request", request.id)
        return convert(request.amount, ONE, RateSource.UNIT)

    def _warn_unit_rate(self, warnings: list[str], kind: str, record_id: str) -> None:
        message = (
            f"{kind} {record_id} in {self._currency.foreign} converted at 1: "
            f"no exchange rate available"
        )
        warnings.append(message)
        logger.warning(
            "payroll_unit_rate_fallback",
            extra={"record_kind": kind, "record_id": record_id},
        )
