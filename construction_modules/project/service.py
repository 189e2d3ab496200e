"""
Project Financials Aggregator (``construction_modules.project.service``).

Responsibility
--------------
Build the profit-and-loss statement of one project for one calendar year:
income from sales, direct cost split into materials, labor and services,
net margin and ROI, all in local currency.  Also rolls every project up
into a portfolio summary.

Architecture position
---------------------
**Modules layer** -- read-only service over ``RecordSelector``.  Foreign
amounts are priced through the optional ``RateResolver``; attendance days
through ``WageResolver``.

Invariants enforced
-------------------
* Income excludes cancelled sales; ``pending = total - paid``.
* Materials = expenses with a supplier + check-out stock movements.
  Services = expenses without a supplier + approved/paid fund requests.
  Labor = approved/paid certifications + one daily wage per present day.
* ``indirect.total`` is always zero.
* Margin percentage and ROI are zero when their base is zero.
* Conversion chain for foreign items: record rate, then feed rate at the
  record date, then the global default.  Every fallback is a warning.

Failure modes
-------------
* ``ProjectNotFoundError`` for an unknown project id.
* A rate feed failure never fails the aggregation: the rest of the run
  uses the global default and says so in ``warnings``.

Audit relevance
---------------
The warnings list names every record priced at a fallback rate so the
statement can be reconciled against source documents.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from construction_kernel.domain.clock import Clock, SystemClock
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
    DEFAULT_PERCENT_QUANTUM,
    ONE,
    ZERO,
    MoneyAccumulator,
    add,
    percentage,
    quantize,
    subtract,
    to_decimal,
)
from construction_kernel.domain.records import SaleStatus
from construction_kernel.exceptions import (
    InvalidExchangeRateError,
    ProjectNotFoundError,
)
from construction_kernel.logging_config import LogContext, get_logger
from construction_kernel.selectors import RecordSelector
from construction_modules.project.models import (
    CategoryTotal,
    CostSummary,
    DirectCosts,
    IncomeSummary,
    IndirectCosts,
    MarginSummary,
    PortfolioSummary,
    ProjectFinancials,
)
from construction_modules.rates import RateResolver
from construction_modules.wages import DEFAULT_HOURS_PER_DAY, WageResolver

logger = get_logger("modules.project.service")


class _Pricer:
    """
    Converts one aggregation's foreign amounts to local currency.

    Holds the per-run state: the resolved global default, whether the feed
    has already failed, and the warnings collected so far.
    """

    def __init__(
        self,
        currency: CurrencyPair,
        resolver: RateResolver | None,
        default_rate: Decimal,
    ) -> None:
        self.currency = currency
        self.resolver = resolver
        self.default_rate = default_rate
        self.feed_failed = False
        self.warnings: list[str] = []

    def price(
        self,
        kind: str,
        record_id: str,
        amount: Decimal,
        currency: str,
        record_rate: Decimal | None,
        day: date,
    ) -> Conversion:
        if not self.currency.is_foreign(currency):
            return passthrough(amount)
        if usable_rate(record_rate):
            return convert(amount, record_rate, RateSource.RECORD)

        if self.resolver is not None and not self.feed_failed:
            quote = self.resolver.resolve_or_default(day, self.default_rate)
            if quote.feed_error is not None:
                self.feed_failed = True
                self._warn(
                    f"rate feed unavailable ({quote.feed_error}); using default rate "
                    f"{self.default_rate} for the remaining items",
                    "project_rate_feed_failed",
                    reason=quote.feed_error,
                )
            elif not quote.is_fallback:
                self._warn(
                    f"{kind} {record_id} has no exchange rate; "
                    f"used feed rate {quote.rate} for {day.isoformat()}",
                    "project_feed_rate_used",
                    record_kind=kind, record_id=record_id, rate=quote.rate,
                )
                return convert(amount, quote.rate, RateSource.FEED)

        self._warn(
            f"{kind} {record_id} has no exchange rate; "
            f"used default rate {self.default_rate}",
            "project_default_rate_used",
            record_kind=kind, record_id=record_id, rate=self.default_rate,
        )
        return convert(amount, self.default_rate, RateSource.DEFAULT)

    def _warn(self, message: str, event: str, **fields) -> None:
        self.warnings.append(message)
        logger.warning(event, extra=fields)


class ProjectFinancialsAggregator:
    """
    (project_id, year) -> ``ProjectFinancials``.

    Contract:
        ``aggregate()`` reads only; equal inputs give byte-identical
        ``canonical_json()``.

    Guarantees:
        - Always returns numeric totals; missing rates and a failing feed
          degrade to the global default.

    Non-goals:
        - No indirect-cost allocation.
        - No partial-day labor costing.
    """

    def __init__(
        self,
        session: Session,
        *,
        rate_resolver: RateResolver | None = None,
        clock: Clock | None = None,
        currency: CurrencyPair | None = None,
        default_exchange_rate: Decimal | int = ONE,
        hours_per_day: Decimal | int = DEFAULT_HOURS_PER_DAY,
        money_quantum: Decimal = DEFAULT_MONEY_QUANTUM,
        percent_quantum: Decimal = DEFAULT_PERCENT_QUANTUM,
    ) -> None:
        fallback = to_decimal(default_exchange_rate, field="default_exchange_rate")
        if fallback <= ZERO:
            raise InvalidExchangeRateError(fallback, "default_exchange_rate")
        self._selector = RecordSelector(session)
        self._rates = rate_resolver
        self._clock = clock or SystemClock()
        self._currency = currency or CurrencyPair()
        self._fallback_rate = fallback
        self._hours_per_day = hours_per_day
        self._money_quantum = money_quantum
        self._percent_quantum = percent_quantum

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def aggregate(self, project_id: str, year: int | None = None) -> ProjectFinancials:
        project = self._selector.project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        year = year if year is not None else self._clock.today().year

        with LogContext.bind(project_id=project_id):
            return self._aggregate(project_id, project.name, year)

    def summarize_portfolio(
        self,
        year: int | None = None,
        *,
        statuses: tuple[str, ...] | None = None,
    ) -> PortfolioSummary:
        """
        Aggregate every project (optionally only those with a status in
        ``statuses``) and sum income and cost.
        """
        year = year if year is not None else self._clock.today().year
        projects = [
            p for p in self._selector.projects()
            if statuses is None or p.status in statuses
        ]
        statements = tuple(self.aggregate(p.id, year) for p in projects)

        income = MoneyAccumulator()
        cost = MoneyAccumulator()
        for statement in statements:
            income.add(statement.income.total)
            cost.add(statement.costs.total)
        profit = subtract(income.total, cost.total)

        summary = PortfolioSummary(
            year=year,
            total_income=self._money(income.total),
            total_cost=self._money(cost.total),
            total_profit=self._money(profit),
            margin_percentage=self._percent(percentage(profit, income.total)),
            projects=statements,
        )
        logger.info(
            "portfolio_summarized",
            extra={
                "year": year,
                "projects": len(statements),
                "total_income": summary.total_income,
                "total_cost": summary.total_cost,
            },
        )
        return summary

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _money(self, value: Decimal) -> Decimal:
        return quantize(value, self._money_quantum)

    def _percent(self, value: Decimal) -> Decimal:
        return quantize(value, self._percent_quantum)

    def _default_rate(self, warnings: list[str]) -> Decimal:
        try:
            stored = self._selector.global_default_rate()
        except InvalidExchangeRateError as exc:
            warnings.append(
                f"stored default exchange rate {exc.rate!r} is invalid; "
                f"using {self._fallback_rate}"
            )
            logger.warning("global_default_rate_invalid", extra={"rate": exc.rate})
            return self._fallback_rate
        return stored if stored is not None else self._fallback_rate

    def _aggregate(self, project_id: str, project_name: str, year: int) -> ProjectFinancials:
        selector = self._selector
        start, end = date(year, 1, 1), date(year, 12, 31)

        setup_warnings: list[str] = []
        pricer = _Pricer(self._currency, self._rates, self._default_rate(setup_warnings))
        pricer.warnings.extend(setup_warnings)

        # 1. Income
        income_total = MoneyAccumulator()
        income_paid = MoneyAccumulator()
        for sale in selector.sales_for_project(project_id, start, end):
            if sale.status is SaleStatus.CANCELLED:
                continue
            income_total.add(sale.total_amount)
            if sale.status is SaleStatus.COLLECTED:
                income_paid.add(sale.total_amount)

        # 2. Expenses -> materials / services, and the category breakdown
        materials = MoneyAccumulator()
        services = MoneyAccumulator()
        labor = MoneyAccumulator()
        by_category: dict[str | None, MoneyAccumulator] = defaultdict(MoneyAccumulator)
        for expense in selector.expenses_for_project(project_id, start, end):
            converted = pricer.price(
                "expense", expense.id, expense.amount, expense.currency,
                expense.exchange_rate, expense.date,
            )
            (materials if expense.is_materials else services).add(converted.amount)
            by_category[expense.category_id].add(converted.amount)

        for movement in selector.stock_check_outs(project_id, start, end):
            materials.add(movement.total_cost)

        # 3. Disbursements.  Undated records sit at their payroll week's start.
        certifications = [
            c for c in selector.certifications_for_project(project_id) if c.status.counts
        ]
        fund_requests = [
            r for r in selector.fund_requests_for_project(project_id) if r.status.counts
        ]
        week_starts = self._week_starts(
            r.payroll_week_id
            for r in (*certifications, *fund_requests)
            if r.date is None and r.payroll_week_id
        )

        for certification in certifications:
            day = certification.date or week_starts.get(certification.payroll_week_id)
            if day is None or not start <= day <= end:
                continue
            converted = pricer.price(
                "certification", certification.id, certification.amount,
                certification.currency, None, day,
            )
            labor.add(converted.amount)

        for request in fund_requests:
            day = request.date or week_starts.get(request.payroll_week_id)
            if day is None or not start <= day <= end:
                continue
            converted = pricer.price(
                "fund_request", request.id, request.amount, request.currency,
                request.exchange_rate, day,
            )
            services.add(converted.amount)

        # 4. Internal labor: one daily wage per present day on the project
        attendances = [
            a for a in selector.attendances_for_project(project_id, start, end)
            if a.is_present
        ]
        if attendances:
            wages = WageResolver.from_selector(
                selector,
                sorted({a.employee_id for a in attendances}),
                hours_per_day=self._hours_per_day,
            )
            for attendance in attendances:
                labor.add(wages.daily_wage(attendance.employee_id, attendance.date))

        # 5. Totals
        direct_total = add(materials.total, services.total, labor.total)
        indirect_total = ZERO
        cost_total = add(direct_total, indirect_total)
        net = subtract(income_total.total, cost_total)

        m = self._money
        financials = ProjectFinancials(
            project_id=project_id,
            project_name=project_name,
            year=year,
            income=IncomeSummary(
                total=m(income_total.total),
                paid=m(income_paid.total),
                pending=m(subtract(income_total.total, income_paid.total)),
            ),
            costs=CostSummary(
                direct=DirectCosts(
                    materials=m(materials.total),
                    labor=m(labor.total),
                    services=m(services.total),
                    total=m(direct_total),
                ),
                indirect=IndirectCosts(total=m(indirect_total)),
                total=m(cost_total),
            ),
            margin=MarginSummary(
                net=m(net),
                percentage=self._percent(percentage(net, income_total.total)),
            ),
            roi=self._percent(percentage(net, cost_total)),
            categories=self._category_rows(by_category),
            warnings=tuple(pricer.warnings),
        )

        logger.info(
            "project_financials_aggregated",
            extra={
                "year": year,
                "income_total": financials.income.total,
                "cost_total": financials.costs.total,
                "net_margin": financials.margin.net,
                "warnings": len(pricer.warnings),
            },
        )
        return financials

    def _week_starts(self, payroll_week_ids) -> dict[str, date]:
        ids = sorted(set(payroll_week_ids))
        if not ids:
            return {}
        return {w.id: w.start_date for w in self._selector.payroll_weeks(ids)}

    def _category_rows(
        self, by_category: dict[str | None, MoneyAccumulator],
    ) -> tuple[CategoryTotal, ...]:
        rows = [
            CategoryTotal(category_id=category_id, amount=self._money(acc.total))
            for category_id, acc in by_category.items()
        ]
        # Largest first; ties by category id, uncategorized last.
        rows.sort(key=lambda r: (-r.amount, r.category_id is None, r.category_id or ""))
        return tuple(rows)
