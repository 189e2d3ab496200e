"""
Wage Resolver (``construction_modules.wages.resolver``).

Responsibility
--------------
Answer "what was this employee's daily wage on this date?" from the
effective-dated wage history, falling back to the employee's base wage.

Architecture position
---------------------
**Modules layer** -- pure lookup over DTOs handed in at construction.  No
session is held; ``from_selector()`` loads the inputs once.

Invariants enforced
-------------------
* Only entries with ``effective_date <= date`` apply; the latest applies.
* Entries sharing an effective date: the last one supplied wins.
* ``hourly_rate = daily_wage / hours_per_day``.

Failure modes
-------------
* Unknown employee -> zero wage, never an exception.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from construction_kernel.domain.money import ZERO, divide, to_decimal
from construction_kernel.domain.records import Employee, WageHistoryEntry
from construction_kernel.logging_config import get_logger
from construction_kernel.selectors import RecordSelector

logger = get_logger("modules.wages.resolver")

DEFAULT_HOURS_PER_DAY = Decimal("8")


@dataclass(frozen=True)
class WageQuote:
    """Daily wage in effect on a date and the derived hourly rate."""

    daily_wage: Decimal
    hourly_rate: Decimal


class WageResolver:
    """
    (employee, date) -> ``WageQuote``.

    Contract:
        ``resolve()`` is deterministic for a fixed set of inputs.

    Guarantees:
        - History is indexed once per employee, so each lookup is a binary
          search over that employee's effective dates.
    """

    def __init__(
        self,
        employees: Iterable[Employee],
        history: Iterable[WageHistoryEntry],
        *,
        hours_per_day: Decimal | int = DEFAULT_HOURS_PER_DAY,
    ) -> None:
        hours = to_decimal(hours_per_day, field="hours_per_day")
        if hours <= ZERO:
            raise ValueError(f"hours_per_day must be positive, got {hours}")
        self._hours_per_day = hours
        self._base_wages = {e.id: e.daily_wage for e in employees}

        # employee_id -> (sorted effective dates, amounts); a later entry
        # with the same date replaces the earlier one.
        by_employee: dict[str, dict[date, Decimal]] = {}
        for entry in history:
            by_employee.setdefault(entry.employee_id, {})[entry.effective_date] = entry.amount
        self._history: dict[str, tuple[list[date], list[Decimal]]] = {}
        for employee_id, entries in by_employee.items():
            dates = sorted(entries)
            self._history[employee_id] = (dates, [entries[d] for d in dates])

    @classmethod
    def from_selector(
        cls,
        selector: RecordSelector,
        employee_ids: Iterable[str] | None = None,
        *,
        hours_per_day: Decimal | int = DEFAULT_HOURS_PER_DAY,
    ) -> WageResolver:
        ids = tuple(employee_ids) if employee_ids is not None else None
        return cls(
            selector.employees(ids),
            selector.wage_history(ids),
            hours_per_day=hours_per_day,
        )

    @property
    def hours_per_day(self) -> Decimal:
        return self._hours_per_day

    def daily_wage(self, employee_id: str, day: date) -> Decimal:
        history = self._history.get(employee_id)
        if history is not None:
            dates, amounts = history
            index = bisect_right(dates, day)
            if index:
                return amounts[index - 1]

        base = self._base_wages.get(employee_id)
        if base is None:
            logger.debug("wage_unknown_employee", extra={"employee_id": employee_id})
            return ZERO
        return base

    def resolve(self, employee_id: str, day: date) -> WageQuote:
        wage = self.daily_wage(employee_id, day)
        return WageQuote(daily_wage=wage, hourly_rate=divide(wage, self._hours_per_day))
