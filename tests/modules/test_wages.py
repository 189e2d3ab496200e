"""
Tests for WageResolver: effective-dated history with base-wage fallback.
"""

from datetime import date
from decimal import Decimal

import pytest

from construction_kernel.domain.money import ZERO
from construction_kernel.domain.records import Employee, WageHistoryEntry
from construction_kernel.selectors import RecordSelector
from construction_modules.wages import WageResolver


def _history(*entries):
    return [
        WageHistoryEntry(employee_id="emp-1", effective_date=day, amount=Decimal(amount))
        for day, amount in entries
    ]


EMPLOYEE = Employee(id="emp-1", name="Juan", daily_wage=Decimal("3000"))


class TestDailyWage:
    def test_latest_change_on_or_before_date(self):
        resolver = WageResolver([EMPLOYEE], _history(
            (date(2025, 1, 1), "2000"),
            (date(2025, 3, 1), "2500"),
        ))
        assert resolver.daily_wage("emp-1", date(2025, 2, 28)) == Decimal("2000")
        assert resolver.daily_wage("emp-1", date(2025, 3, 1)) == Decimal("2500")
        assert resolver.daily_wage("emp-1", date(2026, 1, 1)) == Decimal("2500")

    def test_before_first_change_uses_base_wage(self):
        resolver = WageResolver([EMPLOYEE], _history((date(2025, 1, 1), "2000")))
        assert resolver.daily_wage("emp-1", date(2024, 12, 31)) == Decimal("3000")

    def test_no_history_uses_base_wage(self):
        resolver = WageResolver([EMPLOYEE], [])
        assert resolver.daily_wage("emp-1", date(2025, 1, 1)) == Decimal("3000")

    def test_unknown_employee_is_zero(self):
        resolver = WageResolver([EMPLOYEE], [])
        assert resolver.daily_wage("ghost", date(2025, 1, 1)) == ZERO

    def test_same_date_last_entry_wins(self):
        resolver = WageResolver([EMPLOYEE], _history(
            (date(2025, 1, 1), "2000"),
            (date(2025, 1, 1), "2200"),
        ))
        assert resolver.daily_wage("emp-1", date(2025, 1, 1)) == Decimal("2200")

    def test_unsorted_history_is_ordered_by_date(self):
        resolver = WageResolver([EMPLOYEE], _history(
            (date(2025, 6, 1), "2600"),
            (date(2025, 1, 1), "2000"),
        ))
        assert resolver.daily_wage("emp-1", date(2025, 3, 1)) == Decimal("2000")

    def test_monotonic_in_date_for_rising_history(self):
        resolver = WageResolver([EMPLOYEE], _history(
            (date(2025, 1, 1), "2000"),
            (date(2025, 2, 1), "2100"),
            (date(2025, 3, 1), "2300"),
        ))
        wages = [resolver.daily_wage("emp-1", date(2025, m, 15)) for m in (1, 2, 3, 4)]
        assert wages == sorted(wages)


class TestResolve:
    def test_hourly_rate(self):
        quote = WageResolver([EMPLOYEE], []).resolve("emp-1", date(2025, 1, 1))
        assert quote.daily_wage == Decimal("3000")
        assert quote.hourly_rate == Decimal("375")

    def test_custom_hours_per_day(self):
        resolver = WageResolver([EMPLOYEE], [], hours_per_day=10)
        assert resolver.resolve("emp-1", date(2025, 1, 1)).hourly_rate == Decimal("300")

    def test_non_positive_hours_rejected(self):
        with pytest.raises(ValueError):
            WageResolver([EMPLOYEE], [], hours_per_day=0)


class TestFromSelector:
    def test_reads_employees_and_history(self, session, records):
        employee = records.employee("Ana", "2000")
        records.wage(employee.id, date(2025, 1, 1), "2100")
        records.wage(employee.id, date(2025, 1, 1), "2150")

        resolver = WageResolver.from_selector(RecordSelector(session), [employee.id])
        assert resolver.daily_wage(employee.id, date(2025, 1, 2)) == Decimal("2150")
        assert resolver.daily_wage(employee.id, date(2024, 1, 2)) == Decimal("2000")
