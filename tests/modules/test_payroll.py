"""
Tests for PayrollAggregator -- the weekly net payroll obligation.

Covers wage/advance/late-hour arithmetic, the week-rate precedence for
foreign contractor and fund request amounts, status filtering and the
per-project breakdown.
"""

from datetime import date
from decimal import Decimal

import pytest

from construction_kernel.domain.records import (
    AttendanceStatus,
    CertificationStatus,
    FundRequestStatus,
    PayrollWeek,
)
from construction_kernel.exceptions import InvalidPayrollWeekError, PayrollWeekNotFoundError
from construction_modules.payroll import PayrollAggregator

MON, TUE, WED = date(2025, 3, 3), date(2025, 3, 4), date(2025, 3, 5)


@pytest.fixture
def aggregator(session):
    return PayrollAggregator(session)


@pytest.fixture
def week(records):
    return records.week(MON, date(2025, 3, 9))


class TestPersonnel:
    def test_wages_advance_and_late_hour(self, aggregator, records, week):
        employee = records.employee("Juan", "2500")
        records.attendance(employee.id, MON, week_id=week.id, late_hours="1")
        records.attendance(employee.id, TUE, week_id=week.id)
        records.attendance(employee.id, WED, week_id=week.id)
        records.advance(employee.id, "3000", week_id=week.id)

        summary = aggregator.aggregate_by_id(week.id)

        assert summary.gross_wages == Decimal("7500.00")
        assert summary.advances_total == Decimal("3000.00")
        assert summary.late_hours_deduction == Decimal("312.50")
        assert summary.net_personnel == Decimal("4187.50")
        assert summary.grand_total == Decimal("4187.50")

    def test_absent_days_are_not_paid(self, aggregator, records, week):
        employee = records.employee("Juan", "2500")
        records.attendance(employee.id, MON, week_id=week.id)
        records.attendance(employee.id, TUE, week_id=week.id, status=AttendanceStatus.ABSENT)

        assert aggregator.aggregate_by_id(week.id).gross_wages == Decimal("2500.00")

    def test_installments_split_the_advance(self, aggregator, records, week):
        employee = records.employee("Juan", "2500")
        records.advance(employee.id, "3000", week_id=week.id, installments=3)

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.advances_total == Decimal("1000.00")
        assert summary.net_personnel == Decimal("-1000.00")

    def test_zero_installments_count_as_one(self, aggregator, records, week):
        employee = records.employee("Juan", "2500")
        records.advance(employee.id, "600", week_id=week.id, installments=0)

        assert aggregator.aggregate_by_id(week.id).advances_total == Decimal("600.00")

    def test_net_personnel_is_not_clamped(self, aggregator, records, week):
        employee = records.employee("Juan", "1000")
        records.attendance(employee.id, MON, week_id=week.id)
        records.advance(employee.id, "5000", week_id=week.id)

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.net_personnel == Decimal("-4000.00")
        assert summary.grand_total == Decimal("-4000.00")

    def test_wage_history_applies_per_day(self, aggregator, records, week):
        employee = records.employee("Juan", "2000")
        records.wage(employee.id, TUE, "3000")
        records.attendance(employee.id, MON, week_id=week.id)
        records.attendance(employee.id, TUE, week_id=week.id)

        assert aggregator.aggregate_by_id(week.id).gross_wages == Decimal("5000.00")

    def test_employee_lines(self, aggregator, records, week):
        employee = records.employee("Juan", "2500")
        records.attendance(employee.id, MON, week_id=week.id, late_hours="2")
        records.advance(employee.id, "500", week_id=week.id)

        [line] = aggregator.aggregate_by_id(week.id).employees
        assert line.employee_name == "Juan"
        assert line.days_present == 1
        assert line.late_hours_deduction == Decimal("625.00")
        assert line.net == Decimal("1375.00")


class TestForeignAmounts:
    def test_week_rate_converts_certifications(self, aggregator, records):
        week = records.week(MON, date(2025, 3, 9), exchange_rate="1100")
        records.certification("100", currency="USD", week_id=week.id)
        records.certification("5000", currency="ARS", week_id=week.id)

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.contractors_total == Decimal("115000.00")
        assert summary.warnings == ()

    def test_certification_without_week_rate_uses_one(self, aggregator, records, week, captured_logs):
        cert = records.certification("100", currency="USD", week_id=week.id)

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.contractors_total == Decimal("100.00")
        assert any(cert.id in w for w in summary.warnings)
        assert any(r["message"] == "payroll_unit_rate_fallback" for r in captured_logs())

    def test_week_rate_beats_fund_request_rate(self, aggregator, records):
        week = records.week(MON, date(2025, 3, 9), exchange_rate="1100")
        records.fund_request("10", currency="USD", week_id=week.id, exchange_rate="900")

        assert aggregator.aggregate_by_id(week.id).fund_requests_total == Decimal("11000.00")

    def test_fund_request_falls_back_to_its_own_rate(self, aggregator, records, week):
        records.fund_request("10", currency="USD", week_id=week.id, exchange_rate="900")

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.fund_requests_total == Decimal("9000.00")
        assert summary.warnings == ()

    def test_fund_request_without_any_rate_uses_one(self, aggregator, records, week):
        records.fund_request("10", currency="USD", week_id=week.id)

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.fund_requests_total == Decimal("10.00")
        assert len(summary.warnings) == 1


class TestStatusFiltering:
    def test_only_approved_or_paid_count(self, aggregator, records, week):
        records.certification("100", week_id=week.id, status=CertificationStatus.PENDING)
        records.certification("200", week_id=week.id, status=CertificationStatus.APPROVED)
        records.certification("300", week_id=week.id, status=CertificationStatus.PAID)
        records.fund_request("40", week_id=week.id, status=FundRequestStatus.REJECTED)
        records.fund_request("50", week_id=week.id, status=FundRequestStatus.PAID)

        summary = aggregator.aggregate_by_id(week.id)
        assert summary.contractors_total == Decimal("500.00")
        assert summary.fund_requests_total == Decimal("50.00")
        assert summary.grand_total == Decimal("550.00")

    def test_undated_week_members_by_date_range(self, aggregator, records, week):
        records.certification("100", day=TUE)
        records.certification("999", day=date(2025, 4, 1))

        assert aggregator.aggregate_by_id(week.id).contractors_total == Decimal("100.00")


class TestProjectBreakdown:
    def test_rows_sum_to_totals(self, aggregator, records, week):
        alpha = records.project("Alpha")
        beta = records.project("Beta")
        employee = records.employee("Juan", "2000")
        records.attendance(employee.id, MON, week_id=week.id, project_id=beta.id)
        records.attendance(employee.id, TUE, week_id=week.id, project_id=alpha.id, late_hours="1")
        records.advance(employee.id, "500", week_id=week.id, project_id=alpha.id)
        records.certification("1000", week_id=week.id, project_id=alpha.id)
        records.fund_request("300", week_id=week.id)

        summary = aggregator.aggregate_by_id(week.id)

        assert [row.project_name for row in summary.projects] == ["Alpha", "Beta", None]
        alpha_row, beta_row, unassigned = summary.projects
        assert alpha_row.personnel == Decimal("1250.00")
        assert alpha_row.contractors == Decimal("1000.00")
        assert alpha_row.total == Decimal("2250.00")
        assert beta_row.personnel == Decimal("2000.00")
        assert unassigned.project_id is None
        assert unassigned.fund_requests == Decimal("300.00")
        assert sum(row.total for row in summary.projects) == summary.grand_total


class TestEdgeCases:
    def test_empty_week_is_all_zero(self, aggregator, week):
        summary = aggregator.aggregate_by_id(week.id)
        assert summary.grand_total == Decimal("0.00")
        assert summary.projects == ()
        assert summary.employees == ()

    def test_unknown_week_raises(self, aggregator):
        with pytest.raises(PayrollWeekNotFoundError) as exc_info:
            aggregator.aggregate_by_id("nope")
        assert exc_info.value.code == "PAYROLL_WEEK_NOT_FOUND"

    def test_inverted_week_raises(self, aggregator):
        week = PayrollWeek(id="w", start_date=date(2025, 3, 9), end_date=date(2025, 3, 3))
        with pytest.raises(InvalidPayrollWeekError):
            aggregator.aggregate(week)

    def test_week_without_id_raises(self, aggregator):
        week = PayrollWeek(id="", start_date=MON, end_date=WED)
        with pytest.raises(InvalidPayrollWeekError):
            aggregator.aggregate(week)

    def test_summary_logged_with_week_context(self, aggregator, records, week, captured_logs):
        aggregator.aggregate_by_id(week.id)
        [event] = [r for r in captured_logs() if r["message"] == "payroll_week_aggregated"]
        assert event["payroll_week_id"] == week.id

    def test_canonical_json_is_stable(self, aggregator, records, week):
        employee = records.employee("Juan", "2500")
        records.attendance(employee.id, MON, week_id=week.id)
        first = aggregator.aggregate_by_id(week.id).canonical_json()
        second = aggregator.aggregate_by_id(week.id).canonical_json()
        assert first == second
        assert '"grossWages":"2500.00"' in first
