"""
Payroll Summary Models (``construction_modules.payroll.models``).

Responsibility
--------------
Frozen value objects returned by ``PayrollAggregator``: the weekly summary,
its per-project breakdown and its per-employee lines.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal``, already quantized by the aggregator.
* ``canonical_json()`` is byte-stable: sorted keys, Decimals and dates as
  strings, tuples in aggregator order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from construction_kernel.domain.money import ZERO
from construction_kernel.utils import canonicalize_json, plain_value


@dataclass(frozen=True)
class EmployeePayrollLine:
    """One employee's contribution to the week."""

    employee_id: str
    employee_name: str | None
    days_present: int
    gross_wages: Decimal
    late_hours_deduction: Decimal
    advances: Decimal
    net: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "daysPresent": self.days_present,
            "grossWages": self.gross_wages,
            "lateHoursDeduction": self.late_hours_deduction,
            "advances": self.advances,
            "net": self.net,
        }


@dataclass(frozen=True)
class ProjectPayrollBreakdown:
    """
    The week's payout attributed to one project.

    ``project_id`` None collects records that carry no project.
    """

    project_id: str | None
    project_name: str | None
    personnel: Decimal = ZERO
    contractors: Decimal = ZERO
    fund_requests: Decimal = ZERO
    total: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "personnel": self.personnel,
            "contractors": self.contractors,
            "fundRequests": self.fund_requests,
            "total": self.total,
        }


@dataclass(frozen=True)
class WeeklyPayrollSummary:
    """
    Net payroll obligation of one payroll week, in local currency.

    ``net_personnel`` is never clamped; a week where advances exceed wages
    yields a negative value.
    """

    payroll_week_id: str
    start_date: date
    end_date: date
    gross_wages: Decimal = ZERO
    late_hours_deduction: Decimal = ZERO
    advances_total: Decimal = ZERO
    net_personnel: Decimal = ZERO
    contractors_total: Decimal = ZERO
    fund_requests_total: Decimal = ZERO
    grand_total: Decimal = ZERO
    projects: tuple[ProjectPayrollBreakdown, ...] = ()
    employees: tuple[EmployeePayrollLine, ...] = ()
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return plain_value({
            "payrollWeekId": self.payroll_week_id,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "grossWages": self.gross_wages,
            "lateHoursDeduction": self.late_hours_deduction,
            "advancesTotal": self.advances_total,
            "netPersonnel": self.net_personnel,
            "contractorsTotal": self.contractors_total,
            "fundRequestsTotal": self.fund_requests_total,
            "grandTotal": self.grand_total,
            "projects": [p.to_dict() for p in self.projects],
            "employees": [e.to_dict() for e in self.employees],
            "warnings": list(self.warnings),
        })

    def canonical_json(self) -> str:
        return canonicalize_json(self.to_dict())
