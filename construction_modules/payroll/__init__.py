"""
Payroll Module (``construction_modules.payroll``).

Weekly payroll aggregation: personnel wages net of advances and late-hour
deductions, contractor certifications and fund requests, converted to local
currency with the week's locked-in exchange rate.
"""

from construction_modules.payroll.models import (
    EmployeePayrollLine,
    ProjectPayrollBreakdown,
    WeeklyPayrollSummary,
)
from construction_modules.payroll.service import PayrollAggregator

__all__ = [
    "EmployeePayrollLine",
    "PayrollAggregator",
    "ProjectPayrollBreakdown",
    "WeeklyPayrollSummary",
]
