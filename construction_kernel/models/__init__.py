"""
ORM models for the record collections.

``import_all_models()`` makes sure every table is registered on
``Base.metadata`` before ``create_all``.
"""

from construction_kernel.models.disbursements import (
    ContractorCertificationModel,
    FundRequestModel,
)
from construction_kernel.models.inventory import (
    GLOBAL_EXCHANGE_RATE_KEY,
    SettingModel,
    StockMovementModel,
)
from construction_kernel.models.personnel import (
    AttendanceModel,
    CashAdvanceModel,
    EmployeeModel,
    PayrollWeekModel,
    WageHistoryModel,
)
from construction_kernel.models.project import ExpenseModel, ProjectModel, SaleModel

__all__ = [
    "AttendanceModel",
    "CashAdvanceModel",
    "ContractorCertificationModel",
    "EmployeeModel",
    "ExpenseModel",
    "FundRequestModel",
    "GLOBAL_EXCHANGE_RATE_KEY",
    "PayrollWeekModel",
    "ProjectModel",
    "SaleModel",
    "SettingModel",
    "StockMovementModel",
    "WageHistoryModel",
    "import_all_models",
]


def import_all_models() -> tuple[type, ...]:
    """Return every ORM model class (importing this package registers them)."""
    return (
        ProjectModel,
        ExpenseModel,
        SaleModel,
        EmployeeModel,
        WageHistoryModel,
        PayrollWeekModel,
        AttendanceModel,
        CashAdvanceModel,
        ContractorCertificationModel,
        FundRequestModel,
        StockMovementModel,
        SettingModel,
    )
