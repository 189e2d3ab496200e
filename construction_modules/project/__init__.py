"""
Project Module (``construction_modules.project``).

Per-project, per-year profit and loss (income, direct cost, margin, ROI)
and the portfolio roll-up across all projects.
"""

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
from construction_modules.project.service import ProjectFinancialsAggregator

__all__ = [
    "CategoryTotal",
    "CostSummary",
    "DirectCosts",
    "IncomeSummary",
    "IndirectCosts",
    "MarginSummary",
    "PortfolioSummary",
    "ProjectFinancials",
    "ProjectFinancialsAggregator",
]
