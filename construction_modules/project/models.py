"""
Project Financials Models (``construction_modules.project.models``).

Responsibility
--------------
Frozen value objects returned by ``ProjectFinancialsAggregator``: the
per-project, per-year profit-and-loss statement and the portfolio roll-up.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Money quantized to the money quantum, percentages to the percent quantum,
  both ROUND_HALF_UP, before construction.
* ``to_dict()`` / ``canonical_json()`` are byte-identical across runs on
  unchanged data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from construction_kernel.domain.money import ZERO
from construction_kernel.utils import canonicalize_json, plain_value


@dataclass(frozen=True)
class IncomeSummary:
    total: Decimal = ZERO
    paid: Decimal = ZERO
    pending: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "paid": self.paid, "pending": self.pending}


@dataclass(frozen=True)
class DirectCosts:
    materials: Decimal = ZERO
    labor: Decimal = ZERO
    services: Decimal = ZERO
    total: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "materials": self.materials,
            "labor": self.labor,
            "services": self.services,
            "total": self.total,
        }


@dataclass(frozen=True)
class IndirectCosts:
    """Always zero: no indirect-cost allocation is performed."""

    total: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total}


@dataclass(frozen=True)
class CostSummary:
    direct: DirectCosts = field(default_factory=DirectCosts)
    indirect: IndirectCosts = field(default_factory=IndirectCosts)
    total: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "direct": self.direct.to_dict(),
            "indirect": self.indirect.to_dict(),
            "total": self.total,
        }


@dataclass(frozen=True)
class MarginSummary:
    net: Decimal = ZERO
    percentage: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {"net": self.net, "percentage": self.percentage}


@dataclass(frozen=True)
class CategoryTotal:
    """Converted expense total of one category.  None = uncategorized."""

    category_id: str | None
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"categoryId": self.category_id, "amount": self.amount}


@dataclass(frozen=True)
class ProjectFinancials:
    """Profit and loss of one project over one calendar year."""

    project_id: str
    project_name: str | None
    year: int
    income: IncomeSummary
    costs: CostSummary
    margin: MarginSummary
    roi: Decimal
    categories: tuple[CategoryTotal, ...] = ()
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return plain_value({
            "projectId": self.project_id,
            "projectName": self.project_name,
            "year": self.year,
            "income": self.income.to_dict(),
            "costs": self.costs.to_dict(),
            "margin": self.margin.to_dict(),
            "roi": self.roi,
            "categories": [c.to_dict() for c in self.categories],
            "warnings": list(self.warnings),
        })

    def canonical_json(self) -> str:
        return canonicalize_json(self.to_dict())


@dataclass(frozen=True)
class PortfolioSummary:
    """Sum of every project's statement for one year."""

    year: int
    total_income: Decimal
    total_cost: Decimal
    total_profit: Decimal
    margin_percentage: Decimal
    projects: tuple[ProjectFinancials, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return plain_value({
            "year": self.year,
            "totalIncome": self.total_income,
            "totalCost": self.total_cost,
            "totalProfit": self.total_profit,
            "marginPercentage": self.margin_percentage,
            "projects": [p.to_dict() for p in self.projects],
        })

    def canonical_json(self) -> str:
        return canonicalize_json(self.to_dict())
