"""
construction_batch.domain.types -- Pure frozen dataclasses for the batch jobs.

ZERO I/O.

Invariants enforced:
    - All DTOs are frozen dataclasses (immutable).
    - Collections are tuples.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from construction_kernel.utils import plain_value


@dataclass(frozen=True)
class RateCorrection:
    """One stored expense rate replaced (or, in a dry run, to be replaced)."""

    expense_id: str
    project_id: str
    expense_date: date
    old_rate: Decimal | None
    new_rate: Decimal

    def to_dict(self) -> dict[str, Any]:
        return plain_value({
            "expenseId": self.expense_id,
            "projectId": self.project_id,
            "date": self.expense_date,
            "oldRate": self.old_rate,
            "newRate": self.new_rate,
        })


@dataclass(frozen=True)
class BackfillResult:
    """Outcome of one rate backfill run.

    ``updated_count`` counts committed corrections, or in a dry run the
    corrections that would have been written.  ``batches_committed`` is
    always 0 in a dry run.
    """

    updated_count: int = 0
    scanned_count: int = 0
    batches_committed: int = 0
    projects_scanned: int = 0
    stopped: bool = False
    dry_run: bool = False
    corrections: tuple[RateCorrection, ...] = ()

    def to_dict(self, *, include_corrections: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "updatedCount": self.updated_count,
            "scannedCount": self.scanned_count,
            "batchesCommitted": self.batches_committed,
            "projectsScanned": self.projects_scanned,
            "stopped": self.stopped,
            "dryRun": self.dry_run,
        }
        if include_corrections:
            data["corrections"] = [c.to_dict() for c in self.corrections]
        return data
