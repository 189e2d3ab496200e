"""
construction_batch -- write-side batch jobs.

The rate backfill is the only job: it repairs missing or implausible
exchange rates on stored expenses.
"""

from construction_batch.domain.types import BackfillResult, RateCorrection
from construction_batch.tasks.rate_backfill import RateBackfillJob

__all__ = [
    "BackfillResult",
    "RateBackfillJob",
    "RateCorrection",
]
