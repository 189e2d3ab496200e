"""Batch tasks."""

from construction_batch.tasks.rate_backfill import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_PLAUSIBILITY_THRESHOLD,
    RateBackfillJob,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_PLAUSIBILITY_THRESHOLD",
    "RateBackfillJob",
]
