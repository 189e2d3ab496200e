"""Batch domain types (frozen DTOs, zero I/O)."""

from construction_batch.domain.types import BackfillResult, RateCorrection

__all__ = [
    "BackfillResult",
    "RateCorrection",
]
