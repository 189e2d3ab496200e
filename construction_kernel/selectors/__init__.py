"""Selectors for the construction kernel (read side)."""

from construction_kernel.selectors.record_selector import Collection, RecordSelector

__all__ = [
    "Collection",
    "RecordSelector",
]
