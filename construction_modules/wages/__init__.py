"""Wages Module (``construction_modules.wages``) -- effective-dated daily wages."""

from construction_modules.wages.resolver import (
    DEFAULT_HOURS_PER_DAY,
    WageQuote,
    WageResolver,
)

__all__ = [
    "DEFAULT_HOURS_PER_DAY",
    "WageQuote",
    "WageResolver",
]
