"""
Rates Module (``construction_modules.rates``).

Date -> foreign-to-local exchange rate, backed by a historical feed that is
fetched once and cached.  ``RateResolver.resolve()`` returns the sentinel
``0`` when a date cannot be converted; callers substitute the global
default rate and record a warning.
"""

from construction_modules.rates.feed import (
    DEFAULT_FEED_URL,
    HttpRateFeed,
    RateFeed,
    StaticRateFeed,
    parse_samples,
)
from construction_modules.rates.resolver import UNRESOLVED, RateQuote, RateResolver

__all__ = [
    "DEFAULT_FEED_URL",
    "HttpRateFeed",
    "RateFeed",
    "RateQuote",
    "RateResolver",
    "StaticRateFeed",
    "UNRESOLVED",
    "parse_samples",
]
