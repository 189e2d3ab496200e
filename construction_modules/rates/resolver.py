"""
Rate Resolver (``construction_modules.rates.resolver``).

Responsibility
--------------
Map a calendar date to the foreign-to-local exchange rate in effect on that
date.  The whole published history is fetched once, lazily, and kept in an
in-memory ``date -> rate`` cache for the life of the resolver.

Architecture position
---------------------
**Modules layer** -- pure lookup service shared by the project financials
aggregator and the rate backfill job.

Invariants enforced
-------------------
* At most one successful population per resolver instance; concurrent
  first use is serialized by a lock.
* Lookup order: exact date, then up to ``lookback_days`` earlier, then the
  latest known rate when the date is on or after the latest known date,
  else the sentinel ``0``.
* A failed population caches nothing; the next call fetches again.

Failure modes
-------------
* ``RateFeedError`` propagates from ``resolve()``.  ``resolve_or_default()``
  never raises; it degrades to the supplied default.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from construction_kernel.domain.currency import RateSource
from construction_kernel.domain.money import ZERO
from construction_kernel.domain.records import ExchangeRateSample
from construction_kernel.exceptions import RateFeedError
from construction_kernel.logging_config import get_logger
from construction_modules.rates.feed import RateFeed

logger = get_logger("modules.rates.resolver")

# Returned when no rate can be determined for a date.
UNRESOLVED = ZERO

DEFAULT_LOOKBACK_DAYS = 7


@dataclass(frozen=True)
class RateQuote:
    """
    A rate and where it came from (``FEED`` or ``DEFAULT``).

    ``feed_error`` carries the feed failure reason when the default was
    substituted because the feed could not be read.
    """

    rate: Decimal
    source: RateSource
    feed_error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is RateSource.DEFAULT


class RateResolver:
    """
    Date -> rate lookup over a lazily populated cache.

    Contract:
        ``resolve(day)`` returns a positive rate or ``UNRESOLVED`` (0).

    Guarantees:
        - The feed is asked at most once after a successful population.
        - Results for a given date are stable for the life of the instance.

    Non-goals:
        - No cache expiry.  A new resolver picks up new feed data.
    """

    def __init__(self, feed: RateFeed, *, lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> None:
        if lookback_days < 0:
            raise ValueError(f"lookback_days must be >= 0, got {lookback_days}")
        self._feed = feed
        self._lookback_days = lookback_days
        self._lock = threading.Lock()
        self._rates: dict[date, Decimal] | None = None
        self._latest: ExchangeRateSample | None = None

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    def _ensure_loaded(self) -> dict[date, Decimal]:
        rates = self._rates
        if rates is not None:
            return rates
        with self._lock:
            if self._rates is None:
                self._populate()
            return self._rates

    def _populate(self) -> None:
        source = repr(self._feed)
        try:
            samples = self._feed.fetch_all()
        except RateFeedError:
            logger.error("rate_cache_population_failed", extra={"source": source})
            raise

        rates: dict[date, Decimal] = {}
        for sample in samples:
            # Later duplicates of a date overwrite earlier ones.
            rates[sample.date] = sample.rate

        latest = None
        if rates:
            latest_day = max(rates)
            latest = ExchangeRateSample(date=latest_day, rate=rates[latest_day])

        self._latest = latest
        self._rates = rates
        logger.info(
            "rate_cache_populated",
            extra={
                "source": source,
                "known_dates": len(rates),
                "latest_date": latest.date if latest else None,
                "latest_rate": latest.rate if latest else None,
            },
        )

    @property
    def is_loaded(self) -> bool:
        return self._rates is not None

    @property
    def known_dates(self) -> int:
        return len(self._ensure_loaded())

    def latest(self) -> ExchangeRateSample | None:
        """The most recent known sample, or None for an empty history."""
        self._ensure_loaded()
        return self._latest

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def resolve(self, day: date) -> Decimal:
        """
        Rate in effect on ``day``.

        Raises:
            RateFeedError: If the cache cannot be populated.
        """
        rates = self._ensure_loaded()

        rate = rates.get(day)
        if rate is not None:
            return rate

        for offset in range(1, self._lookback_days + 1):
            rate = rates.get(day - timedelta(days=offset))
            if rate is not None:
                return rate

        latest = self._latest
        if latest is not None and day >= latest.date:
            return latest.rate

        logger.debug("rate_unresolved", extra={"date": day})
        return UNRESOLVED

    def resolve_or_default(self, day: date, default: Decimal) -> RateQuote:
        """Like ``resolve()`` but substitutes ``default`` instead of failing."""
        try:
            rate = self.resolve(day)
        except RateFeedError as exc:
            logger.warning(
                "rate_feed_unavailable_using_default",
                extra={"date": day, "default_rate": default, "reason": exc.reason},
            )
            return RateQuote(
                rate=default, source=RateSource.DEFAULT, feed_error=exc.reason,
            )

        if rate > ZERO:
            return RateQuote(rate=rate, source=RateSource.FEED)

        logger.warning(
            "rate_unresolved_using_default",
            extra={"date": day, "default_rate": default},
        )
        return RateQuote(rate=default, source=RateSource.DEFAULT)
