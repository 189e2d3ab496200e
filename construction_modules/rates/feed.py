"""
Exchange-Rate Feeds (``construction_modules.rates.feed``).

Responsibility
--------------
Adapters that return the whole published history of foreign-currency sell
rates as ``ExchangeRateSample`` tuples.  ``HttpRateFeed`` reads the public
JSON endpoint; ``StaticRateFeed`` serves an in-memory history for tests and
offline use.

Architecture position
---------------------
**Modules layer** -- the only network I/O in the financial core.  Consumed
exclusively by ``RateResolver``.

Invariants enforced
-------------------
* Rates are parsed to ``Decimal`` through ``str`` -- NEVER via ``float``
  arithmetic.
* Entries without a date or without a positive sell rate are skipped; they
  never reach the resolver cache.

Failure modes
-------------
* Transport error, non-2xx status, undecodable JSON, or a payload that is
  not a JSON array -> ``RateFeedError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any, Protocol

import httpx

from construction_kernel.domain.money import ZERO, to_decimal
from construction_kernel.domain.records import ExchangeRateSample
from construction_kernel.exceptions import RateFeedError
from construction_kernel.logging_config import get_logger

logger = get_logger("modules.rates.feed")

DEFAULT_FEED_URL = "https://api.argentinadatos.com/v1/cotizaciones/dolares/blue"

# Accepted spellings of the two fields, canonical first.
_DATE_KEYS = ("date", "fecha")
_RATE_KEYS = ("sellRate", "venta")


class RateFeed(Protocol):
    """Anything that can return the full history of published rates."""

    def fetch_all(self) -> tuple[ExchangeRateSample, ...]:
        ...


def _first_present(entry: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None and value != "":
            return value
    return None


def parse_samples(payload: Any, source: str) -> tuple[ExchangeRateSample, ...]:
    """
    Turn a decoded JSON payload into samples.

    Preconditions:
        - ``payload`` is the decoded response body.
    Postconditions:
        - Every returned sample has a positive rate.
        - Malformed entries are dropped and counted in the log.

    Raises:
        RateFeedError: If ``payload`` is not a JSON array.
    """
    if not isinstance(payload, list):
        raise RateFeedError(source, f"expected a JSON array, got {type(payload).__name__}")

    samples: list[ExchangeRateSample] = []
    skipped = 0
    for entry in payload:
        if not isinstance(entry, dict):
            skipped += 1
            continue
        raw_date = _first_present(entry, _DATE_KEYS)
        raw_rate = _first_present(entry, _RATE_KEYS)
        if raw_date is None or raw_rate is None:
            skipped += 1
            continue
        try:
            day = date.fromisoformat(str(raw_date)[:10])
            rate = to_decimal(raw_rate, field="sellRate")
        except ValueError:
            skipped += 1
            continue
        if rate <= ZERO:
            skipped += 1
            continue
        samples.append(ExchangeRateSample(date=day, rate=rate))

    if skipped:
        logger.warning(
            "rate_feed_entries_skipped",
            extra={"source": source, "skipped": skipped, "accepted": len(samples)},
        )
    return tuple(samples)


class HttpRateFeed:
    """
    Reads the rate history from a JSON-over-HTTP endpoint.

    Contract:
        ``fetch_all()`` performs exactly one GET and returns every valid
        sample of the response.
    """

    def __init__(self, url: str = DEFAULT_FEED_URL, *, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def fetch_all(self) -> tuple[ExchangeRateSample, ...]:
        logger.info("rate_feed_request", extra={"source": self.url})
        try:
            response = httpx.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise RateFeedError(self.url, f"transport error: {exc}") from exc
        except ValueError as exc:
            raise RateFeedError(self.url, f"invalid JSON: {exc}") from exc
        return parse_samples(payload, self.url)

    def __repr__(self) -> str:
        return f"HttpRateFeed({self.url!r})"


class StaticRateFeed:
    """In-memory feed.  Counts how many times it was asked."""

    source = "static"

    def __init__(self, samples: Iterable[ExchangeRateSample] = ()) -> None:
        self._samples = tuple(samples)
        self.fetch_count = 0

    @classmethod
    def from_mapping(cls, rates: dict[date, Any]) -> StaticRateFeed:
        return cls(
            ExchangeRateSample(date=day, rate=to_decimal(rate, field="rate"))
            for day, rate in rates.items()
        )

    def fetch_all(self) -> tuple[ExchangeRateSample, ...]:
        self.fetch_count += 1
        return self._samples

    def __repr__(self) -> str:
        return f"StaticRateFeed({len(self._samples)} samples)"
