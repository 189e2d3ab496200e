"""Currency -- local/foreign pair and rate-source bookkeeping for conversions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from construction_kernel.domain.money import ZERO, multiply


class RateSource(str, Enum):
    """Where the rate used for a conversion came from."""

    NONE = "none"  # Local-currency amount, no conversion
    WEEK = "week"  # PayrollWeek.exchange_rate
    RECORD = "record"  # The record's own exchange_rate
    FEED = "feed"  # RateResolver at the record date
    DEFAULT = "default"  # Global default exchange rate
    UNIT = "unit"  # Literal 1 (payroll fallback)


@dataclass(frozen=True)
class CurrencyPair:
    """
    The two currencies the company books in.

    ``local`` is the reporting currency of every summary; ``foreign``
    amounts are multiplied by a foreign-to-local rate.  Codes are compared
    case-insensitively.
    """

    local: str = "ARS"
    foreign: str = "USD"

    def __post_init__(self):
        if self.local.upper() == self.foreign.upper():
            raise ValueError(
                f"local and foreign currency must differ, got {self.local!r}"
            )

    def is_foreign(self, code: str | None) -> bool:
        return code is not None and code.upper() == self.foreign.upper()

    def is_local(self, code: str | None) -> bool:
        return code is not None and code.upper() == self.local.upper()


@dataclass(frozen=True)
class Conversion:
    """A converted amount and the rate that produced it."""

    amount: Decimal
    rate: Decimal | None
    source: RateSource


def usable_rate(rate: Decimal | None) -> bool:
    """A stored rate counts as present only when it is strictly positive."""
    return rate is not None and rate > ZERO


def convert(amount: Decimal, rate: Decimal, source: RateSource) -> Conversion:
    return Conversion(amount=multiply(amount, rate), rate=rate, source=source)


def passthrough(amount: Decimal) -> Conversion:
    return Conversion(amount=amount, rate=None, source=RateSource.NONE)
