"""
Configuration Schema (``construction_config.schema``).

Responsibility
--------------
Frozen dataclasses describing the runtime configuration of the financial
core: currency codes, rate feed and fallback, payroll hours, backfill
tuning, and output precision.

Architecture position
---------------------
**Config layer** -- pure data definitions.  Produced by
``construction_config.loader``; consumed by the command line, which wires
the values into the resolvers, aggregators and the backfill job.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* Monetary and rate values are ``Decimal``.
* Defaults match ``sets/default.yaml``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from construction_kernel.domain.currency import CurrencyPair


@dataclass(frozen=True)
class RatesConfig:
    feed_url: str = "https://api.argentinadatos.com/v1/cotizaciones/dolares/blue"
    timeout_seconds: Decimal = Decimal("10")
    lookback_days: int = 7
    default_exchange_rate: Decimal = Decimal("1")


@dataclass(frozen=True)
class PayrollConfig:
    hours_per_day: Decimal = Decimal("8")


@dataclass(frozen=True)
class BackfillConfig:
    plausibility_threshold: Decimal = Decimal("5")
    batch_size: int = 400


@dataclass(frozen=True)
class PrecisionConfig:
    money_quantum: Decimal = Decimal("0.01")
    percent_quantum: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class CoreConfiguration:
    """The complete, validated configuration.  ``checksum`` identifies the source."""

    currency: CurrencyPair = field(default_factory=CurrencyPair)
    rates: RatesConfig = field(default_factory=RatesConfig)
    payroll: PayrollConfig = field(default_factory=PayrollConfig)
    backfill: BackfillConfig = field(default_factory=BackfillConfig)
    precision: PrecisionConfig = field(default_factory=PrecisionConfig)
    source: str = "<defaults>"
    checksum: str = ""
