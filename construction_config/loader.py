"""
Configuration Loader (``construction_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``construction_config.schema`` dataclasses.  The single public entry point
for runtime config is ``construction_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown sections or keys are rejected rather than ignored.
* ``compute_checksum`` produces a deterministic SHA-256 of the file bytes.

Failure modes
-------------
* Missing file -> ``FileNotFoundError`` propagates.
* Malformed YAML, unknown key, or out-of-range value ->
  ``InvalidConfigurationError`` naming the offending dotted key.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from construction_config.schema import (
    BackfillConfig,
    CoreConfiguration,
    PayrollConfig,
    PrecisionConfig,
    RatesConfig,
)
from construction_kernel.domain.currency import CurrencyPair
from construction_kernel.domain.money import ZERO, to_decimal
from construction_kernel.exceptions import InvalidConfigurationError
from construction_kernel.utils import hash_bytes

_SECTIONS = ("currency", "rates", "payroll", "backfill", "precision")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        InvalidConfigurationError: if the file is not a YAML mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise InvalidConfigurationError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidConfigurationError(str(path), "top level must be a mapping")
    return data


def compute_checksum(path: Path) -> str:
    return hash_bytes(Path(path).read_bytes())


def _section(data: dict[str, Any], name: str, allowed: tuple[str, ...]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigurationError(name, "must be a mapping")
    unknown = sorted(set(section) - set(allowed))
    if unknown:
        raise InvalidConfigurationError(f"{name}.{unknown[0]}", "unknown key")
    return section


def _decimal(section: dict[str, Any], key: str, default: Decimal, *, path: str) -> Decimal:
    if key not in section:
        return default
    try:
        value = to_decimal(section[key], field=path)
    except ValueError as exc:
        raise InvalidConfigurationError(path, str(exc)) from None
    if value <= ZERO:
        raise InvalidConfigurationError(path, f"must be positive, got {value}")
    return value


def _int(
    section: dict[str, Any], key: str, default: int, *, path: str, minimum: int,
) -> int:
    if key not in section:
        return default
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigurationError(path, f"must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidConfigurationError(path, f"must be >= {minimum}, got {value}")
    return value


def _str(section: dict[str, Any], key: str, default: str, *, path: str) -> str:
    if key not in section:
        return default
    value = section[key]
    if not isinstance(value, str) or not value.strip():
        raise InvalidConfigurationError(path, "must be a non-empty string")
    return value.strip()


def parse_configuration(
    data: dict[str, Any], *, source: str = "<memory>", checksum: str = "",
) -> CoreConfiguration:
    """
    Parse a configuration mapping.  Missing keys take the schema defaults.

    Raises:
        InvalidConfigurationError: on unknown keys or invalid values.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise InvalidConfigurationError(unknown[0], "unknown section")

    defaults = CoreConfiguration()

    cur = _section(data, "currency", ("local", "foreign"))
    local = _str(cur, "local", defaults.currency.local, path="currency.local")
    foreign = _str(cur, "foreign", defaults.currency.foreign, path="currency.foreign")
    try:
        currency = CurrencyPair(local=local, foreign=foreign)
    except ValueError as exc:
        raise InvalidConfigurationError("currency", str(exc)) from None

    r = _section(
        data, "rates",
        ("feed_url", "timeout_seconds", "lookback_days", "default_exchange_rate"),
    )
    rates = RatesConfig(
        feed_url=_str(r, "feed_url", defaults.rates.feed_url, path="rates.feed_url"),
        timeout_seconds=_decimal(
            r, "timeout_seconds", defaults.rates.timeout_seconds,
            path="rates.timeout_seconds",
        ),
        lookback_days=_int(
            r, "lookback_days", defaults.rates.lookback_days,
            path="rates.lookback_days", minimum=0,
        ),
        default_exchange_rate=_decimal(
            r, "default_exchange_rate", defaults.rates.default_exchange_rate,
            path="rates.default_exchange_rate",
        ),
    )

    p = _section(data, "payroll", ("hours_per_day",))
    payroll = PayrollConfig(
        hours_per_day=_decimal(
            p, "hours_per_day", defaults.payroll.hours_per_day,
            path="payroll.hours_per_day",
        ),
    )

    b = _section(data, "backfill", ("plausibility_threshold", "batch_size"))
    backfill = BackfillConfig(
        plausibility_threshold=_decimal(
            b, "plausibility_threshold", defaults.backfill.plausibility_threshold,
            path="backfill.plausibility_threshold",
        ),
        batch_size=_int(
            b, "batch_size", defaults.backfill.batch_size,
            path="backfill.batch_size", minimum=1,
        ),
    )

    q = _section(data, "precision", ("money_quantum", "percent_quantum"))
    precision = PrecisionConfig(
        money_quantum=_decimal(
            q, "money_quantum", defaults.precision.money_quantum,
            path="precision.money_quantum",
        ),
        percent_quantum=_decimal(
            q, "percent_quantum", defaults.precision.percent_quantum,
            path="precision.percent_quantum",
        ),
    )

    return CoreConfiguration(
        currency=currency,
        rates=rates,
        payroll=payroll,
        backfill=backfill,
        precision=precision,
        source=source,
        checksum=checksum,
    )


def load_configuration(path: Path) -> CoreConfiguration:
    path = Path(path)
    data = load_yaml_file(path)
    return parse_configuration(data, source=str(path), checksum=compute_checksum(path))
