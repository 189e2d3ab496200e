"""
construction_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly; services receive plain values through their constructors.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation before use: an invalid file never yields a configuration.
    - Deterministic identity: the same file always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``InvalidConfigurationError`` -- schema or value validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CONSTRUCTION_CONFIG_TRACE`` log entry with the source path and
    checksum, tying every computed summary to the configuration in force.
"""

from __future__ import annotations

from pathlib import Path

from construction_config.loader import load_configuration, parse_configuration
from construction_config.schema import (
    BackfillConfig,
    CoreConfiguration,
    PayrollConfig,
    PrecisionConfig,
    RatesConfig,
)
from construction_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "default.yaml"

__all__ = [
    "BackfillConfig",
    "CoreConfiguration",
    "DEFAULT_CONFIG_PATH",
    "PayrollConfig",
    "PrecisionConfig",
    "RatesConfig",
    "get_active_config",
    "parse_configuration",
]


def get_active_config(path: Path | str | None = None) -> CoreConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigurationError: If validation fails.
    """
    config = load_configuration(Path(path) if path is not None else DEFAULT_CONFIG_PATH)
    _logger.info(
        "CONSTRUCTION_CONFIG_TRACE",
        extra={
            "trace_type": "CONSTRUCTION_CONFIG_TRACE",
            "config_source": config.source,
            "checksum": config.checksum,
            "local_currency": config.currency.local,
            "foreign_currency": config.currency.foreign,
        },
    )
    return config
