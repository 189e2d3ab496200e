"""CLI utilities: argument parsing helpers, JSON output."""

import argparse
import json
import sys
from datetime import date
from typing import Any, TextIO

from construction_kernel.utils import plain_value


def iso_date(value: str) -> date:
    """argparse type for YYYY-MM-DD."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def emit_json(data: Any, stream: TextIO | None = None) -> None:
    """Write ``data`` as indented JSON with sorted keys."""
    out = stream or sys.stdout
    out.write(json.dumps(plain_value(data), indent=2, sort_keys=True))
    out.write("\n")

