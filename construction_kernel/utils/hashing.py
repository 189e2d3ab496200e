"""
Deterministic serialization and hashing utilities.

Summaries returned by the aggregators must serialize to identical bytes
across runs over unchanged data.  This module provides the canonical
conversion used by every ``to_dict()`` / ``canonical_json()`` pair.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def plain_value(obj: Any) -> Any:
    """
    Recursively convert ``obj`` into JSON-native values.

    Decimals keep their exponent (``Decimal("12.50")`` -> ``"12.50"``) so
    quantized amounts render with their full scale.
    """
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): plain_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [plain_value(v) for v in obj]
    return obj


def canonicalize_json(data: Any) -> str:
    """
    Convert data to canonical JSON string.

    - Keys are sorted alphabetically
    - No whitespace
    - Decimal, date and Enum rendered through ``plain_value``
    """
    return json.dumps(plain_value(data), sort_keys=True, separators=(",", ":"))


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
