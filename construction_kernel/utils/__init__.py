"""Utility modules for the construction kernel."""

from construction_kernel.utils.hashing import (
    canonicalize_json,
    hash_bytes,
    plain_value,
)

__all__ = [
    "canonicalize_json",
    "hash_bytes",
    "plain_value",
]
