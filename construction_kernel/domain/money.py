"""
Money -- fixed-precision Decimal accumulation.

Responsibility:
    Every monetary sum in the aggregators flows through ``MoneyAccumulator``
    so that totals are computed with an explicit Decimal context instead of
    binary floating point.  Re-running an aggregation over unchanged records
    therefore yields identical digits.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Arithmetic runs under ``MONEY_CONTEXT`` (34 significant digits,
      ROUND_HALF_UP), independent of the thread-local decimal context.
    - Quantization happens once, on the way out (``quantize``), never
      while accumulating.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Iterable

MONEY_CONTEXT = Context(prec=34, rounding=ROUND_HALF_UP)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

DEFAULT_MONEY_QUANTUM = Decimal("0.01")
DEFAULT_PERCENT_QUANTUM = Decimal("0.01")


def to_decimal(value: object, *, field: str = "value") -> Decimal:
    """
    Coerce a primitive into a Decimal.

    Floats go through ``str()`` so that ``0.1`` becomes ``Decimal("0.1")``
    and not its binary expansion.

    Raises:
        ValueError: if the value is None, a bool, or not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"{field} must be numeric, got {value!r}") from exc


def quantize(value: Decimal, quantum: Decimal = DEFAULT_MONEY_QUANTUM) -> Decimal:
    """Round ``value`` to ``quantum`` with ROUND_HALF_UP."""
    return value.quantize(quantum, rounding=ROUND_HALF_UP, context=MONEY_CONTEXT)


def multiply(left: Decimal, right: Decimal) -> Decimal:
    return MONEY_CONTEXT.multiply(left, right)


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide under the money context.  Callers guard against zero."""
    return MONEY_CONTEXT.divide(numerator, denominator)


def percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    """
    ``numerator / denominator x 100``, or zero when ``denominator`` is zero.

    Used for margin percentage and ROI, where an empty base is a legitimate
    state and not an error.
    """
    if denominator == ZERO:
        return ZERO
    return MONEY_CONTEXT.multiply(divide(numerator, denominator), HUNDRED)


class MoneyAccumulator:
    """
    Running Decimal total.

    Usage::

        gross = MoneyAccumulator()
        for wage in wages:
            gross.add(wage)
        gross.total  # Decimal, unrounded
    """

    __slots__ = ("_total", "_count")

    def __init__(self, start: Decimal = ZERO) -> None:
        self._total = start
        self._count = 0

    def add(self, amount: Decimal) -> None:
        self._total = MONEY_CONTEXT.add(self._total, amount)
        self._count += 1

    def extend(self, amounts: Iterable[Decimal]) -> None:
        for amount in amounts:
            self.add(amount)

    @property
    def total(self) -> Decimal:
        return self._total

    @property
    def count(self) -> int:
        return self._count

    def quantized(self, quantum: Decimal = DEFAULT_MONEY_QUANTUM) -> Decimal:
        return quantize(self._total, quantum)

    def __repr__(self) -> str:
        return f"<MoneyAccumulator total={self._total} count={self._count}>"


def subtract(left: Decimal, right: Decimal) -> Decimal:
    return MONEY_CONTEXT.subtract(left, right)


def add(*amounts: Decimal) -> Decimal:
    total = ZERO
    for amount in amounts:
        total = MONEY_CONTEXT.add(total, amount)
    return total
