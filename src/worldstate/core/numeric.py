"""
Numeric helpers that reproduce JavaScript number semantics.

Hashes and prompt text must be byte-identical with artifacts produced by
the JavaScript implementation of the pipeline, so rounding and number
formatting follow ECMAScript rules rather than Python's defaults
(``round`` is half-even, ``repr`` switches to exponent form at 1e16).
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal


def clamp01(value: float) -> float:
    """Clamp to [0, 1]; non-finite input maps to 0."""
    if not math.isfinite(value):
        return 0.0
    if value <= 0:
        return 0.0
    if value >= 1:
        return 1.0
    return value


def js_round(value: float) -> float:
    """``Math.round``: nearest integer, ties toward +infinity."""
    floor = math.floor(value)
    return float(floor + 1 if value - floor >= 0.5 else floor)


def round_half_up(value: float, decimals: int) -> float:
    """``Math.round(value * 10**d) / 10**d``."""
    if not math.isfinite(value):
        return 0.0
    factor = 10**decimals
    return js_round(value * factor) / factor


def to_fixed(value: float, digits: int) -> str:
    """``Number.prototype.toFixed``: exact binary value, ties away from zero."""
    if not math.isfinite(value):
        return "NaN" if math.isnan(value) else ("Infinity" if value > 0 else "-Infinity")
    quantum = Decimal(1).scaleb(-digits)
    text = str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))
    if text.startswith("-") and Decimal(text) == 0:
        return text[1:]
    return text


def js_number(value: float | int) -> str:
    """Format a number the way ``JSON.stringify`` does.

    >>> js_number(1300000.0)
    '1300000'
    >>> js_number(1e-7)
    '1e-7'
    >>> js_number(0.0001)
    '0.0001'
    """
    if isinstance(value, int) and abs(value) < 10**21:
        return str(value)
    value = float(value)
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    mantissa, _, exp = repr(abs(value)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    digits = int_part + frac_part
    n = len(int_part) + (int(exp) if exp else 0)

    while len(digits) > 1 and digits[0] == "0":
        digits = digits[1:]
        n -= 1
    digits = digits.rstrip("0") or "0"
    k = len(digits)

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits

    e = n - 1
    exponent = f"e{'+' if e >= 0 else '-'}{abs(e)}"
    if k == 1:
        return sign + digits + exponent
    return sign + digits[0] + "." + digits[1:] + exponent


__all__ = ["clamp01", "js_round", "round_half_up", "to_fixed", "js_number"]
