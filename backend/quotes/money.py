from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")
# Quotation.estimated_cost holds 16 integer digits
MAX_AMOUNT = Decimal("1e16")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Lenient number parsing for loosely typed payloads.

    Accepts ints, floats, Decimals and numeric strings (surrounding whitespace
    ignored). Booleans, blanks, non-numeric text and NaN/Infinity give None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        candidate = value
    elif isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
    else:
        return None
    try:
        parsed = d(candidate)
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def to_amount(value: Any) -> Decimal:
    """Like parse_decimal, but anything unusable becomes zero."""
    parsed = parse_decimal(value)
    return ZERO if parsed is None else parsed


def format_amount(amount: Decimal) -> str:
    """Plain decimal string for JSON storage (no exponent notation)."""
    text = format(d(amount), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
