from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")

# Matches Numeric(10, 2): 99,999,999.99
MAX_AMOUNT = Decimal("99999999.99")


def to_money(value: Any) -> Decimal:
    """
    Coerce an int, numeric string or Decimal to a 2-place Decimal.

    Floats are accepted (JSON has no decimal type) but go through str() first
    so 19.99 stays 19.99. Raises ValueError on anything else.
    """
    if isinstance(value, bool):
        raise ValueError("not a number")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError("not a number")
    if not amount.is_finite():
        raise ValueError("not a finite number")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Optional[Decimal]) -> Optional[str]:
    """Serialize as a fixed 2-place string ("12.50"), None stays None."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
