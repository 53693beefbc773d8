"""
Amount conversion between UI units and native (base) units.

Native amounts are plain ints. UI amounts are Decimals so that a native
amount converted to UI and back comes out unchanged. Anything submitted to a
swap must be derived from the native integer; UI math is for display.
"""
from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, Overflow
from typing import Union

from ..exceptions import InvalidAmount

Number = Union[Decimal, int, float, str]


def _as_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps 0.1 as 0.1 instead of its binary expansion
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmount(f"Invalid amount: {value!r}") from exc


def _check_decimals(decimals: int) -> None:
    if decimals < 0:
        raise InvalidAmount(f"Invalid token decimals: {decimals}")


def to_native(amount_ui: Number, decimals: int) -> int:
    """Scale a UI amount to native units, truncating toward zero."""
    _check_decimals(decimals)
    amount = _as_decimal(amount_ui)
    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {amount_ui!r}")
    try:
        return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))
    except (Overflow, InvalidOperation) as exc:
        raise InvalidAmount(f"Amount out of range: {amount_ui}") from exc


def to_ui(amount_native: int, decimals: int) -> Decimal:
    """Exact inverse of to_native for whole native amounts."""
    _check_decimals(decimals)
    return Decimal(int(amount_native)).scaleb(-decimals)


def percentage_of_native(total_native: int, percent: int) -> int:
    """
    floor(total_native * percent / 100).

    100% returns the total itself so a full sell never leaves dust or asks
    for more than the wallet holds.
    """
    if total_native < 0:
        raise InvalidAmount(f"Invalid balance: {total_native}")
    if not 0 < percent <= 100:
        raise InvalidAmount(f"Invalid percentage: {percent}%")
    if percent == 100:
        return total_native
    return total_native * percent // 100


def parse_ui_amount(text: str) -> Decimal:
    """Parse user text into a positive, finite amount."""
    cleaned = (text or "").strip()
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise InvalidAmount("Invalid amount. Please enter a positive number.") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount("Invalid amount. Please enter a positive number.")
    return amount


def format_ui_amount(amount: Number, places: int = 4) -> str:
    """Display helper; truncates so a shown balance is never more than the real one."""
    quantum = Decimal(1).scaleb(-places)
    return f"{_as_decimal(amount).quantize(quantum, rounding=ROUND_DOWN):f}"
