"""Parse, validate and format fixed-point token amounts."""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from .constants import TOKEN_DECIMALS
from .errors import InvalidAmount
from .models import HealthFactor

_AMOUNT_RE = re.compile(r"^\d*\.?\d*$")


def validate_amount(amount: object) -> int:
    """Return ``amount`` if it is a positive integer, else raise InvalidAmount.

    ``bool`` is rejected even though it subclasses ``int``.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(
            f"Amount must be an integer number of base units, got {type(amount).__name__}"
        )
    if amount <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    return amount


def parse_units(text: str, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human decimal string (``"12.5"``) into base units.

    Raises InvalidAmount for empty, negative, malformed or over-precise input.
    """
    value = (text or "").strip()
    if not value or value == "." or not _AMOUNT_RE.match(value):
        raise InvalidAmount(f"Not a valid amount: '{text}'")

    try:
        parsed = Decimal(value)
    except InvalidOperation:
        raise InvalidAmount(f"Not a valid amount: '{text}'") from None

    scaled = parsed.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"'{text}' has more than {decimals} decimal places")

    units = int(scaled)
    if units <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    return units


def format_units(amount: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Exact decimal rendering of ``amount`` base units, trailing zeros trimmed."""
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}"


def format_token_amount(
    amount: int,
    decimals: int = TOKEN_DECIMALS,
    display_decimals: int = 4,
) -> str:
    """Display rendering: ``0``, ``< 0.0001`` or ``1,234.5678``."""
    if amount == 0:
        return "0"

    value = Decimal(amount).scaleb(-decimals)
    smallest = Decimal(1).scaleb(-display_decimals)
    if value < smallest:
        return f"< {smallest}"

    rounded = value.quantize(smallest)
    text = f"{rounded:,.{display_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percentage(rate: int) -> str:
    return f"{rate}%"


def format_health_factor(factor: HealthFactor) -> str:
    if factor.is_unbounded:
        return "∞"
    return f"{factor.value}%"


def format_address(address: str) -> str:
    if not address or len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"
