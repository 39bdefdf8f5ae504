"""Minor-unit money amounts and their explicit display conversion.

Billing providers report every amount as an integer number of minor units
(cents for USD). Amounts stay integers everywhere in the tool contract;
``format_minor_units`` is the only place they become major units.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from iridium.errors import UpstreamProviderError

# Currencies without a minor unit. Everything else uses two decimal places.
_ZERO_DECIMAL = {"jpy", "krw", "vnd", "clp", "isk", "ugx", "xaf", "xof"}

_SYMBOLS: dict[str, str] = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
    "jpy": "¥",
}


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places between minor and major units."""
    return 0 if currency.lower() in _ZERO_DECIMAL else 2


def to_minor_units(value: Any, *, field: str = "amount") -> int:
    """Coerce a provider amount to an integer number of minor units.

    Integral floats (``1234.0``) are accepted because JSON decoders may
    produce them; anything fractional means the provider sent major units
    and is rejected.
    """
    if isinstance(value, bool):
        raise UpstreamProviderError("billing", f"{field} is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if value is None:
        return 0
    raise UpstreamProviderError(
        "billing", f"{field} must be an integer minor-unit amount, got {value!r}"
    )


def to_major_units(cents: int, currency: str = "usd") -> Decimal:
    """Convert minor units to an exact major-unit ``Decimal``."""
    return Decimal(cents).scaleb(-minor_unit_exponent(currency))


def format_minor_units(cents: int, currency: str = "usd") -> str:
    """Render a minor-unit amount for display, e.g. ``123456`` → ``$1,234.56``."""
    exponent = minor_unit_exponent(currency)
    major = to_major_units(cents, currency)
    sign = "-" if major < 0 else ""
    number = f"{abs(major):,.{exponent}f}"
    symbol = _SYMBOLS.get(currency.lower())
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{number} {currency.upper()}"
