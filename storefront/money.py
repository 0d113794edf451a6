"""
Money Utilities - minor-unit amounts and display formatting.

The commerce backend reports every amount as an integer in minor currency
units (cents). Conversion to major units happens only for display and
uses Decimal throughout.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

MONEY_PRECISION = Decimal("0.01")

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "CA$",
    "AUD": "A$",
}

# Symbol placed before the amount; other currencies get a code suffix
PREFIX_CURRENCIES = {"USD", "EUR", "GBP", "CAD", "AUD"}

MISSING_AMOUNT = "-"


def to_decimal(value: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Returns Decimal("0") for None or unparseable input.
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def to_minor_units(value: Union[str, int, float, Decimal]) -> int:
    """
    Convert a major-unit amount to minor units.

    Example:
        to_minor_units("10.50") -> 1050
    """
    return int((to_decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    """Convert minor units (e.g. 1050) to a major-unit Decimal (10.50)."""
    return (Decimal(amount) / Decimal(100)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def format_price(amount: Union[int, Decimal, None], currency_code: str = "USD") -> str:
    """
    Format a minor-unit amount for display.

    Args:
        amount: Amount in minor units
        currency_code: ISO currency code (any case)

    Returns:
        "$10.50" for prefix currencies, "10.50 SEK" otherwise
    """
    currency = (currency_code or "USD").upper()
    major = from_minor_units(int(to_decimal(amount)))
    formatted = f"{major:,.2f}"

    if currency in PREFIX_CURRENCIES:
        symbol = CURRENCY_SYMBOLS[currency]
        if major < 0:
            return f"-{symbol}{formatted[1:]}"
        return f"{symbol}{formatted}"
    return f"{formatted} {currency}"


def format_optional_price(amount: Optional[int], currency_code: str = "USD") -> str:
    """Format an amount that may not be known yet; None renders as '-'."""
    if amount is None:
        return MISSING_AMOUNT
    return format_price(amount, currency_code)
