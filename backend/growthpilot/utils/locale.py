"""
Locale Formatters
=================

Display formatting for report text (currency, numbers, percentages, dates).

Turkish ("tr", default):
    ₺1.234,56   1.234,56   %12,5   20.02.2024
English ("en"):
    ₺1,234.56   1,234.56   12.5%   2024-02-20

Design principles:
- Pure functions, no side effects
- Half-up rounding on the decimal value (1.005 -> "1,01", not "1,00")
- Unknown locales fall back to Turkish

Related:
- growthpilot/services/report_formatter.py: Main consumer
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]
DateLike = Union[date, datetime, str]

DEFAULT_LOCALE = "tr"
CURRENCY_SYMBOL = "₺"


def _quantize(value: Number, decimals: int) -> Decimal:
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return amount.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def format_number(value: Number, decimals: int = 2, locale: str = DEFAULT_LOCALE) -> str:
    """
    Format a number with thousands separators.

    Examples:
        >>> format_number(1234.56)
        "1.234,56"
        >>> format_number(1234.56, locale="en")
        "1,234.56"
        >>> format_number(1234567, 0)
        "1.234.567"
    """
    formatted = f"{_quantize(value, decimals):,.{decimals}f}"
    if locale == "en":
        return formatted
    # Swap separators for tr: 1,234.56 -> 1.234,56
    return formatted.replace(",", "\x00").replace(".", ",").replace("\x00", ".")


def format_currency(amount: Number, show_symbol: bool = True, locale: str = DEFAULT_LOCALE) -> str:
    """Format an amount in Turkish Lira, always with 2 decimals."""
    formatted = format_number(amount, 2, locale)
    return f"{CURRENCY_SYMBOL}{formatted}" if show_symbol else formatted


def format_percentage(value: Number, decimals: int = 1, locale: str = DEFAULT_LOCALE) -> str:
    """Format a 0-100 percentage value ("%12,5" in tr, "12.5%" in en)."""
    formatted = format_number(value, decimals, locale)
    if locale == "en":
        return f"{formatted}%"
    return f"%{formatted}"


def _to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def format_date(value: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    day = _to_date(value)
    if locale == "en":
        return day.isoformat()
    return day.strftime("%d.%m.%Y")


def format_date_range(start: DateLike, end: DateLike, locale: str = DEFAULT_LOCALE) -> str:
    """
    Examples:
        >>> format_date_range("2024-02-01", "2024-02-29")
        "01.02.2024 - 29.02.2024"
    """
    return f"{format_date(start, locale)} - {format_date(end, locale)}"
