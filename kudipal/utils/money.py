"""
Money and percentage formatting for user-facing strings.

Usage:
    from kudipal.utils.money import format_money, round_pct

    format_money(209.5)          -> "₵210"
    format_money(Decimal("1250")) -> "₵1,250"
    round_pct(-33.333)           -> -33.3
"""
from decimal import Decimal, ROUND_HALF_UP

from kudipal.config import get_settings


def to_decimal(amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def round_money(amount) -> int:
    """Round to the nearest whole unit, halves away from zero."""
    return int(to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount, symbol: str | None = None) -> str:
    """Whole-unit amount with thousands separators and the currency symbol."""
    if symbol is None:
        symbol = get_settings().CURRENCY_SYMBOL
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,}"


def round_pct(value) -> float:
    """Percentage rounded to one decimal place, halves away from zero."""
    return float(to_decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def pct_change(current, previous) -> float:
    """Percent change from previous to current; raises ZeroDivisionError if previous is 0."""
    current, previous = to_decimal(current), to_decimal(previous)
    if previous == 0:
        raise ZeroDivisionError("previous period total is zero")
    return round_pct((current - previous) / previous * 100)


def share_pct(part, whole) -> float:
    """part/whole as a percentage; raises ZeroDivisionError if whole is 0."""
    part, whole = to_decimal(part), to_decimal(whole)
    if whole == 0:
        raise ZeroDivisionError("total is zero")
    return round_pct(part / whole * 100)
