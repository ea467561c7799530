"""Display formatting for money and dates."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

CURRENCY = "ETB"


def format_currency(amount: float | Decimal | None) -> str:
    """Format an amount as ``ETB 1,234.50``."""

    if amount is None:
        return f"{CURRENCY} 0.00"
    return f"{CURRENCY} {amount:,.2f}"


def _coerce(value: str | date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_date(value: str | date | datetime | None) -> str:
    if not value:
        return "N/A"
    return _coerce(value).strftime("%b %d, %Y")


def format_datetime(value: str | date | datetime | None) -> str:
    if not value:
        return "N/A"
    return _coerce(value).strftime("%b %d, %Y %I:%M %p")
