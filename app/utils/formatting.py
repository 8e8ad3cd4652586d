"""Display helpers shared by email templates and API payloads."""

import datetime
from decimal import Decimal, ROUND_HALF_UP


def format_currency(amount) -> str:
    """Format an amount as US dollars, e.g. 1234.5 -> '$1,234.50'."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(value) -> str:
    """Long US date, e.g. '2025-05-15' -> 'May 15, 2025'."""
    if isinstance(value, str):
        value = datetime.date.fromisoformat(value[:10])
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_time(value) -> str:
    """12-hour clock, e.g. '14:05:00' -> '2:05 PM'."""
    if isinstance(value, datetime.time):
        hours, minutes = value.hour, value.minute
    else:
        parts = str(value).split(":")
        hours, minutes = int(parts[0]), int(parts[1])
    suffix = "PM" if hours >= 12 else "AM"
    hour = hours % 12 or 12
    return f"{hour}:{minutes:02d} {suffix}"


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def get_initials(name: str) -> str:
    if not name:
        return ""

    parts = name.split()
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0][0].upper()

    return (parts[0][0] + parts[-1][0]).upper()


def money(value):
    """Decimal money as a JSON-friendly float (None stays None)."""
    return float(value) if value is not None else None
