"""Request parsing and field validation helpers."""

import datetime
import re
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[0-9()\-\s]+$")
ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def is_valid_email(value) -> bool:
    return bool(value) and isinstance(value, str) and bool(EMAIL_RE.match(value))


def is_valid_phone(value) -> bool:
    return isinstance(value, str) and bool(PHONE_RE.match(value))


def is_valid_url(value) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_allowed_image(filename) -> bool:
    if not filename or "." not in filename:
        return False
    return filename.rsplit(".", 1)[1].lower() in ALLOWED_IMAGE_EXTENSIONS


def min_length(value, length) -> bool:
    return isinstance(value, str) and len(value.strip()) >= length


def parse_date(value):
    """YYYY-MM-DD -> date. Raises ValueError on bad input."""
    if isinstance(value, datetime.date):
        return value
    if not value:
        raise ValueError("date is required")
    return datetime.date.fromisoformat(str(value))


def parse_time(value):
    """HH:MM or HH:MM:SS -> time. Raises ValueError on bad input."""
    if isinstance(value, datetime.time):
        return value
    if not value:
        raise ValueError("time is required")
    return datetime.time.fromisoformat(str(value))


def parse_money(value):
    """Decimal rounded to cents, or None. Raises ValueError on bad input."""
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
        if amount.is_finite():
            return amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        pass
    raise ValueError(f"invalid amount: {value!r}")


def parse_bool(value):
    """'true'/'false'/'1'/'0' -> bool, anything else -> None."""
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    lowered = str(value).strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    return None


def parse_id_list(value):
    """'1,2,3' or ['1', '2'] -> [1, 2, 3]; invalid entries are dropped."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    ids = []
    for item in value:
        try:
            ids.append(int(str(item).strip()))
        except ValueError:
            continue
    return ids


def missing_fields(data, required):
    return [f for f in required if data.get(f) in (None, "")]
