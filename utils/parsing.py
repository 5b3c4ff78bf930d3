# utils/parsing.py
from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation

from dateutil import parser as dtparse

from errors import ValidationError


def parse_date(value, field: str = "date") -> date:
    """Accepts YYYY-MM-DD and anything dateutil understands (e.g. 2025-03-01T08:00)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    if not raw:
        raise ValidationError(f"{field} is required")
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        pass
    try:
        return dtparse.parse(raw).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"invalid {field}: {raw!r}") from None


def parse_time(value, field: str = "time") -> time | None:
    if value in (None, ""):
        return None
    if isinstance(value, time):
        return value
    raw = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"invalid {field}: {raw!r} (expected HH:MM)")


def parse_int(value, field: str, *, minimum: int | None = None) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None
    if minimum is not None and n < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return n


def parse_amount(value, field: str = "amount") -> Decimal:
    """Finite, non-negative money value; empty means 0."""
    if value in (None, ""):
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return amount
