"""
Input Validation

DESIGN DECISION: Everything a caller hands to the engine is checked here
BEFORE a connection is taken from the pool:
- Identifiers must be canonical UUIDs
- Amounts and limits must be positive, 2-place decimals
- Required text must be non-blank

A ValidationError is never retried; the caller has to change its input.
Validation NEVER silently fixes values other than normalizing them
(stripping whitespace, quantizing to paise, converting to UTC).
"""

import re
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID


MONEY_QUANTUM = Decimal("0.01")

# NUMERIC(10, 2) holds at most 99,999,999.99
MONEY_CEILING = Decimal("100000000")

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class ValidationError(ValueError):
    """Caller input was rejected before any storage access."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


def validate_uuid(value: Any, label: str = "ID") -> UUID:
    """
    Accept a UUID instance or its canonical 36-character string form.

    Braced, URN and hyphen-less spellings are rejected even though
    uuid.UUID() would parse them.
    """
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str) or not _UUID_PATTERN.match(value.strip()):
        raise ValidationError(f"Invalid {label}", field=label)
    return UUID(value.strip())


def validate_money(value: Any, label: str = "Amount") -> Decimal:
    """
    Coerce to a 2-place Decimal that is strictly positive.

    Floats go through str() so 0.1 becomes Decimal("0.10"), not the
    binary expansion. Values that round to 0.00 are rejected.
    """
    field = label.lower()
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{label} is required", field=field)

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a number", field=field)

    if not amount.is_finite():
        raise ValidationError(f"{label} must be a number", field=field)

    amount = amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise ValidationError(f"{label} must be greater than 0", field=field)
    if amount >= MONEY_CEILING:
        raise ValidationError(f"{label} is too large", field=field)
    return amount


def validate_required_text(value: Any, label: str) -> str:
    """Strip whitespace and reject empty values."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required", field=label.lower())
    return value.strip()


def validate_optional_text(value: Any, label: str) -> Optional[str]:
    """None stays None; anything else must be a string."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text", field=label.lower())
    return value


def validate_occurred_at(value: Any = None) -> datetime:
    """
    Normalize the moment a spend happened to an aware UTC datetime.

    None means now. Naive datetimes are taken as UTC, plain dates as
    midnight UTC on that day.
    """
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return validate_occurred_at(datetime.fromisoformat(value.strip()))
        except ValueError:
            pass
    raise ValidationError("Date must be an ISO-8601 date or datetime", field="date")


def validate_year_month(year: Any, month: Any) -> tuple[int, int]:
    """Calendar month addressed by (year, month)."""
    if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
        raise ValidationError(f"Invalid year: {year}", field="year")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}", field="month")
    return year, month
