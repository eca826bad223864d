"""Input validation package."""

from spend_ledger.validation.validator import (
    MONEY_QUANTUM,
    ValidationError,
    validate_money,
    validate_occurred_at,
    validate_optional_text,
    validate_required_text,
    validate_uuid,
    validate_year_month,
)

__all__ = [
    "MONEY_QUANTUM",
    "ValidationError",
    "validate_money",
    "validate_occurred_at",
    "validate_optional_text",
    "validate_required_text",
    "validate_uuid",
    "validate_year_month",
]
