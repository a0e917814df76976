"""Input validation package."""

from renobudget.validation.validator import (
    InputValidationError,
    require_payments,
    sanitize_email,
    sanitize_milestones,
    sanitize_optional_amount,
    sanitize_optional_date,
    sanitize_optional_text,
    sanitize_payments,
    sanitize_required_text,
    validate_non_negative_amount,
)

__all__ = [
    "InputValidationError",
    "require_payments",
    "sanitize_email",
    "sanitize_milestones",
    "sanitize_optional_amount",
    "sanitize_optional_date",
    "sanitize_optional_text",
    "sanitize_payments",
    "sanitize_required_text",
    "validate_non_negative_amount",
]
