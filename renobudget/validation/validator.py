"""
Input Sanitisation

Every write goes through these functions before it reaches storage.

DESIGN DECISION: Two kinds of bad input are treated differently:
- Missing required values (names, payments) are REJECTED loudly with
  InputValidationError so the form can show the message.
- Incomplete optional rows (a milestone with neither percentage nor
  amount, a payment without a date) are DROPPED, because an empty
  trailing form row should not block a save.
"""

import math
from typing import Iterable, Optional

from renobudget.models.inputs import ContractMilestoneInput, ContractPaymentInput


class InputValidationError(ValueError):
    """A user-supplied value cannot be saved."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def sanitize_required_text(value: Optional[str], field_label: str) -> str:
    """Trim a required text value; blank raises InputValidationError."""
    trimmed = (value or "").strip()
    if not trimmed:
        raise InputValidationError(f"{field_label} is required.", field=field_label)
    return trimmed


def sanitize_optional_text(value: Optional[str]) -> Optional[str]:
    trimmed = (value or "").strip()
    return trimmed or None


def sanitize_optional_date(value: Optional[str]) -> Optional[str]:
    """Dates are kept as the ISO strings the form produced."""
    return sanitize_optional_text(value)


def _is_finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_non_negative_amount(value: float, field_label: str) -> float:
    """Amounts must be finite and at least 0."""
    if not _is_finite(value) or value < 0:
        raise InputValidationError(f"{field_label} must be at least 0.", field=field_label)
    return value


def sanitize_optional_amount(value: Optional[float]) -> Optional[float]:
    return value if _is_finite(value) else None


def sanitize_email(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    if not normalized:
        raise InputValidationError("Email is required.", field="email")
    return normalized


def sanitize_milestones(milestones: Iterable[ContractMilestoneInput]) -> list[dict]:
    """
    Keep milestones with a positive sequence number and at least one of
    percentage or amount. Returns storage rows without the parent id.
    """
    rows = []
    for milestone in milestones:
        if milestone.sequence_number <= 0:
            continue
        percentage = sanitize_optional_amount(milestone.percentage)
        amount = sanitize_optional_amount(milestone.amount)
        if percentage is None and amount is None:
            continue
        rows.append({
            "sequence_number": milestone.sequence_number,
            "percentage": percentage,
            "amount": amount,
            "due_date": sanitize_optional_date(milestone.due_date),
            "notes": sanitize_optional_text(milestone.notes),
        })
    return rows


def sanitize_payments(payments: Iterable[ContractPaymentInput]) -> list[dict]:
    """
    Keep payments with a finite, non-negative amount and a paid-at date.
    Returns storage rows without the parent id.
    """
    rows = []
    for payment in payments:
        if not _is_finite(payment.amount) or payment.amount < 0:
            continue
        paid_at = sanitize_optional_date(payment.paid_at)
        if paid_at is None:
            continue
        rows.append({
            "amount": payment.amount,
            "paid_at": paid_at,
            "notes": sanitize_optional_text(payment.notes),
        })
    return rows


def require_payments(payment_rows: list[dict]) -> list[dict]:
    """A contract expense is only valid with at least one actual payment."""
    if not payment_rows:
        raise InputValidationError(
            "At least one actual payment is required.", field="payments"
        )
    return payment_rows
