"""
Numeric and Date Coercion

The backend may hand monetary columns back as strings (to keep precision)
and Google Sheets hands back everything as strings. Every figure goes
through to_number before arithmetic.

DESIGN DECISION: Coercion never raises. A dashboard that undercounts a
malformed amount is better than a dashboard that cannot render.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


ZERO = Decimal("0")


def to_number(value: Any) -> Decimal:
    """
    Coerce a stored value to a finite Decimal, defaulting to 0.

    Accepts int, float, Decimal and numeric strings. None, booleans,
    unparseable strings and non-finite values all give 0.
    """
    if isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        # repr keeps 0.1 as 0.1 instead of its binary expansion
        number = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not number.is_finite():
        return ZERO
    return number


def to_optional_number(value: Any) -> Optional[Decimal]:
    """Like to_number, but keeps "no value" distinct from zero."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_number(value)


def parse_date(value: Any) -> Optional[date]:
    """
    Parse an ISO date or datetime into a date.

    Blank and unparseable values give None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return False
