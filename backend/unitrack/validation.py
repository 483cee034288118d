from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from unitrack.errors import ValidationError
from unitrack.time_utils import parse_iso_datetime


# Maximum unit price / order total: 9,999,999,999.99 fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


def require_fields(data: dict | None, fields: set[str]) -> dict:
    """Ensure a JSON body is an object carrying every field in `fields` (non-empty)."""
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    missing = sorted(f for f in fields if data.get(f) in (None, ""))
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")
    return data


def parse_positive_int(value: Any, field: str) -> int:
    """
    Strict positive integer.

    Accepts ints and plain digit strings; rejects bools, floats, decimals
    and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be a plain integer")
        parsed = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if parsed <= 0:
        raise ValidationError(f"{field} must be positive")
    return parsed


def parse_amount(value: Any, field: str) -> Decimal:
    """Non-negative money amount with at most two decimal places."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        # floats come from JSON; go through str to avoid binary artefacts
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationError(f"{field} cannot have more than two decimal places")
    return amount.quantize(Decimal("0.01"))


def require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("expected a string")
    return value.strip() or None


def parse_optional_datetime(value: Any, field: str):
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
