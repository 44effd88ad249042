from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., store credit already used)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level missing entity."""


def require_fields(payload: dict | None, *fields: str) -> dict:
    """
    Ensure a JSON body is an object carrying every named key with a value.

    Returns the payload so callers can chain on it.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return payload


def parse_cents(value: Any, field: str, *, allow_negative: bool = False, allow_none: bool = False) -> int | None:
    """
    Coerce an incoming amount in cents to int.

    Strict: rejects floats, booleans, decimals and scientific notation the
    same way model integer columns do.
    """
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer number of cents")
    if isinstance(value, int):
        cents = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be an integer number of cents")
        try:
            cents = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer number of cents")
    else:
        raise ValidationError(f"{field} must be an integer number of cents")

    if cents < 0 and not allow_negative:
        raise ValidationError(f"{field} cannot be negative")
    return cents


def parse_optional_int(value: Any, field: str) -> int | None:
    """Coerce an optional non-negative integer (e.g. a day count)."""
    if value is None or value == "":
        return None
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if parsed < 0:
        raise ValidationError(f"{field} cannot be negative")
    return parsed
