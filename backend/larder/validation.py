# Overview: Request-body parsing helpers shared by the API routes.

from __future__ import annotations

from decimal import Decimal
from typing import Any

from larder.quantities import as_decimal
from larder.time_utils import parse_iso_datetime


class ValidationError(ValueError):
    """400-level input problem."""


def require_json_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) is None or data.get(f) == ""]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_int(data: dict, field: str, *, required: bool = True) -> int | None:
    """
    Integers - strict validation to reject floats, booleans and scientific
    notation.
    """
    value = data.get(field)
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or 'e' in stripped.lower() or '.' in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def parse_decimal(data: dict, field: str, *, required: bool = True, default=None) -> Decimal | None:
    """
    Decimals accept JSON numbers or numeric strings ("2.50").

    Strings are preferred by clients that care about exactness; floats go
    through str() so 0.1 stays 0.1.
    """
    value = data.get(field)
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return default
    try:
        return as_decimal(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")


def parse_optional_datetime(data: dict, field: str):
    value = data.get(field)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {field} format")


def parse_optional_str(data: dict, field: str, *, max_length: int | None = None) -> str | None:
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value
