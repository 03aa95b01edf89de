# Overview: Decimal helpers for stock quantities and money.

"""
Quantities and costs are Decimals end to end.

- Stock quantities: 3 decimal places (0.125 kg of saffron is a real count).
- Unit costs: 4 decimal places (cost per gram / per ml).
- Money totals (line totals, waste cost, order totals): cents, half-up.

Floats are converted through str() so 0.1 stays 0.1.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0")

QUANTITY_PLACES = Decimal("0.001")
UNIT_COST_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")


# Largest magnitudes the Numeric(14,3) / Numeric(12,4) columns hold
MAX_QUANTITY = Decimal("1e11")
MAX_UNIT_COST = Decimal("1e8")


def as_decimal(value) -> Decimal:
    """Coerce int/float/str/Decimal to a finite Decimal; raises ValueError otherwise."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def _quantize(value, places: Decimal, limit: Decimal | None = None) -> Decimal:
    number = as_decimal(value)
    if limit is not None and abs(number) >= limit:
        raise ValueError(f"out of range: {value!r}")
    try:
        return number.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"out of range: {value!r}")


def quantize_quantity(value) -> Decimal:
    return _quantize(value, QUANTITY_PLACES, MAX_QUANTITY)


def quantize_unit_cost(value) -> Decimal:
    return _quantize(value, UNIT_COST_PLACES, MAX_UNIT_COST)


def quantize_money(value) -> Decimal:
    return _quantize(value, MONEY_PLACES)


def decimal_str(value) -> str | None:
    """Render a Decimal for JSON (strings keep exactness across clients)."""
    if value is None:
        return None
    return format(as_decimal(value).normalize(), "f")
