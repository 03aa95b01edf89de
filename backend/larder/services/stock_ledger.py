# Overview: Service-layer operations for the stock ledger; per-(item, location) quantities that never go negative.

"""
Stock Ledger

Owns StockLevel rows: one on-hand quantity per (inventory item, location).

INVARIANT: quantity >= 0 after every mutation.

    strict mode (default): a delta that would go negative fails with
                           InsufficientStockError and writes nothing.
    clamp mode:            the quantity is floored at exactly 0 (waste must
                           always be recordable, even against stale counts).

Rows are upserted: the first stock-affecting event for a pair creates it,
and a missing row behaves exactly like a row holding 0.

CONCURRENCY:
    The read-modify-write runs under SELECT ... FOR UPDATE where the
    database supports it, and StockLevel.version_id turns any remaining lost
    update into a StaleDataError. Two first-inserts racing on the same pair
    hit uq_stock_levels_item_location. Public operations re-run the whole
    logical operation on all three via run_with_retry.

The ledger writes no audit entries of its own; callers record what the
change meant (ADJUST_STOCK, LOG_WASTE, RECEIVE_ORDER_LINES).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryItem, Location, StockLevel
from larder.quantities import ZERO, decimal_str, quantize_quantity
from larder.time_utils import normalize_datetime, utcnow
from .audit_service import record_audit
from .concurrency import atomic, lock_for_update, run_with_retry
from .errors import InsufficientStockError, InvalidInputError, ItemNotFoundError, NotFoundError
from .results import Result, capture

# Stock writes also retry a lost race on the first insert of a pair
STOCK_RETRY_ON = (IntegrityError,)


@dataclass(frozen=True)
class StockChange:
    inventory_item_id: int
    location_id: int
    previous_quantity: Decimal
    delta: Decimal
    applied_delta: Decimal
    new_quantity: Decimal
    clamped: bool

    def to_dict(self) -> dict:
        return {
            "inventory_item_id": self.inventory_item_id,
            "location_id": self.location_id,
            "previous_quantity": decimal_str(self.previous_quantity),
            "delta": decimal_str(self.delta),
            "applied_delta": decimal_str(self.applied_delta),
            "new_quantity": decimal_str(self.new_quantity),
            "clamped": self.clamped,
        }


def require_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise ItemNotFoundError(f"Inventory item {item_id} not found")
    return item


def require_location(location_id: int) -> Location:
    location = db.session.get(Location, location_id)
    if location is None:
        raise NotFoundError(f"Location {location_id} not found")
    return location


def _parse_delta(value) -> Decimal:
    try:
        return quantize_quantity(value)
    except ValueError:
        raise InvalidInputError(f"Invalid quantity: {value!r}")


def _apply_delta_inner(
    item_id: int,
    location_id: int,
    delta,
    *,
    actor_id: int,
    occurred_at=None,
    clamp: bool = False,
) -> StockChange:
    """
    Core ledger write.

    Does NOT open a transaction, retry, or commit; callers compose it into
    their own unit of work.
    """
    delta = _parse_delta(delta)
    try:
        stamped_at = normalize_datetime(occurred_at) or utcnow()
    except ValueError:
        raise InvalidInputError("Invalid timestamp")

    require_item(item_id)
    require_location(location_id)

    level = lock_for_update(
        StockLevel.query.filter_by(inventory_item_id=item_id, location_id=location_id)
    ).first()

    previous = level.quantity if level is not None else ZERO
    new_quantity = previous + delta
    clamped = False

    if new_quantity < 0:
        if not clamp:
            raise InsufficientStockError()
        new_quantity = ZERO
        clamped = True

    if level is None:
        level = StockLevel(
            inventory_item_id=item_id,
            location_id=location_id,
            quantity=new_quantity,
        )
        db.session.add(level)
    else:
        level.quantity = new_quantity

    level.last_counted_at = stamped_at
    level.last_counted_by = actor_id
    db.session.flush()

    return StockChange(
        inventory_item_id=item_id,
        location_id=location_id,
        previous_quantity=previous,
        delta=delta,
        applied_delta=new_quantity - previous,
        new_quantity=new_quantity,
        clamped=clamped,
    )


def apply_delta(
    item_id: int,
    location_id: int,
    delta,
    *,
    actor_id: int,
    occurred_at=None,
    clamp: bool = False,
) -> Result:
    """
    Apply a signed delta to the on-hand quantity of (item, location).

    Returns Success(StockChange), or Failure with InsufficientStockError
    (strict mode only), ItemNotFoundError, NotFoundError (location) or
    InvalidInputError.
    """
    def _op():
        with atomic():
            return _apply_delta_inner(
                item_id,
                location_id,
                delta,
                actor_id=actor_id,
                occurred_at=occurred_at,
                clamp=clamp,
            )

    return capture(lambda: run_with_retry(_op, retry_on=STOCK_RETRY_ON))


def adjust_stock(
    item_id: int,
    location_id: int,
    quantity_delta,
    reason: str,
    *,
    actor_id: int,
) -> Result:
    """
    Manual stock adjustment (count correction, breakage found on a shelf, ...).

    Strict: never clamps. The ledger write and its ADJUST_STOCK audit entry
    commit together.
    """
    def _op():
        with atomic():
            if not reason or not str(reason).strip():
                raise InvalidInputError("Reason is required")

            change = _apply_delta_inner(
                item_id,
                location_id,
                quantity_delta,
                actor_id=actor_id,
                clamp=False,
            )
            record_audit(
                actor_id=actor_id,
                action="ADJUST_STOCK",
                entity_type="InventoryItem",
                entity_id=item_id,
                details={
                    "location_id": location_id,
                    "previous_quantity": change.previous_quantity,
                    "adjustment": change.delta,
                    "new_quantity": change.new_quantity,
                    "reason": str(reason).strip(),
                },
            )
            return change

    return capture(lambda: run_with_retry(_op, retry_on=STOCK_RETRY_ON))


def get_stock_level(item_id: int, location_id: int) -> Decimal:
    """Current on-hand quantity; 0 when the pair has never been touched."""
    level = StockLevel.query.filter_by(inventory_item_id=item_id, location_id=location_id).first()
    return level.quantity if level is not None else ZERO


def list_stock_levels(item_id: int) -> list[StockLevel]:
    return (
        StockLevel.query
        .filter_by(inventory_item_id=item_id)
        .order_by(StockLevel.location_id.asc())
        .all()
    )
