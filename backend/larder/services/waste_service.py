# Overview: Service-layer operations for waste; records waste events and deducts them from stock.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import WasteLog
from larder.quantities import quantize_money, quantize_quantity
from larder.time_utils import normalize_datetime, utcnow
from .audit_service import record_audit
from .concurrency import atomic, run_with_retry
from .errors import InvalidInputError
from .results import Result, capture
from .stock_ledger import STOCK_RETRY_ON, _apply_delta_inner, require_item

logger = logging.getLogger(__name__)


WASTE_REASONS = (
    "EXPIRED",
    "SPOILED",
    "DAMAGED",
    "OVERPRODUCTION",
    "CONTAMINATED",
    "PREP_WASTE",
    "CUSTOMER_RETURN",
    "OTHER",
)


def log_waste(
    item_id: int,
    location_id: int,
    quantity,
    reason: str,
    notes: str | None = None,
    *,
    actor_id: int,
    wasted_at=None,
) -> Result:
    """
    Record wasted stock and deduct it from the ledger.

    Cost is quantity x the item's unit cost at log time (snapshotted on the
    WasteLog row). The ledger deduction clamps at zero, so waste is always
    recordable even when the on-hand count is already wrong.

    WasteLog row, ledger write and LOG_WASTE audit entry commit together.

    Returns Success(waste_log_id).
    """
    def _op():
        with atomic():
            try:
                qty = quantize_quantity(quantity)
            except ValueError:
                raise InvalidInputError(f"Invalid quantity: {quantity!r}")
            if qty <= 0:
                raise InvalidInputError("Quantity must be positive")
            if reason not in WASTE_REASONS:
                raise InvalidInputError(
                    f"Invalid waste reason '{reason}'. Must be one of: {', '.join(WASTE_REASONS)}"
                )
            try:
                occurred_at = normalize_datetime(wasted_at) or utcnow()
            except ValueError:
                raise InvalidInputError("Invalid wasted_at timestamp")

            item = require_item(item_id)
            unit_cost = item.unit_cost
            total_cost = quantize_money(qty * unit_cost)

            waste = WasteLog(
                inventory_item_id=item_id,
                location_id=location_id,
                quantity=qty,
                unit_cost=unit_cost,
                total_cost=total_cost,
                reason=reason,
                notes=notes,
                logged_by_user_id=actor_id,
                wasted_at=occurred_at,
            )
            db.session.add(waste)

            change = _apply_delta_inner(
                item_id,
                location_id,
                -qty,
                actor_id=actor_id,
                occurred_at=occurred_at,
                clamp=True,
            )
            if change.clamped:
                logger.warning(
                    "Waste of %s exceeds on-hand %s for item %s at location %s; stock clamped to 0",
                    qty, change.previous_quantity, item_id, location_id,
                )

            db.session.flush()

            record_audit(
                actor_id=actor_id,
                action="LOG_WASTE",
                entity_type="InventoryItem",
                entity_id=item_id,
                details={
                    "waste_log_id": waste.id,
                    "location_id": location_id,
                    "quantity": qty,
                    "reason": reason,
                    "total_cost": total_cost,
                    "previous_stock": change.previous_quantity,
                    "adjustment": change.applied_delta,
                    "new_stock": change.new_quantity,
                },
            )
            return waste.id

    return capture(lambda: run_with_retry(_op, retry_on=STOCK_RETRY_ON))


def list_waste_logs(location_id: int | None = None, limit: int = 100) -> list[WasteLog]:
    """Newest first."""
    query = WasteLog.query
    if location_id is not None:
        query = query.filter_by(location_id=location_id)
    return (
        query
        .order_by(WasteLog.wasted_at.desc(), WasteLog.id.desc())
        .limit(limit)
        .all()
    )


def get_waste_log(waste_log_id: int) -> WasteLog | None:
    return db.session.get(WasteLog, waste_log_id)
