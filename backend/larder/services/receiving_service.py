# Overview: Service-layer operations for receiving; reconciles delivered goods against purchase order lines.

"""
Receiving Reconciliation

A receipt is a list of (line_id, quantity_received) pairs against one order
in ORDERED or PARTIALLY_RECEIVED status. Inside ONE transaction, for every
pair with quantity > 0:

    1. line.quantity_received += quantity      (repeated receipts accumulate)
    2. stock(item, order.location) += quantity (the delta, never the total)
    3. if line.unit_cost != item.unit_cost:
           PriceHistory(old=item cost, new=line cost, source=RECEIVING)
           item.unit_cost = line.unit_cost    (last received price wins)

Then the order status is derived from ALL lines:

    every line received >= ordered  -> RECEIVED (received_date stamped)
    any line received > 0           -> PARTIALLY_RECEIVED
    otherwise                       -> unchanged

Pairs naming a line that is not on this order are skipped.

Over-receipt (cumulative received > ordered) follows OVER_RECEIPT_POLICY:
ALLOW accepts it with a warning, REJECT fails the whole receipt.

Any failure rolls back every line, ledger and price write of the call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import InventoryItem, PriceHistory, PurchaseOrder
from larder.quantities import quantize_quantity
from larder.time_utils import utcnow
from .audit_service import record_audit
from .concurrency import atomic, lock_for_update, run_with_retry
from .errors import InvalidInputError, NotFoundError, NotReceivableError, OverReceiptError
from .order_lifecycle import PARTIALLY_RECEIVED, RECEIVABLE_STATUSES, RECEIVED
from .results import Result, capture
from .stock_ledger import STOCK_RETRY_ON, _apply_delta_inner

logger = logging.getLogger(__name__)

OVER_RECEIPT_ALLOW = "ALLOW"
OVER_RECEIPT_REJECT = "REJECT"
OVER_RECEIPT_POLICIES = (OVER_RECEIPT_ALLOW, OVER_RECEIPT_REJECT)


@dataclass(frozen=True)
class ReceiptLine:
    line_id: int
    quantity_received: Decimal


def _normalize_receipt(received_lines) -> list[ReceiptLine]:
    normalized = []
    for entry in received_lines:
        if isinstance(entry, ReceiptLine):
            line_id, raw_qty = entry.line_id, entry.quantity_received
        elif isinstance(entry, Mapping):
            line_id, raw_qty = entry.get("line_id"), entry.get("quantity_received")
        else:
            raise InvalidInputError("Each received line needs line_id and quantity_received")

        if line_id is None:
            raise InvalidInputError("line_id is required")
        try:
            qty = quantize_quantity(raw_qty)
        except ValueError:
            raise InvalidInputError(f"Invalid quantity for line {line_id}: {raw_qty!r}")
        if qty < 0:
            raise InvalidInputError(f"Quantity received for line {line_id} cannot be negative")

        normalized.append(ReceiptLine(line_id=int(line_id), quantity_received=qty))
    return normalized


def _resolve_policy(over_receipt_policy: str | None) -> str:
    policy = (over_receipt_policy or current_app.config.get("OVER_RECEIPT_POLICY") or OVER_RECEIPT_ALLOW).upper()
    if policy not in OVER_RECEIPT_POLICIES:
        raise InvalidInputError(f"Unknown over-receipt policy '{policy}'")
    return policy


def derive_status(lines, current_status: str) -> str:
    """Aggregate order status from line completion."""
    if not lines:
        return current_status
    if all(line.quantity_received >= line.quantity_ordered for line in lines):
        return RECEIVED
    if any(line.quantity_received > 0 for line in lines):
        return PARTIALLY_RECEIVED
    return current_status


def _receive_inner(order_id: int, receipt: list[ReceiptLine], *, actor_id: int, policy: str) -> PurchaseOrder:
    order = lock_for_update(PurchaseOrder.query.filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError(f"Purchase order {order_id} not found")
    if order.status not in RECEIVABLE_STATUSES:
        raise NotReceivableError()

    lines_by_id = {line.id: line for line in order.lines}
    previous_status = order.status
    received = []
    price_changes = []

    for entry in receipt:
        if entry.quantity_received <= 0:
            continue
        line = lines_by_id.get(entry.line_id)
        if line is None:
            logger.warning("Receipt names line %s which is not on order %s; skipped", entry.line_id, order.id)
            continue

        new_received = line.quantity_received + entry.quantity_received
        if new_received > line.quantity_ordered:
            if policy == OVER_RECEIPT_REJECT:
                raise OverReceiptError(
                    f"Line {line.id}: received {new_received} exceeds ordered {line.quantity_ordered}"
                )
            logger.warning(
                "Over-receipt on order %s line %s: received %s of %s ordered",
                order.id, line.id, new_received, line.quantity_ordered,
            )
        line.quantity_received = new_received

        _apply_delta_inner(
            line.inventory_item_id,
            order.location_id,
            entry.quantity_received,
            actor_id=actor_id,
        )

        item = db.session.get(InventoryItem, line.inventory_item_id)
        if item is not None and item.unit_cost != line.unit_cost:
            db.session.add(PriceHistory(
                inventory_item_id=item.id,
                old_price=item.unit_cost,
                new_price=line.unit_cost,
                source="RECEIVING",
                changed_by_user_id=actor_id,
                changed_at=utcnow(),
            ))
            price_changes.append({
                "inventory_item_id": item.id,
                "old_price": item.unit_cost,
                "new_price": line.unit_cost,
            })
            item.unit_cost = line.unit_cost

        received.append({
            "line_id": line.id,
            "inventory_item_id": line.inventory_item_id,
            "quantity_received": entry.quantity_received,
            "total_received": new_received,
        })

    db.session.flush()

    new_status = derive_status(order.lines, order.status)
    if new_status != order.status:
        order.status = new_status
        if new_status == RECEIVED and order.received_date is None:
            order.received_date = utcnow()

    record_audit(
        actor_id=actor_id,
        action="RECEIVE_ORDER_LINES",
        entity_type="PurchaseOrder",
        entity_id=order.id,
        details={
            "order_number": order.order_number,
            "lines": received,
            "price_changes": price_changes,
            "previous_status": previous_status,
            "new_status": order.status,
        },
    )
    return order


def receive_lines(
    order_id: int,
    received_lines,
    *,
    actor_id: int,
    over_receipt_policy: str | None = None,
) -> Result:
    """
    Apply a (possibly partial) receipt to an order.

    received_lines: iterable of ReceiptLine or mappings with line_id and
    quantity_received.

    Failures: NotFoundError, NotReceivableError, InvalidInputError,
    OverReceiptError (REJECT policy only).

    Returns Success(PurchaseOrder).
    """
    def _run():
        # Resolved once: received_lines may be a one-shot iterable
        policy = _resolve_policy(over_receipt_policy)
        receipt = _normalize_receipt(received_lines)

        def _op():
            with atomic():
                return _receive_inner(order_id, receipt, actor_id=actor_id, policy=policy)

        return run_with_retry(_op, retry_on=STOCK_RETRY_ON)

    return capture(_run)
