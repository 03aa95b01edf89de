# Overview: Service-layer operations for purchase orders; creation, numbering, lookup and draft deletion.

from __future__ import annotations

import random
from datetime import datetime

from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderLine, Supplier
from larder.permissions import is_elevated
from larder.quantities import ZERO, quantize_money, quantize_quantity, quantize_unit_cost
from larder.time_utils import normalize_datetime, utcnow
from .audit_service import record_audit
from .concurrency import atomic, lock_for_update, run_with_retry
from .errors import InvalidInputError, NotFoundError, OrderNotEditableError, PermissionDeniedError
from .order_lifecycle import DRAFT, ORDER_STATUSES
from .results import Result, capture
from .stock_ledger import require_item, require_location


def generate_order_number(now: datetime | None = None, rng: random.Random | None = None) -> str:
    """
    Display label PO-YYYYMMDD-NNNN (NNNN random).

    NOT unique: two orders created on the same day can share a number. The
    integer id is the key; the number is for people and paperwork.
    """
    now = now or utcnow()
    rng = rng or random
    return f"PO-{now:%Y%m%d}-{rng.randint(0, 9999):04d}"


def _line_value(line, key: str):
    if isinstance(line, dict):
        return line.get(key)
    return getattr(line, key, None)


def _build_lines(lines) -> list[PurchaseOrderLine]:
    if not lines:
        raise InvalidInputError("At least one item is required")

    built = []
    for index, line in enumerate(lines, start=1):
        item_id = _line_value(line, "inventory_item_id")
        if item_id is None:
            raise InvalidInputError(f"Line {index}: inventory_item_id is required")
        require_item(item_id)

        try:
            qty = quantize_quantity(_line_value(line, "quantity_ordered"))
            unit_cost = quantize_unit_cost(_line_value(line, "unit_cost"))
        except ValueError:
            raise InvalidInputError(f"Line {index}: quantity_ordered and unit_cost must be numbers")
        if qty <= 0:
            raise InvalidInputError(f"Line {index}: quantity must be positive")
        if unit_cost < 0:
            raise InvalidInputError(f"Line {index}: unit cost cannot be negative")

        built.append(PurchaseOrderLine(
            inventory_item_id=item_id,
            quantity_ordered=qty,
            quantity_received=ZERO,
            unit_cost=unit_cost,
            line_total=quantize_money(qty * unit_cost),
        ))
    return built


def create_purchase_order(
    *,
    supplier_id: int,
    location_id: int,
    lines,
    created_by_user_id: int,
    actor_role: str,
    notes: str | None = None,
    expected_date=None,
    tax=0,
    shipping_cost=0,
) -> Result:
    """
    Create a DRAFT purchase order.

    lines: iterable of mappings (or objects) with inventory_item_id,
    quantity_ordered and unit_cost.

    line_total = quantity x unit cost, subtotal = sum of line totals,
    total_amount = subtotal + tax + shipping_cost.

    Returns Success(PurchaseOrder).
    """
    def _op():
        with atomic():
            if not is_elevated(actor_role):
                raise PermissionDeniedError("Only managers and admins can create purchase orders")

            supplier = db.session.get(Supplier, supplier_id)
            if supplier is None:
                raise NotFoundError(f"Supplier {supplier_id} not found")
            if not supplier.is_active:
                raise InvalidInputError(f"Supplier {supplier.name} is inactive")
            require_location(location_id)

            try:
                tax_amount = quantize_money(tax or 0)
                shipping_amount = quantize_money(shipping_cost or 0)
                expected = normalize_datetime(expected_date)
            except ValueError:
                raise InvalidInputError("Invalid tax, shipping_cost or expected_date")
            if tax_amount < 0 or shipping_amount < 0:
                raise InvalidInputError("Tax and shipping cannot be negative")

            order_lines = _build_lines(lines)
            subtotal = quantize_money(sum((line.line_total for line in order_lines), ZERO))

            order = PurchaseOrder(
                order_number=generate_order_number(),
                status=DRAFT,
                supplier_id=supplier_id,
                location_id=location_id,
                subtotal=subtotal,
                tax=tax_amount,
                shipping_cost=shipping_amount,
                total_amount=subtotal + tax_amount + shipping_amount,
                created_by_user_id=created_by_user_id,
                expected_date=expected,
                notes=notes,
            )
            order.lines = order_lines
            db.session.add(order)
            db.session.flush()

            record_audit(
                actor_id=created_by_user_id,
                action="CREATE_ORDER",
                entity_type="PurchaseOrder",
                entity_id=order.id,
                details={
                    "order_number": order.order_number,
                    "supplier_id": supplier_id,
                    "location_id": location_id,
                    "line_count": len(order_lines),
                    "total_amount": order.total_amount,
                },
            )
            return order

    return capture(lambda: run_with_retry(_op))


def get_purchase_order(order_id: int) -> PurchaseOrder | None:
    return db.session.get(PurchaseOrder, order_id)


def list_purchase_orders(
    location_id: int | None = None,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[PurchaseOrder]:
    """Newest first."""
    if status is not None and status not in ORDER_STATUSES:
        raise ValueError(f"Invalid status '{status}'")

    query = PurchaseOrder.query
    if location_id is not None:
        query = query.filter_by(location_id=location_id)
    if status is not None:
        query = query.filter_by(status=status)
    return (
        query
        .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def delete_purchase_order(order_id: int, *, actor_id: int, actor_role: str) -> Result:
    """
    Physically delete a DRAFT order and its lines.

    Orders that left DRAFT are history and fail with OrderNotEditableError;
    cancel them instead.
    """
    def _op():
        with atomic():
            if not is_elevated(actor_role):
                raise PermissionDeniedError("Only managers and admins can delete purchase orders")

            order = lock_for_update(PurchaseOrder.query.filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError(f"Purchase order {order_id} not found")
            if order.status != DRAFT:
                raise OrderNotEditableError()

            record_audit(
                actor_id=actor_id,
                action="DELETE_ORDER",
                entity_type="PurchaseOrder",
                entity_id=order.id,
                details={"order_number": order.order_number},
            )
            db.session.delete(order)
            return order_id

    return capture(lambda: run_with_retry(_op))
