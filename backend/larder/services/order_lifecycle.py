# Overview: Service-layer operations for purchase order status; the order lifecycle state machine.

"""
Purchase Order Lifecycle

================================================================================
STATE MACHINE
================================================================================

    DRAFT -> SUBMITTED -> APPROVED -> ORDERED -> PARTIALLY_RECEIVED -> RECEIVED
                                            \\----------------------------> RECEIVED

    CANCELLED is reachable from every state except RECEIVED.
    RECEIVED and CANCELLED are terminal.

    DRAFT:              being built, lines editable, deletable
    SUBMITTED:          waiting for manager approval
    APPROVED:           approved, not yet sent to the supplier
    ORDERED:            sent to the supplier, receivable
    PARTIALLY_RECEIVED: some goods arrived, still receivable
    RECEIVED:           everything arrived
    CANCELLED:          abandoned

RULES:
1. Only transitions in ALLOWED_TRANSITIONS are legal (no skipping, no going
   back, no same-state "transitions").
2. Moving to SUBMITTED needs orders:create and APPROVED needs orders:approve
   (MANAGER and ADMIN by default).
3. PARTIALLY_RECEIVED / RECEIVED are normally derived by the receiving engine.
   ORDERED -> RECEIVED stays available as a manual "mark fully received"
   shortcut for orders nobody tracks line by line.
================================================================================
"""

from __future__ import annotations

from ..models import PurchaseOrder
from larder.permissions import has_permission
from larder.time_utils import utcnow
from .audit_service import record_audit
from .concurrency import atomic, lock_for_update, run_with_retry
from .errors import InvalidTransitionError, NotFoundError, PermissionDeniedError
from .results import Result, capture


DRAFT = "DRAFT"
SUBMITTED = "SUBMITTED"
APPROVED = "APPROVED"
ORDERED = "ORDERED"
PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
RECEIVED = "RECEIVED"
CANCELLED = "CANCELLED"

ORDER_STATUSES = (DRAFT, SUBMITTED, APPROVED, ORDERED, PARTIALLY_RECEIVED, RECEIVED, CANCELLED)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    DRAFT: frozenset({SUBMITTED, CANCELLED}),
    SUBMITTED: frozenset({APPROVED, CANCELLED}),
    APPROVED: frozenset({ORDERED, CANCELLED}),
    ORDERED: frozenset({PARTIALLY_RECEIVED, RECEIVED, CANCELLED}),
    PARTIALLY_RECEIVED: frozenset({RECEIVED, CANCELLED}),
    RECEIVED: frozenset(),
    CANCELLED: frozenset(),
}

RECEIVABLE_STATUSES = frozenset({ORDERED, PARTIALLY_RECEIVED})

# Targets that need a permission beyond orders:read, and which one
ROLE_GATED_TARGETS = {
    SUBMITTED: "orders:create",
    APPROVED: "orders:approve",
}


def allowed_targets(status: str) -> frozenset[str]:
    return ALLOWED_TRANSITIONS.get(status, frozenset())


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in allowed_targets(from_status)


def _transition_inner(order: PurchaseOrder, target_status: str, *, actor_id: int, actor_role: str) -> PurchaseOrder:
    from_status = order.status

    if not can_transition(from_status, target_status):
        raise InvalidTransitionError(from_status, target_status)

    required = ROLE_GATED_TARGETS.get(target_status)
    if required is not None and not has_permission(actor_role, required):
        raise PermissionDeniedError(
            f"Moving an order to {target_status} requires {required}"
        )

    order.status = target_status
    if target_status == APPROVED:
        order.approved_by_user_id = actor_id
    if target_status == RECEIVED and order.received_date is None:
        order.received_date = utcnow()

    record_audit(
        actor_id=actor_id,
        action="UPDATE_ORDER_STATUS",
        entity_type="PurchaseOrder",
        entity_id=order.id,
        details={
            "order_number": order.order_number,
            "from_status": from_status,
            "to_status": target_status,
        },
    )
    return order


def transition_purchase_order(
    order_id: int,
    target_status: str,
    *,
    actor_id: int,
    actor_role: str,
) -> Result:
    """
    Move an order to target_status.

    Failures (order unchanged): NotFoundError, InvalidTransitionError (also
    for unknown or terminal statuses), PermissionDeniedError.

    Returns Success(PurchaseOrder).
    """
    def _op():
        with atomic():
            order = lock_for_update(PurchaseOrder.query.filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError(f"Purchase order {order_id} not found")
            return _transition_inner(order, target_status, actor_id=actor_id, actor_role=actor_role)

    return capture(lambda: run_with_retry(_op))
