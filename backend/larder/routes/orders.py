# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

"""
Purchase Order Routes

SECURITY: All routes require an acting user (X-User-Id).
- View operations require orders:read
- Create/delete require orders:create
- Status changes require orders:read; SUBMITTED/APPROVED are further gated
  on role by the order lifecycle service
- Receiving requires orders:receive
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission
from ..services import order_lifecycle, order_service, receiving_service
from ..validation import (
    ValidationError,
    parse_decimal,
    parse_int,
    parse_optional_datetime,
    parse_optional_str,
    require_fields,
    require_json_object,
)
from .responses import failure_response


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _parse_order_lines(data: dict) -> list[dict]:
    raw_lines = data.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines must be a non-empty list")
    lines = []
    for index, raw in enumerate(raw_lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Line {index} must be an object")
        require_fields(raw, "inventory_item_id", "quantity_ordered", "unit_cost")
        lines.append({
            "inventory_item_id": parse_int(raw, "inventory_item_id"),
            "quantity_ordered": parse_decimal(raw, "quantity_ordered"),
            "unit_cost": parse_decimal(raw, "unit_cost"),
        })
    return lines


def _parse_receipt_lines(data: dict) -> list[receiving_service.ReceiptLine]:
    raw_lines = data.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines must be a non-empty list")
    receipt = []
    for index, raw in enumerate(raw_lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Line {index} must be an object")
        require_fields(raw, "line_id", "quantity_received")
        quantity = parse_decimal(raw, "quantity_received")
        if quantity < 0:
            raise ValidationError(f"Line {index}: quantity_received cannot be negative")
        receipt.append(receiving_service.ReceiptLine(
            line_id=parse_int(raw, "line_id"),
            quantity_received=quantity,
        ))
    return receipt


@orders_bp.get("")
@require_actor
@require_permission("orders:read")
def list_orders_route():
    """
    List purchase orders, newest first.

    Query parameters:
    - location_id: optional filter
    - status: optional filter (DRAFT, SUBMITTED, ...)
    - limit: maximum results (default 50, max 200)
    - offset: pagination offset (default 0)
    """
    location_id = request.args.get("location_id", type=int)
    status = request.args.get("status")
    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)

    if status is not None and status not in order_lifecycle.ORDER_STATUSES:
        return jsonify({"error": f"status must be one of: {', '.join(order_lifecycle.ORDER_STATUSES)}"}), 400

    # Clamp limit
    if limit < 1:
        limit = 1
    if limit > 200:
        limit = 200
    if offset < 0:
        offset = 0

    orders = order_service.list_purchase_orders(
        location_id=location_id, status=status, limit=limit, offset=offset
    )
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": len(orders),
        "limit": limit,
        "offset": offset,
    })


@orders_bp.get("/<int:order_id>")
@require_actor
@require_permission("orders:read")
def get_order_route(order_id: int):
    """Get a purchase order with its lines and the statuses it may move to."""
    order = order_service.get_purchase_order(order_id)
    if order is None:
        return jsonify({"error": "Purchase order not found", "code": "NOT_FOUND"}), 404

    data = order.to_dict(include_lines=True)
    data["allowed_transitions"] = sorted(order_lifecycle.allowed_targets(order.status))
    return jsonify(data)


@orders_bp.post("")
@require_actor
@require_permission("orders:create")
def create_order_route():
    """
    Create a DRAFT purchase order.

    Request body:
    {
        "supplier_id": 1,                 // required
        "location_id": 1,                 // required
        "lines": [                        // required, at least one
            {"inventory_item_id": 1, "quantity_ordered": "10", "unit_cost": "4.00"}
        ],
        "tax": "0", "shipping_cost": "0", // optional
        "expected_date": "2026-01-31",    // optional, ISO-8601
        "notes": "..."                    // optional
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "supplier_id", "location_id", "lines")
        kwargs = dict(
            supplier_id=parse_int(data, "supplier_id"),
            location_id=parse_int(data, "location_id"),
            lines=_parse_order_lines(data),
            tax=parse_decimal(data, "tax", required=False, default=0),
            shipping_cost=parse_decimal(data, "shipping_cost", required=False, default=0),
            expected_date=parse_optional_datetime(data, "expected_date"),
            notes=parse_optional_str(data, "notes", max_length=2000),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = order_service.create_purchase_order(
            created_by_user_id=user.id, actor_role=user.role, **kwargs
        )
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Failed to create purchase order"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict(include_lines=True)), 201


@orders_bp.post("/<int:order_id>/status")
@require_actor
@require_permission("orders:read")
def transition_order_route(order_id: int):
    """
    Move an order to a new status.

    Request body: {"status": "SUBMITTED"}

    409 INVALID_TRANSITION when the move is not allowed from the current
    status; 403 PERMISSION_DENIED when the role may not make it.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "status")
        target = data["status"]
        if not isinstance(target, str):
            raise ValidationError("status must be a string")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = order_lifecycle.transition_purchase_order(
            order_id, target.strip().upper(), actor_id=user.id, actor_role=user.role
        )
    except Exception:
        current_app.logger.exception("Failed to update purchase order status")
        return jsonify({"error": "Failed to update purchase order status"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict())


@orders_bp.post("/<int:order_id>/receive")
@require_actor
@require_permission("orders:receive")
def receive_order_route(order_id: int):
    """
    Receive goods against an order (partial or full).

    Request body:
    {
        "lines": [{"line_id": 1, "quantity_received": "4"}]
    }

    Quantities add to what was already received. The order becomes
    PARTIALLY_RECEIVED or RECEIVED from the line totals.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        receipt = _parse_receipt_lines(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = receiving_service.receive_lines(order_id, receipt, actor_id=g.current_user.id)
    except Exception:
        current_app.logger.exception("Failed to receive purchase order")
        return jsonify({"error": "Failed to receive purchase order"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict(include_lines=True))


@orders_bp.delete("/<int:order_id>")
@require_actor
@require_permission("orders:create")
def delete_order_route(order_id: int):
    """Delete a DRAFT order. Anything past DRAFT is 409 ORDER_NOT_EDITABLE."""
    user = g.current_user
    try:
        result = order_service.delete_purchase_order(order_id, actor_id=user.id, actor_role=user.role)
    except Exception:
        current_app.logger.exception("Failed to delete purchase order")
        return jsonify({"error": "Failed to delete purchase order"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify({"deleted": True, "id": result.value})
