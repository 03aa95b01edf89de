# Overview: Flask API routes for inventory items and stock adjustments; parses input and returns JSON responses.

"""
Inventory Routes

SECURITY: All routes require an acting user (X-User-Id).
- Create requires inventory:create
- Update requires inventory:update
- Read and list require inventory:read
- Delete (deactivate) requires inventory:delete
- Stock adjustments require inventory:adjust_stock
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission
from ..services import item_service, stock_ledger
from ..validation import (
    ValidationError,
    parse_decimal,
    parse_int,
    parse_optional_str,
    require_fields,
    require_json_object,
)
from .responses import failure_response


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/items")
@require_actor
@require_permission("inventory:create")
def create_item_route():
    """
    Create an inventory item.

    Request body:
    {
        "name": "Flour",        // required
        "location_id": 1,       // required, home location
        "unit": "KG",           // optional, default EACH
        "unit_cost": "0.85",    // optional, default 0
        "par_level": "20",      // optional
        "max_level": "100",     // optional
        "sku": "...", "description": "...", "gl_code": "...", "notes": "..."
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "name", "location_id")
        kwargs = dict(
            name=data["name"],
            location_id=parse_int(data, "location_id"),
            unit=parse_optional_str(data, "unit", max_length=16) or "EACH",
            unit_cost=parse_decimal(data, "unit_cost", required=False, default=0),
            par_level=parse_decimal(data, "par_level", required=False, default=0),
            max_level=parse_decimal(data, "max_level", required=False),
            sku=parse_optional_str(data, "sku", max_length=64),
            description=parse_optional_str(data, "description"),
            gl_code=parse_optional_str(data, "gl_code", max_length=32),
            notes=parse_optional_str(data, "notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = item_service.create_inventory_item(actor_id=user.id, actor_role=user.role, **kwargs)
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Failed to create inventory item"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict()), 201


@inventory_bp.put("/items/<int:item_id>")
@require_actor
@require_permission("inventory:update")
def update_item_route(item_id: int):
    """
    Update an inventory item. Body holds only the fields to change.

    A changed unit_cost is recorded in the item's price history.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        if not data:
            raise ValidationError("No fields to update")
        changes = dict(data)
        for field in ("unit_cost", "par_level"):
            if field in changes:
                changes[field] = parse_decimal(data, field)
        if "max_level" in changes:
            changes["max_level"] = parse_decimal(data, "max_level", required=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = item_service.update_inventory_item(
            item_id, changes, actor_id=user.id, actor_role=user.role
        )
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Failed to update inventory item"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict())


@inventory_bp.get("/items/<int:item_id>")
@require_actor
@require_permission("inventory:read")
def get_item_route(item_id: int):
    """
    Get an item with its stock levels and recent price history.
    """
    item = item_service.get_inventory_item(item_id)
    if item is None:
        return jsonify({"error": "Inventory item not found", "code": "ITEM_NOT_FOUND"}), 404

    data = item.to_dict()
    data["stock_levels"] = [level.to_dict() for level in stock_ledger.list_stock_levels(item_id)]
    data["price_history"] = [row.to_dict() for row in item_service.list_price_history(item_id)]
    return jsonify(data)


@inventory_bp.post("/adjust")
@require_actor
@require_permission("inventory:adjust_stock")
def adjust_stock_route():
    """
    Adjust on-hand stock by a signed quantity.

    Request body:
    {
        "inventory_item_id": 1,  // required
        "location_id": 1,        // required
        "quantity": "-2.5",      // required, signed, non-zero
        "reason": "Recount"      // required
    }

    Fails with 409 INSUFFICIENT_STOCK when stock would go below 0.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "inventory_item_id", "location_id", "quantity", "reason")
        item_id = parse_int(data, "inventory_item_id")
        location_id = parse_int(data, "location_id")
        quantity = parse_decimal(data, "quantity")
        if quantity == 0:
            raise ValidationError("quantity must be non-zero")
        reason = parse_optional_str(data, "reason", max_length=255)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = stock_ledger.adjust_stock(
            item_id, location_id, quantity, reason, actor_id=g.current_user.id
        )
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Failed to adjust stock"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict())


@inventory_bp.get("/items")
@require_actor
@require_permission("inventory:read")
def list_items_route():
    """
    List active inventory items by name.

    Query parameters:
    - location_id: optional, only items homed at this location
    - include_inactive: "true" to include deactivated items
    """
    location_id = request.args.get("location_id", type=int)
    include_inactive = request.args.get("include_inactive", "").lower() == "true"

    items = item_service.list_inventory_items(location_id=location_id, active_only=not include_inactive)
    return jsonify({
        "items": [item.to_dict() for item in items],
        "count": len(items),
    })


@inventory_bp.delete("/items/<int:item_id>")
@require_actor
@require_permission("inventory:delete")
def delete_item_route(item_id: int):
    """Deactivate an item (soft delete; its history is kept)."""
    user = g.current_user
    try:
        result = item_service.deactivate_inventory_item(item_id, actor_id=user.id, actor_role=user.role)
    except Exception:
        current_app.logger.exception("Failed to delete inventory item")
        return jsonify({"error": "Failed to delete inventory item"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict())
