# Overview: Flask API routes for suppliers and their item catalogs; parses input and returns JSON responses.

"""
Supplier Routes

SECURITY: All routes require an acting user (X-User-Id).
- Read and list require suppliers:read
- Create requires suppliers:create
- Update and catalog links require suppliers:update
- Delete (deactivate) requires suppliers:delete
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission
from ..services import supplier_service
from ..validation import (
    ValidationError,
    parse_decimal,
    parse_int,
    parse_optional_str,
    require_fields,
    require_json_object,
)
from .responses import failure_response


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


def _parse_supplier_fields(data: dict, fields) -> dict:
    parsed = {}
    for field in fields:
        if field not in data:
            continue
        if field == "lead_time_days":
            parsed[field] = parse_int(data, field, required=False)
        else:
            parsed[field] = parse_optional_str(data, field, max_length=255 if field != "notes" else None)
    return parsed


@suppliers_bp.get("")
@require_actor
@require_permission("suppliers:read")
def list_suppliers_route():
    """
    List suppliers by name.

    Query parameters:
    - include_inactive: "true" to include deactivated suppliers
    """
    include_inactive = request.args.get("include_inactive", "").lower() == "true"
    suppliers = supplier_service.list_suppliers(active_only=not include_inactive)
    return jsonify({
        "items": [s.to_dict() for s in suppliers],
        "count": len(suppliers),
    })


@suppliers_bp.get("/<int:supplier_id>")
@require_actor
@require_permission("suppliers:read")
def get_supplier_route(supplier_id: int):
    """Get a supplier with its item catalog."""
    supplier = supplier_service.get_supplier(supplier_id)
    if supplier is None:
        return jsonify({"error": "Supplier not found", "code": "NOT_FOUND"}), 404

    data = supplier.to_dict()
    data["items"] = [link.to_dict() for link in supplier_service.list_supplier_items(supplier_id=supplier_id)]
    return jsonify(data)


@suppliers_bp.post("")
@require_actor
@require_permission("suppliers:create")
def create_supplier_route():
    """
    Create a supplier.

    Request body:
    {
        "name": "Green Valley Produce",  // required
        "contact_name": "...", "email": "...", "phone": "...",
        "lead_time_days": 2,             // optional, non-negative integer
        "notes": "..."
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "name")
        kwargs = _parse_supplier_fields(data, supplier_service.UPDATABLE_FIELDS)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = supplier_service.create_supplier(actor_id=user.id, actor_role=user.role, **kwargs)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Failed to create supplier"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict()), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_actor
@require_permission("suppliers:update")
def update_supplier_route(supplier_id: int):
    """Update a supplier. Body holds only the fields to change."""
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        if not data:
            raise ValidationError("No fields to update")
        unknown = sorted(set(data) - set(supplier_service.UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(unknown)}")
        changes = _parse_supplier_fields(data, supplier_service.UPDATABLE_FIELDS)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = supplier_service.update_supplier(
            supplier_id, changes, actor_id=user.id, actor_role=user.role
        )
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return jsonify({"error": "Failed to update supplier"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict())


@suppliers_bp.delete("/<int:supplier_id>")
@require_actor
@require_permission("suppliers:delete")
def delete_supplier_route(supplier_id: int):
    """Deactivate a supplier (soft delete; its orders are kept)."""
    user = g.current_user
    try:
        result = supplier_service.deactivate_supplier(supplier_id, actor_id=user.id, actor_role=user.role)
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return jsonify({"error": "Failed to delete supplier"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict())


@suppliers_bp.post("/<int:supplier_id>/items")
@require_actor
@require_permission("suppliers:update")
def link_item_route(supplier_id: int):
    """
    Link an inventory item to this supplier (or update the existing link).

    Request body:
    {
        "inventory_item_id": 1,   // required
        "unit_cost": "4.10",      // required, >= 0
        "supplier_sku": "GV-001", // optional
        "min_order_qty": "5",     // optional
        "is_preferred": true      // optional, default false
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "inventory_item_id", "unit_cost")
        is_preferred = data.get("is_preferred", False)
        if not isinstance(is_preferred, bool):
            raise ValidationError("is_preferred must be a boolean")
        kwargs = dict(
            inventory_item_id=parse_int(data, "inventory_item_id"),
            unit_cost=parse_decimal(data, "unit_cost"),
            supplier_sku=parse_optional_str(data, "supplier_sku", max_length=64),
            min_order_qty=parse_decimal(data, "min_order_qty", required=False),
            is_preferred=is_preferred,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    user = g.current_user
    try:
        result = supplier_service.link_supplier_item(
            supplier_id=supplier_id, actor_id=user.id, actor_role=user.role, **kwargs
        )
    except Exception:
        current_app.logger.exception("Failed to link supplier item")
        return jsonify({"error": "Failed to link supplier item"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify(result.value.to_dict()), 201


@suppliers_bp.delete("/items/<int:supplier_item_id>")
@require_actor
@require_permission("suppliers:update")
def unlink_item_route(supplier_item_id: int):
    """Remove a supplier catalog link."""
    user = g.current_user
    try:
        result = supplier_service.unlink_supplier_item(
            supplier_item_id, actor_id=user.id, actor_role=user.role
        )
    except Exception:
        current_app.logger.exception("Failed to unlink supplier item")
        return jsonify({"error": "Failed to unlink supplier item"}), 500

    if not result.ok:
        return failure_response(result)
    return jsonify({"deleted": True, "id": supplier_item_id})
