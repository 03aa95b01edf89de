# Overview: Flask API routes for waste logging; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission
from ..services import waste_service
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


waste_bp = Blueprint("waste", __name__, url_prefix="/api/waste")


@waste_bp.get("")
@require_actor
@require_permission("waste:read")
def list_waste_route():
    """
    List waste logs, newest first.

    Query parameters:
    - location_id: optional filter
    - limit: maximum results (default 100, max 500)
    """
    location_id = request.args.get("location_id", type=int)
    limit = request.args.get("limit", 100, type=int)

    # Clamp limit
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    logs = waste_service.list_waste_logs(location_id=location_id, limit=limit)
    return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)})


@waste_bp.post("")
@require_actor
@require_permission("waste:create")
def log_waste_route():
    """
    Log waste and deduct it from stock (clamped at zero).

    Request body:
    {
        "inventory_item_id": 1,  // required
        "location_id": 1,        // required
        "quantity": "3",         // required, positive
        "reason": "SPOILED",     // required, one of WASTE_REASONS
        "notes": "...",          // optional
        "wasted_at": "..."       // optional, ISO-8601
    }

    Returns:
        Created WasteLog object
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        require_fields(data, "inventory_item_id", "location_id", "quantity", "reason")
        item_id = parse_int(data, "inventory_item_id")
        location_id = parse_int(data, "location_id")
        quantity = parse_decimal(data, "quantity")
        if quantity <= 0:
            raise ValidationError("quantity must be positive")
        reason = data.get("reason")
        if reason not in waste_service.WASTE_REASONS:
            raise ValidationError(f"reason must be one of: {', '.join(waste_service.WASTE_REASONS)}")
        notes = parse_optional_str(data, "notes", max_length=1000)
        wasted_at = parse_optional_datetime(data, "wasted_at")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = waste_service.log_waste(
            item_id,
            location_id,
            quantity,
            reason,
            notes,
            actor_id=g.current_user.id,
            wasted_at=wasted_at,
        )
    except Exception:
        current_app.logger.exception("Failed to log waste")
        return jsonify({"error": "Failed to log waste"}), 500

    if not result.ok:
        return failure_response(result)

    waste_log = waste_service.get_waste_log(result.value)
    return jsonify(waste_log.to_dict()), 201
