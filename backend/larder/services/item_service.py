# Overview: Service-layer operations for inventory items; create/update with price history on cost edits, listing and soft delete.

from __future__ import annotations

from ..extensions import db
from ..models import InventoryItem, PriceHistory, StockLevel
from larder.permissions import is_elevated
from larder.quantities import ZERO, quantize_quantity, quantize_unit_cost
from larder.time_utils import utcnow
from .audit_service import record_audit
from .concurrency import atomic, lock_for_update, run_with_retry
from .errors import InvalidInputError, ItemNotFoundError, PermissionDeniedError
from .results import Result, capture
from .stock_ledger import STOCK_RETRY_ON, require_location

# Plain text fields a caller may change
TEXT_FIELDS = ("name", "sku", "description", "unit", "gl_code", "notes")
# Decimal fields and their normalizers
QUANTITY_FIELDS = ("par_level", "max_level")
UPDATABLE_FIELDS = TEXT_FIELDS + QUANTITY_FIELDS + ("unit_cost", "is_active")


def _require_elevated(actor_role: str, action: str) -> None:
    if not is_elevated(actor_role):
        raise PermissionDeniedError(f"Only managers and admins can {action}")


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError("Name is required")
    return name.strip()


def _clean_unit(unit) -> str:
    if unit is None or unit == "":
        return "EACH"
    if not isinstance(unit, str) or not unit.strip():
        raise InvalidInputError("unit must be a non-empty string")
    unit = unit.strip().upper()
    if len(unit) > 16:
        raise InvalidInputError("unit must be 16 characters or fewer")
    return unit


def _quantity_or_none(field: str, value):
    if value is None:
        return None
    try:
        qty = quantize_quantity(value)
    except ValueError:
        raise InvalidInputError(f"{field} must be a number")
    if qty < 0:
        raise InvalidInputError(f"{field} cannot be negative")
    return qty


def _unit_cost(value):
    try:
        cost = quantize_unit_cost(value)
    except ValueError:
        raise InvalidInputError("unit_cost must be a number")
    if cost < 0:
        raise InvalidInputError("unit_cost cannot be negative")
    return cost


def create_inventory_item(
    *,
    name: str,
    location_id: int,
    actor_id: int,
    actor_role: str,
    unit: str = "EACH",
    unit_cost=0,
    par_level=0,
    max_level=None,
    sku: str | None = None,
    description: str | None = None,
    gl_code: str | None = None,
    notes: str | None = None,
) -> Result:
    """
    Create an item at its home location with a zero StockLevel there.

    Returns Success(InventoryItem).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "create inventory items")
            require_location(location_id)

            item = InventoryItem(
                name=_clean_name(name),
                sku=sku,
                description=description,
                unit=_clean_unit(unit),
                unit_cost=_unit_cost(unit_cost),
                par_level=_quantity_or_none("par_level", par_level) or ZERO,
                max_level=_quantity_or_none("max_level", max_level),
                gl_code=gl_code,
                notes=notes,
                location_id=location_id,
            )
            db.session.add(item)
            db.session.flush()

            db.session.add(StockLevel(
                inventory_item_id=item.id,
                location_id=location_id,
                quantity=ZERO,
            ))

            record_audit(
                actor_id=actor_id,
                action="CREATE_ITEM",
                entity_type="InventoryItem",
                entity_id=item.id,
                details={
                    "name": item.name,
                    "location_id": location_id,
                    "unit_cost": item.unit_cost,
                },
            )
            return item

    return capture(lambda: run_with_retry(_op, retry_on=STOCK_RETRY_ON))


def update_inventory_item(item_id: int, changes: dict, *, actor_id: int, actor_role: str) -> Result:
    """
    Apply field changes to an item.

    A changed unit_cost appends PriceHistory (source EDIT). Unknown fields
    fail with InvalidInputError. Stock quantities are never edited here; use
    the stock ledger.

    Returns Success(InventoryItem).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "edit inventory items")

            unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
            if unknown:
                raise InvalidInputError(f"Unknown fields: {', '.join(unknown)}")

            item = lock_for_update(InventoryItem.query.filter_by(id=item_id)).first()
            if item is None:
                raise ItemNotFoundError(f"Inventory item {item_id} not found")

            changed = {}
            for field in TEXT_FIELDS:
                if field not in changes:
                    continue
                value = changes[field]
                if field == "name":
                    value = _clean_name(value)
                elif field == "unit":
                    value = _clean_unit(value)
                elif value is not None and not isinstance(value, str):
                    raise InvalidInputError(f"{field} must be a string")
                if getattr(item, field) != value:
                    changed[field] = {"from": getattr(item, field), "to": value}
                    setattr(item, field, value)

            for field in QUANTITY_FIELDS:
                if field not in changes:
                    continue
                value = _quantity_or_none(field, changes[field])
                if field == "par_level" and value is None:
                    raise InvalidInputError("par_level is required")
                if getattr(item, field) != value:
                    changed[field] = {"from": getattr(item, field), "to": value}
                    setattr(item, field, value)

            if "is_active" in changes:
                active = bool(changes["is_active"])
                if item.is_active != active:
                    changed["is_active"] = {"from": item.is_active, "to": active}
                    item.is_active = active

            if "unit_cost" in changes:
                new_cost = _unit_cost(changes["unit_cost"])
                if item.unit_cost != new_cost:
                    db.session.add(PriceHistory(
                        inventory_item_id=item.id,
                        old_price=item.unit_cost,
                        new_price=new_cost,
                        source="EDIT",
                        changed_by_user_id=actor_id,
                        changed_at=utcnow(),
                    ))
                    changed["unit_cost"] = {"from": item.unit_cost, "to": new_cost}
                    item.unit_cost = new_cost

            if changed:
                record_audit(
                    actor_id=actor_id,
                    action="UPDATE_ITEM",
                    entity_type="InventoryItem",
                    entity_id=item.id,
                    details={"changes": changed},
                )
            return item

    return capture(lambda: run_with_retry(_op))


def get_inventory_item(item_id: int) -> InventoryItem | None:
    return db.session.get(InventoryItem, item_id)


def list_price_history(item_id: int, limit: int = 10) -> list[PriceHistory]:
    """Newest first."""
    return (
        PriceHistory.query
        .filter_by(inventory_item_id=item_id)
        .order_by(PriceHistory.changed_at.desc(), PriceHistory.id.desc())
        .limit(limit)
        .all()
    )


def deactivate_inventory_item(item_id: int, *, actor_id: int, actor_role: str) -> Result:
    """
    Soft delete. Stock levels, waste logs and order lines keep pointing at
    the item; it only drops out of list_inventory_items().

    Returns Success(InventoryItem).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "delete inventory items")

            item = lock_for_update(InventoryItem.query.filter_by(id=item_id)).first()
            if item is None:
                raise ItemNotFoundError(f"Inventory item {item_id} not found")
            if not item.is_active:
                return item

            item.is_active = False
            record_audit(
                actor_id=actor_id,
                action="DEACTIVATE_ITEM",
                entity_type="InventoryItem",
                entity_id=item.id,
                details={"name": item.name},
            )
            return item

    return capture(lambda: run_with_retry(_op))


def list_inventory_items(location_id: int | None = None, active_only: bool = True) -> list[InventoryItem]:
    """Items homed at location_id (all locations when None), by name."""
    query = InventoryItem.query
    if location_id is not None:
        query = query.filter_by(location_id=location_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).all()
