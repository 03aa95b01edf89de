# Overview: Service-layer operations for suppliers and their item catalogs.

"""
Suppliers

Suppliers are never hard-deleted: deactivate_supplier clears is_active so the
supplier drops out of list_suppliers() and cannot take new purchase orders,
while its order history stays intact.

Each supplier carries a catalog of SupplierItem links (supplier SKU, quoted
cost, minimum order quantity). Linking the same (supplier, item) pair again
updates the existing link. At most one link per item is preferred: marking a
link preferred clears the flag on the item's other links in the same
transaction.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Supplier, SupplierItem
from larder.permissions import is_elevated
from larder.quantities import quantize_quantity, quantize_unit_cost
from .audit_service import record_audit
from .concurrency import atomic, lock_for_update, run_with_retry
from .errors import InvalidInputError, NotFoundError, PermissionDeniedError
from .results import Result, capture
from .stock_ledger import require_item

# Fields update_supplier accepts
UPDATABLE_FIELDS = ("name", "contact_name", "email", "phone", "lead_time_days", "notes")


def _require_elevated(actor_role: str, action: str) -> None:
    if not is_elevated(actor_role):
        raise PermissionDeniedError(f"Only managers and admins can {action}")


def _require_supplier(supplier_id: int) -> Supplier:
    supplier = lock_for_update(Supplier.query.filter_by(id=supplier_id)).first()
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def _clean_field(field: str, value):
    if field == "name":
        if not isinstance(value, str) or not value.strip():
            raise InvalidInputError("Name is required")
        return value.strip()
    if field == "lead_time_days":
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            raise InvalidInputError("lead_time_days must be a non-negative integer")
        return value
    if value is not None and not isinstance(value, str):
        raise InvalidInputError(f"{field} must be a string")
    return value or None


def create_supplier(
    *,
    name: str,
    actor_id: int,
    actor_role: str,
    contact_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    lead_time_days: int | None = None,
    notes: str | None = None,
) -> Result:
    def _op():
        with atomic():
            _require_elevated(actor_role, "create suppliers")

            supplier = Supplier(
                name=_clean_field("name", name),
                contact_name=_clean_field("contact_name", contact_name),
                email=_clean_field("email", email),
                phone=_clean_field("phone", phone),
                lead_time_days=_clean_field("lead_time_days", lead_time_days),
                notes=_clean_field("notes", notes),
            )
            db.session.add(supplier)
            db.session.flush()

            record_audit(
                actor_id=actor_id,
                action="CREATE_SUPPLIER",
                entity_type="Supplier",
                entity_id=supplier.id,
                details={"name": supplier.name},
            )
            return supplier

    return capture(lambda: run_with_retry(_op))


def update_supplier(supplier_id: int, changes: dict, *, actor_id: int, actor_role: str) -> Result:
    """
    Apply field changes to a supplier. Unknown fields fail with
    InvalidInputError; is_active is changed through deactivate_supplier.

    Returns Success(Supplier).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "edit suppliers")

            unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
            if unknown:
                raise InvalidInputError(f"Unknown fields: {', '.join(unknown)}")

            supplier = _require_supplier(supplier_id)

            changed = {}
            for field in UPDATABLE_FIELDS:
                if field not in changes:
                    continue
                value = _clean_field(field, changes[field])
                if getattr(supplier, field) != value:
                    changed[field] = {"from": getattr(supplier, field), "to": value}
                    setattr(supplier, field, value)

            if changed:
                record_audit(
                    actor_id=actor_id,
                    action="UPDATE_SUPPLIER",
                    entity_type="Supplier",
                    entity_id=supplier.id,
                    details={"changes": changed},
                )
            return supplier

    return capture(lambda: run_with_retry(_op))


def deactivate_supplier(supplier_id: int, *, actor_id: int, actor_role: str) -> Result:
    """
    Soft delete. Deactivating an already inactive supplier succeeds without
    writing anything.

    Returns Success(Supplier).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "deactivate suppliers")
            supplier = _require_supplier(supplier_id)
            if not supplier.is_active:
                return supplier

            supplier.is_active = False
            record_audit(
                actor_id=actor_id,
                action="DEACTIVATE_SUPPLIER",
                entity_type="Supplier",
                entity_id=supplier.id,
                details={"name": supplier.name},
            )
            return supplier

    return capture(lambda: run_with_retry(_op))


def get_supplier(supplier_id: int) -> Supplier | None:
    return db.session.get(Supplier, supplier_id)


def list_suppliers(active_only: bool = True) -> list[Supplier]:
    query = Supplier.query
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Supplier.name.asc()).all()


# =============================================================================
# SUPPLIER ITEM CATALOG
# =============================================================================

def link_supplier_item(
    *,
    supplier_id: int,
    inventory_item_id: int,
    unit_cost,
    actor_id: int,
    actor_role: str,
    supplier_sku: str | None = None,
    min_order_qty=None,
    is_preferred: bool = False,
) -> Result:
    """
    Create or update the catalog link for (supplier, item).

    Returns Success(SupplierItem).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "link supplier items")

            supplier = _require_supplier(supplier_id)
            if not supplier.is_active:
                raise InvalidInputError(f"Supplier {supplier.name} is inactive")
            require_item(inventory_item_id)

            try:
                cost = quantize_unit_cost(unit_cost)
                min_qty = None if min_order_qty is None else quantize_quantity(min_order_qty)
            except ValueError:
                raise InvalidInputError("unit_cost and min_order_qty must be numbers")
            if cost < 0:
                raise InvalidInputError("Unit cost must be 0 or greater")
            if min_qty is not None and min_qty < 0:
                raise InvalidInputError("Minimum order quantity cannot be negative")
            if supplier_sku is not None and not isinstance(supplier_sku, str):
                raise InvalidInputError("supplier_sku must be a string")

            link = lock_for_update(
                SupplierItem.query.filter_by(supplier_id=supplier_id, inventory_item_id=inventory_item_id)
            ).first()
            created = link is None
            if created:
                link = SupplierItem(supplier_id=supplier_id, inventory_item_id=inventory_item_id)
                db.session.add(link)

            if is_preferred:
                others = lock_for_update(
                    SupplierItem.query.filter_by(inventory_item_id=inventory_item_id, is_preferred=True)
                ).all()
                for other in others:
                    if other is not link:
                        other.is_preferred = False

            link.supplier_sku = supplier_sku or None
            link.unit_cost = cost
            link.min_order_qty = min_qty
            link.is_preferred = bool(is_preferred)
            db.session.flush()

            record_audit(
                actor_id=actor_id,
                action="LINK_SUPPLIER_ITEM",
                entity_type="Supplier",
                entity_id=supplier_id,
                details={
                    "supplier_item_id": link.id,
                    "inventory_item_id": inventory_item_id,
                    "unit_cost": cost,
                    "min_order_qty": min_qty,
                    "is_preferred": link.is_preferred,
                    "created": created,
                },
            )
            return link

    # A racing first link for the same pair trips the unique constraint
    return capture(lambda: run_with_retry(_op, retry_on=(IntegrityError,)))


def unlink_supplier_item(supplier_item_id: int, *, actor_id: int, actor_role: str) -> Result:
    """
    Remove a catalog link.

    Returns Success(None).
    """
    def _op():
        with atomic():
            _require_elevated(actor_role, "unlink supplier items")

            link = lock_for_update(SupplierItem.query.filter_by(id=supplier_item_id)).first()
            if link is None:
                raise NotFoundError(f"Supplier item {supplier_item_id} not found")

            record_audit(
                actor_id=actor_id,
                action="UNLINK_SUPPLIER_ITEM",
                entity_type="Supplier",
                entity_id=link.supplier_id,
                details={
                    "supplier_item_id": link.id,
                    "inventory_item_id": link.inventory_item_id,
                },
            )
            db.session.delete(link)
            return None

    return capture(lambda: run_with_retry(_op))


def list_supplier_items(supplier_id: int | None = None, inventory_item_id: int | None = None) -> list[SupplierItem]:
    """Preferred links first, then by id."""
    query = SupplierItem.query
    if supplier_id is not None:
        query = query.filter_by(supplier_id=supplier_id)
    if inventory_item_id is not None:
        query = query.filter_by(inventory_item_id=inventory_item_id)
    return query.order_by(SupplierItem.is_preferred.desc(), SupplierItem.id.asc()).all()
