from __future__ import annotations

from ..extensions import db
from larder.quantities import decimal_str
from larder.time_utils import to_utc_z
from .inventory import QUANTITY, UNIT_COST


class Supplier(db.Model):
    """
    Vendor that purchase orders are placed with.

    Deactivated suppliers keep their order history but cannot receive new
    purchase orders.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Contact information
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    lead_time_days = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "lead_time_days": self.lead_time_days,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SupplierItem(db.Model):
    """
    Catalog link between a supplier and an inventory item.

    One link per (supplier, item). At most one link per item is preferred;
    supplier_service keeps that true when a link is marked preferred.
    """
    __tablename__ = "supplier_items"
    __table_args__ = (
        db.UniqueConstraint("supplier_id", "inventory_item_id", name="uq_supplier_items_supplier_item"),
        db.Index("ix_supplier_items_item_preferred", "inventory_item_id", "is_preferred"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)

    supplier_sku = db.Column(db.String(64), nullable=True)
    unit_cost = db.Column(UNIT_COST, nullable=False, default=0)
    min_order_qty = db.Column(QUANTITY, nullable=True)
    is_preferred = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("supplier_items", lazy=True))
    inventory_item = db.relationship("InventoryItem", backref=db.backref("supplier_items", lazy=True))

    def __repr__(self) -> str:
        return f"<SupplierItem supplier={self.supplier_id} item={self.inventory_item_id} preferred={self.is_preferred}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "inventory_item_id": self.inventory_item_id,
            "supplier_sku": self.supplier_sku,
            "unit_cost": decimal_str(self.unit_cost),
            "min_order_qty": decimal_str(self.min_order_qty),
            "is_preferred": self.is_preferred,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
