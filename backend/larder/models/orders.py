from __future__ import annotations

from ..extensions import db
from larder.quantities import decimal_str
from larder.time_utils import to_utc_z
from .inventory import QUANTITY, UNIT_COST, MONEY


class PurchaseOrder(db.Model):
    """
    Purchase order placed with a supplier for delivery to one location.

    LIFECYCLE (see services/order_lifecycle.py):
        DRAFT -> SUBMITTED -> APPROVED -> ORDERED -> PARTIALLY_RECEIVED -> RECEIVED
        CANCELLED is reachable from every non-terminal state.

    PARTIALLY_RECEIVED / RECEIVED are normally derived by receiving, not chosen
    by a person.

    order_number (PO-YYYYMMDD-NNNN) is a display label and is NOT unique;
    the integer id is the key.

    Only DRAFT orders may be deleted; everything else is kept for history.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_order_number", "order_number"),
        db.Index("ix_purchase_orders_location_status", "location_id", "status"),
        db.Index("ix_purchase_orders_supplier", "supplier_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)

    status = db.Column(db.String(24), nullable=False, default="DRAFT", index=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    # Flat money fields; tax and shipping are entered, never computed
    subtotal = db.Column(MONEY, nullable=False, default=0)
    tax = db.Column(MONEY, nullable=False, default=0)
    shipping_cost = db.Column(MONEY, nullable=False, default=0)
    total_amount = db.Column(MONEY, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    # User attribution
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    location = db.relationship("Location")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])
    lines = db.relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, *, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "supplier_id": self.supplier_id,
            "location_id": self.location_id,
            "subtotal": decimal_str(self.subtotal),
            "tax": decimal_str(self.tax),
            "shipping_cost": decimal_str(self.shipping_cost),
            "total_amount": decimal_str(self.total_amount),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "expected_date": to_utc_z(self.expected_date),
            "received_date": to_utc_z(self.received_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
            "line_count": len(self.lines),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseOrderLine(db.Model):
    """
    One item on a purchase order.

    quantity_received accumulates across partial receipts and may exceed
    quantity_ordered when the over-receipt policy allows it.
    """
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity_received >= 0", name="ck_po_lines_received_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity_ordered = db.Column(QUANTITY, nullable=False)
    quantity_received = db.Column(QUANTITY, nullable=False, default=0)

    unit_cost = db.Column(UNIT_COST, nullable=False)
    line_total = db.Column(MONEY, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    purchase_order = db.relationship("PurchaseOrder", back_populates="lines")
    inventory_item = db.relationship("InventoryItem")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_quantity(self):
        remaining = self.quantity_ordered - self.quantity_received
        return remaining if remaining > 0 else 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "inventory_item_id": self.inventory_item_id,
            "item_name": self.inventory_item.name if self.inventory_item else None,
            "quantity_ordered": decimal_str(self.quantity_ordered),
            "quantity_received": decimal_str(self.quantity_received),
            "remaining_quantity": decimal_str(self.remaining_quantity),
            "unit_cost": decimal_str(self.unit_cost),
            "line_total": decimal_str(self.line_total),
        }
