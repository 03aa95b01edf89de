from __future__ import annotations

from ..extensions import db
from larder.quantities import decimal_str
from larder.time_utils import to_utc_z

# Column types shared by every stock/cost-bearing table
QUANTITY = db.Numeric(14, 3)
UNIT_COST = db.Numeric(12, 4)
MONEY = db.Numeric(12, 2)


class InventoryItem(db.Model):
    """
    Stock-keeping item (an ingredient, a bottle, a case of napkins).

    unit_cost is the item's reference cost. It changes on manual edits and
    whenever a purchase order line is received at a different cost; every
    change is recorded in PriceHistory.

    gl_code is an opaque accounting label; it is never validated here.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_location_name", "location_id", "name"),
        db.Index("ix_inventory_items_sku", "sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    # Counting unit: EACH, KG, L, CASE, ...
    unit = db.Column(db.String(16), nullable=False, default="EACH")
    unit_cost = db.Column(UNIT_COST, nullable=False, default=0)

    # Par level: at or below this the item is low on stock
    par_level = db.Column(QUANTITY, nullable=False, default=0)
    max_level = db.Column(QUANTITY, nullable=True)

    gl_code = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Home location (where the item is created and counted by default)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    location = db.relationship("Location", backref=db.backref("inventory_items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} unit_cost={self.unit_cost}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "description": self.description,
            "unit": self.unit,
            "unit_cost": decimal_str(self.unit_cost),
            "par_level": decimal_str(self.par_level),
            "max_level": decimal_str(self.max_level),
            "gl_code": self.gl_code,
            "notes": self.notes,
            "location_id": self.location_id,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLevel(db.Model):
    """
    On-hand quantity for one (item, location) pair.

    INVARIANT: quantity >= 0, enforced by the stock ledger on every write and
    backed by a CHECK constraint.

    Rows are created lazily on the first stock-affecting event (upsert) and
    are never deleted while the item exists. version_id turns a lost update
    between two concurrent writers into a StaleDataError.
    """
    __tablename__ = "stock_levels"
    __table_args__ = (
        db.UniqueConstraint("inventory_item_id", "location_id", name="uq_stock_levels_item_location"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_levels_quantity_nonnegative"),
        db.Index("ix_stock_levels_location", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    quantity = db.Column(QUANTITY, nullable=False, default=0)

    # Provenance of the latest change
    last_counted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_counted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    inventory_item = db.relationship(
        "InventoryItem",
        backref=db.backref("stock_levels", lazy=True, cascade="all, delete-orphan"),
    )
    location = db.relationship("Location")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<StockLevel item={self.inventory_item_id} location={self.location_id} "
            f"quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "location_id": self.location_id,
            "quantity": decimal_str(self.quantity),
            "last_counted_at": to_utc_z(self.last_counted_at),
            "last_counted_by": self.last_counted_by,
            "version_id": self.version_id,
        }


class PriceHistory(db.Model):
    """
    Immutable record of a change to an item's reference unit cost.

    source: EDIT (manual item update) or RECEIVING (cost drift on a received
    purchase order line).
    """
    __tablename__ = "price_history"
    __table_args__ = (
        db.Index("ix_price_history_item_changed", "inventory_item_id", "changed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    old_price = db.Column(UNIT_COST, nullable=False)
    new_price = db.Column(UNIT_COST, nullable=False)
    source = db.Column(db.String(16), nullable=False, default="EDIT")

    changed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    inventory_item = db.relationship("InventoryItem", backref=db.backref("price_history", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "old_price": decimal_str(self.old_price),
            "new_price": decimal_str(self.new_price),
            "source": self.source,
            "changed_by_user_id": self.changed_by_user_id,
            "changed_at": to_utc_z(self.changed_at),
        }


class WasteLog(db.Model):
    """
    Immutable waste event.

    unit_cost is a snapshot of the item's reference cost at log time, so later
    price changes never rewrite the cost of past waste.
    """
    __tablename__ = "waste_logs"
    __table_args__ = (
        db.Index("ix_waste_logs_location_wasted", "location_id", "wasted_at"),
        db.Index("ix_waste_logs_item", "inventory_item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    quantity = db.Column(QUANTITY, nullable=False)
    unit_cost = db.Column(UNIT_COST, nullable=False)
    total_cost = db.Column(MONEY, nullable=False)

    # EXPIRED, SPOILED, DAMAGED, OVERPRODUCTION, CONTAMINATED, PREP_WASTE, CUSTOMER_RETURN, OTHER
    reason = db.Column(db.String(32), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    logged_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    wasted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    inventory_item = db.relationship("InventoryItem", backref=db.backref("waste_logs", lazy=True))
    location = db.relationship("Location")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "location_id": self.location_id,
            "quantity": decimal_str(self.quantity),
            "unit_cost": decimal_str(self.unit_cost),
            "total_cost": decimal_str(self.total_cost),
            "reason": self.reason,
            "notes": self.notes,
            "logged_by_user_id": self.logged_by_user_id,
            "wasted_at": to_utc_z(self.wasted_at),
        }
