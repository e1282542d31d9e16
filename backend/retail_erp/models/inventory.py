from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Inventory(db.Model):
    """
    Stock record for one product (optionally per warehouse).

    INVARIANTS:
    - available_qty >= 0
    - available_qty <= quantity
    - available_qty is stored, not derived on read; every statement that
      changes quantity changes available_qty in the same UPDATE.

    WHY stored: the conditional decrement (WHERE available_qty >= :qty) needs
    a column to compare against in a single atomic statement.
    """
    __tablename__ = "inventories"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_inventories_product_warehouse"),
        db.CheckConstraint("available_qty >= 0", name="ck_inventories_available_non_negative"),
        db.CheckConstraint("available_qty <= quantity", name="ck_inventories_available_le_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    # Warehouses are external master data; kept as a plain reference
    warehouse_id = db.Column(db.Integer, nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    reserved_qty = db.Column(db.Integer, nullable=False, default=0)
    available_qty = db.Column(db.Integer, nullable=False, default=0)
    safety_stock = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventories", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "reserved_qty": self.reserved_qty,
            "available_qty": self.available_qty,
            "safety_stock": self.safety_stock,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only ledger of stock changes.

    MOVEMENT TYPES:
    - SALE: Sold through an order (negative)
    - RECEIVE: Goods received (positive)
    - ADJUST: Manual ADD / SUBTRACT / DAMAGE

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_product_created", "product_id", "created_at"),
        db.Index("ix_inventory_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventories.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, nullable=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)  # SALE, RECEIVE, ADJUST
    quantity = db.Column(db.Integer, nullable=False)  # Signed
    before_qty = db.Column(db.Integer, nullable=False)
    after_qty = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "before_qty": self.before_qty,
            "after_qty": self.after_qty,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
