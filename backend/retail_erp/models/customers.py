from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Member master data with loyalty aggregates.

    Denormalized aggregates (total_points, available_points, total_spent,
    order_count) are only ever changed with atomic column increments, never
    read-modify-write, so concurrent orders for one member cannot lose
    updates.

    INVARIANT: available_points <= total_points
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("available_points <= total_points", name="ck_customers_points_le_total"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    total_points = db.Column(db.Integer, nullable=False, default=0)
    available_points = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    order_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "phone": self.phone,
            "is_active": self.is_active,
            "total_points": self.total_points,
            "available_points": self.available_points,
            "total_spent": money_str(self.total_spent),
            "order_count": self.order_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PointsLog(db.Model):
    """
    Append-only ledger of loyalty point events.

    TRANSACTION TYPES:
    - EARN: Points earned from an order
    - SPEND: Points redeemed
    - EXPIRE: Points expired per policy

    balance is the customer's available_points after applying this entry.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "points_logs"
    __table_args__ = (
        db.Index("ix_points_logs_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)  # EARN, SPEND, EXPIRE
    points = db.Column(db.Integer, nullable=False)
    balance = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("points_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "order_id": self.order_id,
            "type": self.type,
            "points": self.points,
            "balance": self.balance,
            "description": self.description,
            "expiry_date": to_utc_z(self.expiry_date),
            "created_at": to_utc_z(self.created_at),
        }
