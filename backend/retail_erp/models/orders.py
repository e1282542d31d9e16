from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z

ORDER_STATUSES = ("PENDING", "CONFIRMED", "COMPLETED", "CANCELLED")
PAYMENT_STATUSES = ("UNPAID", "PARTIAL", "PAID")


class Order(db.Model):
    """
    One completed checkout.

    Created atomically with its items and payments by
    order_service.create_order. The POS fast path writes COMPLETED/PAID
    directly; there are no persisted intermediate states.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_date", "status", "order_date"),
        db.CheckConstraint("subtotal >= 0", name="ck_orders_subtotal_non_negative"),
        db.CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
        db.CheckConstraint("change_amount >= 0", name="ck_orders_change_non_negative"),
        db.CheckConstraint("earned_points >= 0", name="ck_orders_points_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "ORD202401150001")
    order_no = db.Column(db.String(64), nullable=False, unique=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    change_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    earned_points = db.Column(db.Integer, nullable=False, default=0)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    # Promotions are managed elsewhere; kept as a plain reference
    promotion_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship("OrderItem", backref="order", lazy=True, order_by="OrderItem.id")
    payments = db.relationship("Payment", backref="order", lazy=True, order_by="Payment.id")

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_no": self.order_no,
            "status": self.status,
            "payment_status": self.payment_status,
            "subtotal": money_str(self.subtotal),
            "tax_amount": money_str(self.tax_amount),
            "total_amount": money_str(self.total_amount),
            "paid_amount": money_str(self.paid_amount),
            "change_amount": money_str(self.change_amount),
            "earned_points": self.earned_points,
            "customer_id": self.customer_id,
            "promotion_id": self.promotion_id,
            "notes": self.notes,
            "order_date": to_utc_z(self.order_date),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class OrderItem(db.Model):
    """Line item with a product snapshot taken at sale time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_order_items_price_non_negative"),
        db.CheckConstraint("discount >= 0", name="ck_order_items_discount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "discount": money_str(self.discount),
            "subtotal": money_str(self.subtotal),
        }


class Payment(db.Model):
    """
    Tender recorded against an order.

    Split tender is one row per payment method.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)  # COMPLETED, VOIDED
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    payment_method = db.relationship("PaymentMethod")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "payment_method_id": self.payment_method_id,
            "amount": money_str(self.amount),
            "status": self.status,
            "paid_at": to_utc_z(self.paid_at),
        }
