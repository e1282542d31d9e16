from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from .money import ZERO, round_money


class ValidationError(ValueError):
    """400-level input problem, optionally with per-field messages."""
    def __init__(self, message: str = "Validation failed", errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate rule code)."""


@dataclass(frozen=True)
class OrderItemInput:
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    discount: Decimal = ZERO

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity - self.discount


@dataclass(frozen=True)
class PaymentInput:
    payment_method_id: int
    amount: Decimal


@dataclass(frozen=True)
class OrderRequest:
    items: list[OrderItemInput]
    payments: list[PaymentInput]
    customer_id: int | None = None
    promotion_id: int | None = None
    notes: str | None = None


@dataclass
class _Collector:
    errors: dict[str, list[str]] = field(default_factory=dict)

    def add(self, key: str, message: str) -> None:
        self.errors.setdefault(key, []).append(message)


def _int(value: Any, key: str, c: _Collector, *, minimum: int | None = None, required: bool = True) -> int | None:
    if value is None:
        if required:
            c.add(key, f"{key} is required")
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or isinstance(value, float):
        c.add(key, f"{key} must be an integer")
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            c.add(key, f"{key} must be an integer")
            return None
        value = int(stripped)
    if not isinstance(value, int):
        c.add(key, f"{key} must be an integer")
        return None
    if minimum is not None and value < minimum:
        c.add(key, f"{key} must be >= {minimum}")
        return None
    return value


def _amount(value: Any, key: str, c: _Collector, *, positive: bool = False, required: bool = True) -> Decimal | None:
    if value is None:
        if required:
            c.add(key, f"{key} is required")
        return None
    if isinstance(value, bool):
        c.add(key, f"{key} must be a number")
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        c.add(key, f"{key} must be a number")
        return None
    if not amount.is_finite():
        c.add(key, f"{key} must be a number")
        return None
    if positive and amount <= 0:
        c.add(key, f"{key} must be > 0")
        return None
    if amount < 0:
        c.add(key, f"{key} must be >= 0")
        return None
    return round_money(amount)


def _text(value: Any, key: str, c: _Collector, *, max_length: int, required: bool = True) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            c.add(key, f"{key} is required")
        return None
    text = str(value).strip()
    if len(text) > max_length:
        c.add(key, f"{key} exceeds max length {max_length}")
        return None
    return text


def parse_order_request(payload: Any) -> OrderRequest:
    """
    Validate + normalize a checkout payload.

    Collects every field problem before raising so the caller can render all
    of them at once. Keys are dotted paths ("items.1.quantity").
    """
    if isinstance(payload, OrderRequest):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    c = _Collector()

    raw_items = payload.get("items")
    items: list[OrderItemInput] = []
    if not isinstance(raw_items, list) or not raw_items:
        c.add("items", "At least one item is required")
        raw_items = []

    for i, raw in enumerate(raw_items):
        prefix = f"items.{i}"
        if not isinstance(raw, dict):
            c.add(prefix, "Item must be an object")
            continue
        product_id = _int(raw.get("product_id"), f"{prefix}.product_id", c, minimum=1)
        name = _text(raw.get("product_name"), f"{prefix}.product_name", c, max_length=255)
        sku = _text(raw.get("product_sku"), f"{prefix}.product_sku", c, max_length=64)
        quantity = _int(raw.get("quantity"), f"{prefix}.quantity", c, minimum=1)
        unit_price = _amount(raw.get("unit_price"), f"{prefix}.unit_price", c)
        discount = _amount(raw.get("discount"), f"{prefix}.discount", c, required=False)
        if discount is None:
            discount = ZERO

        if None in (product_id, name, sku, quantity, unit_price):
            continue
        if discount > unit_price * quantity:
            c.add(f"{prefix}.discount", "discount cannot exceed the line amount")
            continue

        items.append(OrderItemInput(
            product_id=product_id,
            product_name=name,
            product_sku=sku,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
        ))

    raw_payments = payload.get("payments")
    payments: list[PaymentInput] = []
    if not isinstance(raw_payments, list) or not raw_payments:
        c.add("payments", "At least one payment is required")
        raw_payments = []

    for i, raw in enumerate(raw_payments):
        prefix = f"payments.{i}"
        if not isinstance(raw, dict):
            c.add(prefix, "Payment must be an object")
            continue
        method_id = _int(raw.get("payment_method_id"), f"{prefix}.payment_method_id", c, minimum=1)
        amount = _amount(raw.get("amount"), f"{prefix}.amount", c, positive=True)
        if method_id is None or amount is None:
            continue
        payments.append(PaymentInput(payment_method_id=method_id, amount=amount))

    customer_id = _int(payload.get("customer_id"), "customer_id", c, minimum=1, required=False)
    promotion_id = _int(payload.get("promotion_id"), "promotion_id", c, minimum=1, required=False)
    notes = _text(payload.get("notes"), "notes", c, max_length=1000, required=False)

    if c.errors:
        raise ValidationError("Validation failed", errors=c.errors)

    return OrderRequest(
        items=items,
        payments=payments,
        customer_id=customer_id,
        promotion_id=promotion_id,
        notes=notes,
    )
