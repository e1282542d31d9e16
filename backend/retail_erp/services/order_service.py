"""
Order Service - point-of-sale checkout as one unit of work

WHY: A checkout touches four shared resources (numbering counter, inventory,
payments, member aggregates). They either all change together or none do.

Flow:
    validate request -> pre-check stock -> compute totals -> verify payment
    -> BEGIN -> order number -> order + items -> conditional decrements
    -> payments -> points (if member) -> COMMIT -> invalidate views, audit

Business failures come back as an OrderResult, never as exceptions, so
calling code only handles genuinely unexpected faults. Those are logged here
and reported with an opaque message.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..events import notify_resources_changed
from ..extensions import db
from ..errors import (
    BusinessRuleError,
    InsufficientPaymentError,
    InsufficientStockError,
    NoInventoryRecordError,
    NotFoundError,
    TransactionFailedError,
)
from ..models import Customer, Order, OrderItem, Payment, PaymentMethod
from ..money import ZERO, money_str, round_money, to_decimal
from ..time_utils import utcnow
from ..validation import OrderItemInput, OrderRequest, PaymentInput, ValidationError, parse_order_request
from . import audit_service, inventory_service, loyalty_service, numbering_service
from .concurrency import begin_write_transaction

DEFAULT_TAX_RATE = Decimal("0.05")
AFFECTED_VIEWS = ("orders", "inventory", "pos")
GENERIC_FAILURE_MESSAGE = "Failed to create order"


@dataclass(frozen=True)
class OrderAmounts:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


@dataclass
class OrderResult:
    """Discriminated result: success=False always carries a message."""
    success: bool
    message: str
    data: dict | None = None
    errors: dict[str, list[str]] | None = None
    details: dict | None = None
    # Set for unexpected faults (HTTP 500); never serialized
    infrastructure_error: bool = False

    def to_dict(self) -> dict:
        out = {"success": self.success, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        if self.errors:
            out["errors"] = self.errors
        if self.details:
            out["details"] = self.details
        return out


def configured_tax_rate() -> Decimal:
    value = current_app.config.get("TAX_RATE")
    if value is None or value == "":
        return DEFAULT_TAX_RATE
    return to_decimal(value)


def compute_amounts(items: list[OrderItemInput], tax_rate=None) -> OrderAmounts:
    """
    subtotal = sum(quantity * unit_price - discount)
    tax      = round(subtotal * tax_rate, 2), half-up
    total    = subtotal + tax
    """
    rate = DEFAULT_TAX_RATE if tax_rate is None else to_decimal(tax_rate)
    subtotal = round_money(sum((item.subtotal for item in items), ZERO))
    tax_amount = round_money(subtotal * rate)
    return OrderAmounts(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=round_money(subtotal + tax_amount),
    )


def settle_payments(total_amount: Decimal, payments: list[PaymentInput]) -> tuple[Decimal, Decimal]:
    """Return (paid, change); raise InsufficientPaymentError on shortfall."""
    paid = round_money(sum((p.amount for p in payments), ZERO))
    if paid < total_amount:
        raise InsufficientPaymentError(required=total_amount, received=paid)
    return paid, max(paid - total_amount, ZERO)


def _precheck_stock(items: list[OrderItemInput]) -> None:
    """
    Fast-fail read outside the transaction.

    Quantities are aggregated per product so two lines of the same product
    are checked against the combined request. The in-transaction conditional
    decrement remains the authoritative check.
    """
    requested: dict[int, int] = {}
    names: dict[int, str] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
        names.setdefault(item.product_id, item.product_name)

    for product_id, qty in requested.items():
        inventory_service.check_availability(product_id, qty, product_name=names[product_id])


def _validate_references(request: OrderRequest) -> None:
    method_ids = {p.payment_method_id for p in request.payments}
    active_ids = {
        row.id
        for row in db.session.query(PaymentMethod.id)
        .filter(PaymentMethod.id.in_(method_ids), PaymentMethod.is_active.is_(True))
        .all()
    }
    missing = sorted(method_ids - active_ids)
    if missing:
        raise NotFoundError(
            "Payment method not found or inactive",
            details={"payment_method_ids": missing},
        )

    if request.customer_id is not None:
        customer = db.session.get(Customer, request.customer_id)
        if customer is None or not customer.is_active:
            raise NotFoundError("Customer not found", details={"customer_id": request.customer_id})


def _write_order(request: OrderRequest, amounts: OrderAmounts, paid: Decimal, change: Decimal) -> Order:
    """Steps inside the transaction. Does NOT commit."""
    now = utcnow()
    order_no = numbering_service.generate_next(
        current_app.config.get("ORDER_NUMBERING_RULE") or numbering_service.NumberingRuleCodes.ORDER,
        commit=False,
    )

    order = Order(
        order_no=order_no,
        status="COMPLETED",
        payment_status="PAID",
        subtotal=amounts.subtotal,
        tax_amount=amounts.tax_amount,
        total_amount=amounts.total_amount,
        paid_amount=paid,
        change_amount=change,
        earned_points=0,
        customer_id=request.customer_id,
        promotion_id=request.promotion_id,
        notes=request.notes,
        order_date=now,
    )
    db.session.add(order)
    db.session.flush()

    for item in request.items:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=item.product_id,
            product_name=item.product_name,
            product_sku=item.product_sku,
            quantity=item.quantity,
            unit_price=item.unit_price,
            discount=item.discount,
            subtotal=round_money(item.subtotal),
        ))
        inventory_service.decrement(
            item.product_id,
            item.quantity,
            product_name=item.product_name,
            reference_type="ORDER",
            reference_id=order_no,
        )

    for tender in request.payments:
        db.session.add(Payment(
            order_id=order.id,
            payment_method_id=tender.payment_method_id,
            amount=tender.amount,
            status="COMPLETED",
            paid_at=now,
        ))

    if request.customer_id is not None:
        loyalty_service.earn_points(request.customer_id, order)

    db.session.flush()
    return order


def _commit_order(request: OrderRequest, amounts: OrderAmounts, paid: Decimal, change: Decimal) -> tuple[int, str]:
    """Run the write steps and commit. Returns (order_id, order_no)."""
    try:
        begin_write_transaction()
        order = _write_order(request, amounts, paid, change)
        # Captured before commit expires the instance
        order_id, order_no = order.id, order.order_no
        db.session.commit()
        return order_id, order_no
    except BusinessRuleError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise TransactionFailedError("Order transaction failed") from exc


def _business_failure(exc: BusinessRuleError) -> OrderResult:
    if isinstance(exc, (InsufficientStockError, NoInventoryRecordError)):
        field = "items"
    elif isinstance(exc, InsufficientPaymentError):
        field = "payments"
    else:
        field = None
    return OrderResult(
        success=False,
        message=exc.message,
        errors={field: [exc.message]} if field else None,
        details=exc.details,
    )


def _after_commit(order_id: int, order_no: str, total_amount: Decimal, customer_id: int | None) -> None:
    notify_resources_changed(*AFFECTED_VIEWS)
    audit_service.record_event(
        event_type="order.completed",
        entity_type="order",
        entity_id=order_id,
        note=f"Order {order_no} completed",
        payload={"order_no": order_no, "total_amount": money_str(total_amount), "customer_id": customer_id},
    )


def create_order(payload) -> OrderResult:
    """
    Create a completed POS order with items, payments, stock decrements and
    loyalty accrual, atomically.

    Accepts a raw JSON-like dict or an already parsed OrderRequest.
    """
    try:
        request = parse_order_request(payload)
    except ValidationError as exc:
        return OrderResult(success=False, message=str(exc), errors=exc.errors or None)

    try:
        _precheck_stock(request.items)
        amounts = compute_amounts(request.items, configured_tax_rate())
        paid, change = settle_payments(amounts.total_amount, request.payments)
        _validate_references(request)
        order_id, order_no = _commit_order(request, amounts, paid, change)
    except BusinessRuleError as exc:
        db.session.rollback()
        return _business_failure(exc)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(GENERIC_FAILURE_MESSAGE)
        return OrderResult(success=False, message=GENERIC_FAILURE_MESSAGE, infrastructure_error=True)

    current_app.logger.info("Order %s created (total %s)", order_no, money_str(amounts.total_amount))
    _after_commit(order_id, order_no, amounts.total_amount, request.customer_id)

    return OrderResult(
        success=True,
        message="Order created",
        data={"order_id": order_id, "order_no": order_no},
    )


# =============================================================================
# Reads
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def _date_filters(query, start_date: datetime | None, end_date: datetime | None):
    if start_date:
        query = query.filter(Order.order_date >= start_date)
    if end_date:
        # A bare date includes the whole day
        if end_date.time() == datetime.min.time():
            end_date = end_date + timedelta(days=1) - timedelta(microseconds=1)
        query = query.filter(Order.order_date <= end_date)
    return query


def list_orders(
    *,
    page: int = 1,
    page_size: int = 10,
    search: str | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    customer_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[list[Order], dict]:
    """
    Paginated order listing, newest first.
    """
    page = max(page, 1)
    page_size = min(max(page_size, 1), 100)

    query = db.session.query(Order)
    if search:
        term = f"%{search.strip()}%"
        query = query.outerjoin(Customer, Customer.id == Order.customer_id).filter(
            or_(
                Order.order_no.ilike(term),
                Customer.name.ilike(term),
                Customer.phone.ilike(term),
            )
        )
    if status:
        query = query.filter(Order.status == status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    if customer_id:
        query = query.filter(Order.customer_id == customer_id)
    query = _date_filters(query, start_date, end_date)

    total = query.count()
    orders = (
        query.order_by(Order.order_date.desc(), Order.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    total_pages = (total + page_size - 1) // page_size
    pagination = {
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }
    return orders, pagination


def get_order_stats(*, start_date: datetime | None = None, end_date: datetime | None = None) -> dict:
    query = _date_filters(
        db.session.query(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0)),
        start_date,
        end_date,
    )
    rows = query.group_by(Order.status).all()

    counts = {status: 0 for status in ("PENDING", "CONFIRMED", "COMPLETED", "CANCELLED")}
    revenue = ZERO
    for status, count, amount in rows:
        counts[status] = int(count)
        if status == "COMPLETED":
            revenue = round_money(amount)

    return {
        "total_orders": sum(counts.values()),
        "completed_orders": counts["COMPLETED"],
        "pending_orders": counts["PENDING"],
        "cancelled_orders": counts["CANCELLED"],
        "total_revenue": money_str(revenue),
    }
