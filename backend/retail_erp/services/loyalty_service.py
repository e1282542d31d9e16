# Overview: Service-layer operations for member loyalty points.

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..errors import NotFoundError
from ..models import Customer, Order, PointsLog
from ..money import floor_int, to_decimal
from ..time_utils import utcnow

DEFAULT_POINTS_PER_CURRENCY_UNIT = 10
DEFAULT_POINTS_EXPIRY_DAYS = 365


def _config_int(key: str, default: int) -> int:
    value = current_app.config.get(key)
    if value is None or value == "":
        return default
    return int(value)


def points_per_currency_unit() -> int:
    return _config_int("POINTS_PER_CURRENCY_UNIT", DEFAULT_POINTS_PER_CURRENCY_UNIT)


def points_expiry_days() -> int:
    return _config_int("POINTS_EXPIRY_DAYS", DEFAULT_POINTS_EXPIRY_DAYS)


def points_for_amount(amount, per_unit: int | None = None) -> int:
    """floor(amount / per_unit); 252.00 at 1 point per 10 -> 25."""
    if per_unit is None:
        per_unit = points_per_currency_unit()
    if per_unit <= 0:
        return 0
    points = floor_int(to_decimal(amount) / Decimal(per_unit))
    return max(points, 0)


def earn_points(customer_id: int, order: Order) -> PointsLog:
    """
    Accrue points for a completed order inside the caller's transaction.

    Does NOT commit. Aggregates are bumped with a single atomic UPDATE (no
    read-modify-write), then the post-update balance is read back under the
    row lock that UPDATE holds, and an immutable EARN entry is appended.
    """
    points = points_for_amount(order.total_amount)

    result = db.session.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(
            total_points=Customer.total_points + points,
            available_points=Customer.available_points + points,
            total_spent=Customer.total_spent + to_decimal(order.total_amount),
            order_count=Customer.order_count + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})

    balance = (
        db.session.query(Customer.available_points)
        .filter(Customer.id == customer_id)
        .scalar()
    )

    log = PointsLog(
        customer_id=customer_id,
        order_id=order.id,
        type="EARN",
        points=points,
        balance=balance,
        description=f"Points earned (order {order.order_no})",
        expiry_date=utcnow() + timedelta(days=points_expiry_days()),
    )
    db.session.add(log)

    order.earned_points = points
    db.session.flush()
    return log

