# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/retail_erp/services/inventory_service.py

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..errors import InsufficientStockError, NoInventoryRecordError, NotFoundError
from ..models import Inventory, InventoryMovement, Product
from ..time_utils import utcnow
from ..validation import ValidationError
from .concurrency import begin_write_transaction
"""
Inventory Invariants (authoritative)

Stored quantities:
- quantity is on-hand; available_qty = quantity - reserved_qty, stored and
  changed in the same UPDATE as quantity (never computed on read).
- available_qty >= 0 and available_qty <= quantity, always. Both are also
  enforced by CHECK constraints.

Decrements:
- Every decrease is a single conditional UPDATE ... WHERE available_qty >= :qty.
  Zero affected rows means a concurrent writer got there first; the caller
  sees InsufficientStockError and its transaction aborts.
- check_availability() is a fast-fail read only. It never replaces the
  conditional update at write time.

Audit:
- Each quantity change appends an InventoryMovement in the same DB transaction.
"""

ADJUSTMENT_TYPES = ("ADD", "SUBTRACT", "DAMAGE")


def _inventory_query(product_id: int, warehouse_id: int | None):
    query = db.session.query(Inventory).filter(Inventory.product_id == product_id)
    if warehouse_id is None:
        query = query.filter(Inventory.warehouse_id.is_(None))
    else:
        query = query.filter(Inventory.warehouse_id == warehouse_id)
    return query


def get_inventory(product_id: int, *, warehouse_id: int | None = None) -> Inventory | None:
    """Fresh read of the inventory row (bypasses stale identity-map state)."""
    return _inventory_query(product_id, warehouse_id).populate_existing().first()


def _reload(inventory_id: int) -> Inventory | None:
    return db.session.query(Inventory).filter(Inventory.id == inventory_id).populate_existing().first()


def get_sellable_inventory(product_id: int, *, warehouse_id: int | None = None) -> Inventory | None:
    """
    Row a sale draws from.

    With a warehouse the row must match it exactly. Without one, any row of
    the product qualifies and the one holding the most available stock wins,
    so stock received into a warehouse is still sellable at the POS.
    """
    if warehouse_id is not None:
        return get_inventory(product_id, warehouse_id=warehouse_id)
    return (
        db.session.query(Inventory)
        .filter(Inventory.product_id == product_id)
        .order_by(Inventory.available_qty.desc(), Inventory.id.asc())
        .populate_existing()
        .first()
    )


def check_availability(
    product_id: int,
    requested_qty: int,
    *,
    warehouse_id: int | None = None,
    product_name: str | None = None,
) -> Inventory:
    """
    Verify sellable stock for a product.

    Raises NoInventoryRecordError when the product is not stocked, and
    InsufficientStockError (carrying the current available_qty) on shortfall.
    """
    inventory = get_sellable_inventory(product_id, warehouse_id=warehouse_id)
    if inventory is None:
        raise NoInventoryRecordError(product_id, product_name)

    if inventory.available_qty < requested_qty:
        raise InsufficientStockError(
            product_id,
            available=inventory.available_qty,
            requested=requested_qty,
            product_name=product_name,
        )
    return inventory


def _conditional_decrement(inventory_id: int, qty: int) -> bool:
    stmt = (
        update(Inventory)
        .where(Inventory.id == inventory_id, Inventory.available_qty >= qty)
        .values(
            quantity=Inventory.quantity - qty,
            available_qty=Inventory.available_qty - qty,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def _record_movement(
    inventory: Inventory,
    movement_type: str,
    delta: int,
    *,
    reference_type: str | None = None,
    reference_id: str | None = None,
    reason: str | None = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        inventory_id=inventory.id,
        product_id=inventory.product_id,
        warehouse_id=inventory.warehouse_id,
        movement_type=movement_type,
        quantity=delta,
        before_qty=inventory.quantity - delta,
        after_qty=inventory.quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        reason=reason,
    )
    db.session.add(movement)
    return movement


def decrement(
    product_id: int,
    qty: int,
    *,
    warehouse_id: int | None = None,
    product_name: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
) -> Inventory:
    """
    Sell `qty` units inside the caller's transaction.

    Does NOT commit. Re-validates availability at write time with a
    conditional UPDATE; on zero affected rows raises InsufficientStockError
    and the caller must roll back.
    """
    if qty <= 0:
        raise ValidationError("quantity must be > 0")

    inventory = get_sellable_inventory(product_id, warehouse_id=warehouse_id)
    if inventory is None:
        raise NoInventoryRecordError(product_id, product_name)

    if not _conditional_decrement(inventory.id, qty):
        current = _reload(inventory.id)
        raise InsufficientStockError(
            product_id,
            available=current.available_qty if current else 0,
            requested=qty,
            product_name=product_name,
        )

    inventory = _reload(inventory.id)
    _record_movement(
        inventory,
        "SALE",
        -qty,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.session.flush()
    return inventory


def receive(
    product_id: int,
    qty: int,
    *,
    warehouse_id: int | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    reason: str | None = None,
) -> Inventory:
    """
    Receive stock; creates the inventory row on first receipt.

    Increments are atomic column updates, so concurrent receipts and sales
    never overwrite each other.
    """
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValidationError("quantity must be a positive integer", errors={"quantity": ["quantity must be > 0"]})

    try:
        begin_write_transaction()
        if db.session.get(Product, product_id) is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        inventory = get_inventory(product_id, warehouse_id=warehouse_id)
        if inventory is None:
            inventory = Inventory(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=0,
                reserved_qty=0,
                available_qty=0,
                updated_at=utcnow(),
            )
            db.session.add(inventory)
            db.session.flush()

        db.session.execute(
            update(Inventory)
            .where(Inventory.id == inventory.id)
            .values(
                quantity=Inventory.quantity + qty,
                available_qty=Inventory.available_qty + qty,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        inventory = get_inventory(product_id, warehouse_id=warehouse_id)
        _record_movement(
            inventory,
            "RECEIVE",
            qty,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
        )
        db.session.commit()
        return inventory
    except Exception:
        db.session.rollback()
        raise


def adjust(
    product_id: int,
    adjustment_type: str,
    qty: int,
    *,
    warehouse_id: int | None = None,
    reason: str | None = None,
) -> Inventory:
    """
    Manual stock adjustment.

    ADD increases on-hand; SUBTRACT and DAMAGE decrease it through the same
    conditional update as sales, so an adjustment can never drive stock
    negative.
    """
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError(
            "Validation failed",
            errors={"type": [f"type must be one of {', '.join(ADJUSTMENT_TYPES)}"]},
        )
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValidationError("Validation failed", errors={"quantity": ["quantity must be a positive integer"]})

    try:
        begin_write_transaction()
        inventory = get_inventory(product_id, warehouse_id=warehouse_id)
        if inventory is None:
            raise NoInventoryRecordError(product_id)

        if adjustment_type == "ADD":
            delta = qty
            db.session.execute(
                update(Inventory)
                .where(Inventory.id == inventory.id)
                .values(
                    quantity=Inventory.quantity + qty,
                    available_qty=Inventory.available_qty + qty,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
        else:
            delta = -qty
            if not _conditional_decrement(inventory.id, qty):
                raise InsufficientStockError(
                    product_id,
                    available=get_inventory(product_id, warehouse_id=warehouse_id).available_qty,
                    requested=qty,
                )

        inventory = get_inventory(product_id, warehouse_id=warehouse_id)
        _record_movement(
            inventory,
            "ADJUST",
            delta,
            reference_type="ADJUSTMENT",
            reference_id=adjustment_type,
            reason=reason,
        )
        db.session.commit()
        return inventory
    except Exception:
        db.session.rollback()
        raise


def list_low_stock(*, limit: int = 100, offset: int = 0) -> tuple[list[Inventory], int]:
    """Inventory rows whose available quantity is at or below safety stock."""
    query = db.session.query(Inventory).filter(Inventory.available_qty <= Inventory.safety_stock)
    total = query.count()

    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    rows = query.order_by(Inventory.available_qty.asc(), Inventory.id.asc()).offset(offset).limit(limit).all()
    return rows, total


def list_movements(product_id: int, *, limit: int = 100) -> list[InventoryMovement]:
    return (
        db.session.query(InventoryMovement)
        .filter_by(product_id=product_id)
        .order_by(InventoryMovement.id.desc())
        .limit(limit)
        .all()
    )
