import pytest

from retail_erp.errors import InsufficientStockError, NoInventoryRecordError, NotFoundError
from retail_erp.models import InventoryMovement, Product
from retail_erp.services import inventory_service
from retail_erp.validation import ValidationError


def test_check_availability_passes_with_enough_stock(db_session, products):
    p1, _ = products
    inventory = inventory_service.check_availability(p1.id, 10)
    assert inventory.available_qty == 10


def test_check_availability_reports_current_stock(db_session, products):
    p1, _ = products
    with pytest.raises(InsufficientStockError) as exc:
        inventory_service.check_availability(p1.id, 11, product_name=p1.name)

    assert exc.value.available == 10
    assert exc.value.message == "Insufficient stock for product Green Tea, available: 10"
    assert exc.value.details == {"product_id": p1.id, "available": 10, "requested": 11}


def test_check_availability_without_inventory_row(db_session):
    product = Product(sku="NEW-1", name="Unstocked")
    db_session.add(product)
    db_session.commit()

    with pytest.raises(NoInventoryRecordError):
        inventory_service.check_availability(product.id, 1)


def test_decrement_updates_quantities_and_records_movement(db_session, products):
    p1, _ = products
    inventory_service.decrement(p1.id, 3, reference_type="ORDER", reference_id="ORD202401150001")
    db_session.commit()

    inventory = inventory_service.get_inventory(p1.id)
    assert (inventory.quantity, inventory.available_qty) == (7, 7)

    movement = db_session.query(InventoryMovement).filter_by(product_id=p1.id).one()
    assert movement.movement_type == "SALE"
    assert (movement.quantity, movement.before_qty, movement.after_qty) == (-3, 10, 7)
    assert movement.reference_id == "ORD202401150001"


def test_decrement_never_goes_negative(db_session, products):
    _, p2 = products
    with pytest.raises(InsufficientStockError) as exc:
        inventory_service.decrement(p2.id, 6)
    db_session.rollback()

    assert exc.value.available == 5
    assert inventory_service.get_inventory(p2.id).available_qty == 5


def test_decrement_rejects_non_positive_quantity(db_session, products):
    p1, _ = products
    with pytest.raises(ValidationError):
        inventory_service.decrement(p1.id, 0)


def test_receive_creates_row_on_first_receipt(db_session):
    product = Product(sku="NEW-2", name="Fresh arrival")
    db_session.add(product)
    db_session.commit()

    inventory = inventory_service.receive(product.id, 12, reason="Initial stock")

    assert (inventory.quantity, inventory.available_qty) == (12, 12)
    movement = db_session.query(InventoryMovement).filter_by(product_id=product.id).one()
    assert (movement.movement_type, movement.before_qty, movement.after_qty) == ("RECEIVE", 0, 12)


def test_receive_adds_to_existing_stock(db_session, products):
    p1, _ = products
    inventory = inventory_service.receive(p1.id, 5)
    assert (inventory.quantity, inventory.available_qty) == (15, 15)


def test_receive_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        inventory_service.receive(424242, 1)


@pytest.mark.parametrize("qty", [0, -1, True, 2.5, None])
def test_receive_rejects_bad_quantity(db_session, products, qty):
    p1, _ = products
    with pytest.raises(ValidationError):
        inventory_service.receive(p1.id, qty)


def test_adjust_add_and_subtract(db_session, products):
    p1, _ = products
    assert inventory_service.adjust(p1.id, "ADD", 4, reason="Count correction").available_qty == 14
    assert inventory_service.adjust(p1.id, "DAMAGE", 2, reason="Broken seal").available_qty == 12

    movements = (
        db_session.query(InventoryMovement)
        .filter_by(product_id=p1.id)
        .order_by(InventoryMovement.id)
        .all()
    )
    assert [(m.movement_type, m.quantity, m.reference_id) for m in movements] == [
        ("ADJUST", 4, "ADD"),
        ("ADJUST", -2, "DAMAGE"),
    ]


def test_adjust_subtract_cannot_oversell(db_session, products):
    _, p2 = products
    with pytest.raises(InsufficientStockError):
        inventory_service.adjust(p2.id, "SUBTRACT", 6)

    assert inventory_service.get_inventory(p2.id).available_qty == 5
    assert db_session.query(InventoryMovement).count() == 0


def test_adjust_rejects_unknown_type(db_session, products):
    p1, _ = products
    with pytest.raises(ValidationError) as exc:
        inventory_service.adjust(p1.id, "STEAL", 1)
    assert "type" in exc.value.errors


def test_low_stock_lists_rows_at_or_below_safety_stock(db_session, products):
    _, p2 = products
    rows, total = inventory_service.list_low_stock()

    assert total == 1
    assert [row.product_id for row in rows] == [p2.id]


def test_list_movements_newest_first(db_session, products):
    p1, _ = products
    inventory_service.receive(p1.id, 1)
    inventory_service.receive(p1.id, 2)

    movements = inventory_service.list_movements(p1.id)
    assert [m.quantity for m in movements] == [2, 1]


def test_sale_without_warehouse_draws_from_warehoused_row(db_session):
    product = Product(sku="WH-2", name="Warehoused")
    db_session.add(product)
    db_session.commit()
    inventory_service.receive(product.id, 4, warehouse_id=1)
    inventory_service.receive(product.id, 9, warehouse_id=2)

    assert inventory_service.check_availability(product.id, 9).warehouse_id == 2

    inventory_service.decrement(product.id, 3, reference_type="ORDER", reference_id="ORD-X")
    db_session.commit()

    assert inventory_service.get_inventory(product.id, warehouse_id=2).available_qty == 6
    assert inventory_service.get_inventory(product.id, warehouse_id=1).available_qty == 4
    sale = db_session.query(InventoryMovement).filter_by(movement_type="SALE").one()
    assert (sale.warehouse_id, sale.before_qty, sale.after_qty) == (2, 9, 6)


def test_sale_with_warehouse_matches_exactly(db_session):
    product = Product(sku="WH-3", name="Warehoused")
    db_session.add(product)
    db_session.commit()
    inventory_service.receive(product.id, 4, warehouse_id=1)

    with pytest.raises(NoInventoryRecordError):
        inventory_service.check_availability(product.id, 1, warehouse_id=2)
