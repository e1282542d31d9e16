"""
Pytest fixtures for retail ERP backend tests.

Provides the test database, a test client, and seed rows for checkout.
"""

from decimal import Decimal

import pytest
from retail_erp import create_app
from retail_erp.extensions import db
from retail_erp.models import Customer, Inventory, NumberingRule, PaymentMethod, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TAX_RATE': '0.05',
        'POINTS_PER_CURRENCY_UNIT': 10,
        'BUSINESS_TIMEZONE': 'UTC',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def order_rule(db_session):
    """ORD + YYYYMMDD + 4 digits, reset daily."""
    rule = NumberingRule(
        code="ORDER",
        name="Sales order",
        prefix="ORD",
        date_format="YYYYMMDD",
        sequence_length=4,
        reset_period="DAILY",
        current_sequence=0,
        is_active=True,
    )
    db_session.add(rule)
    db_session.commit()
    return rule


@pytest.fixture(scope='function')
def cash(db_session):
    method = PaymentMethod(code="CASH", name="Cash", is_active=True)
    db_session.add(method)
    db_session.commit()
    return method


@pytest.fixture(scope='function')
def products(db_session):
    """Two stocked products: 10 units of P1 and 5 units of P2."""
    p1 = Product(sku="SKU-001", name="Green Tea", selling_price=Decimal("100.00"))
    p2 = Product(sku="SKU-002", name="Oolong", selling_price=Decimal("50.00"))
    db_session.add_all([p1, p2])
    db_session.flush()

    db_session.add_all([
        Inventory(product_id=p1.id, quantity=10, reserved_qty=0, available_qty=10, safety_stock=2),
        Inventory(product_id=p2.id, quantity=5, reserved_qty=0, available_qty=5, safety_stock=5),
    ])
    db_session.commit()
    return p1, p2


@pytest.fixture(scope='function')
def member(db_session):
    customer = Customer(
        code="C000001",
        name="Lin Mei",
        phone="0912345678",
        is_active=True,
        total_points=100,
        available_points=40,
        total_spent=Decimal("1000.00"),
        order_count=3,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


def checkout_payload(products, cash, *, paid="300", customer_id=None, second_qty=1):
    """Standard two-line basket: 2 x 100 + 1 x 50 less 10 discount."""
    p1, p2 = products
    payload = {
        "items": [
            {"product_id": p1.id, "product_name": p1.name, "product_sku": p1.sku,
             "quantity": 2, "unit_price": "100", "discount": "0"},
            {"product_id": p2.id, "product_name": p2.name, "product_sku": p2.sku,
             "quantity": second_qty, "unit_price": "50", "discount": "10"},
        ],
        "payments": [{"payment_method_id": cash.id, "amount": paid}],
    }
    if customer_id is not None:
        payload["customer_id"] = customer_id
    return payload
