"""
Threaded concurrency checks against a file-backed SQLite database.

An in-memory database shares one connection across threads, so these tests
use a temporary file to get real lock contention between writers.
"""
import os
import tempfile
import threading
import unittest
from datetime import datetime

from retail_erp import create_app
from retail_erp.extensions import db
from retail_erp.models import Customer, Inventory, NumberingRule, Order, PaymentMethod, PointsLog, Product
from retail_erp.services import inventory_service, numbering_service, order_service

WORKDAY = datetime(2024, 1, 15, 10, 0)


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            db.session.add(NumberingRule(
                code="ORDER",
                name="Sales order",
                prefix="ORD",
                date_format="YYYYMMDD",
                sequence_length=4,
                reset_period="DAILY",
                current_sequence=0,
                is_active=True,
            ))
            method = PaymentMethod(code="CASH", name="Cash", is_active=True)
            product = Product(sku="CONCUR-1", name="Concurrent Product", selling_price=10)
            customer = Customer(code="C000001", name="Regular", is_active=True)
            db.session.add_all([method, product, customer])
            db.session.commit()
            self.method_id = method.id
            self.product_id = product.id
            self.customer_id = customer.id

            inventory_service.receive(self.product_id, 10, reason="Seed inventory")

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, target, count):
        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    outcome = target()
                    with lock:
                        results.append(outcome)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_document_sequence_concurrency(self):
        results = self._run_threads(lambda: numbering_service.generate_next("ORDER", now=WORKDAY), 50)

        errors = [r for r in results if isinstance(r, Exception)]
        self.assertFalse(errors)
        self.assertEqual(len(results), len(set(results)))

        sequences = sorted(int(number[-4:]) for number in results)
        self.assertEqual(sequences, list(range(1, 51)))

        with self.app.app_context():
            rule = db.session.query(NumberingRule).filter_by(code="ORDER").one()
            self.assertEqual(rule.current_sequence, 50)

    def test_concurrent_orders_never_oversell(self):
        payload = {
            "items": [{
                "product_id": self.product_id,
                "product_name": "Concurrent Product",
                "product_sku": "CONCUR-1",
                "quantity": 3,
                "unit_price": "10",
            }],
            "payments": [{"payment_method_id": self.method_id, "amount": "100"}],
        }

        results = self._run_threads(lambda: order_service.create_order(payload), 6)

        self.assertFalse([r for r in results if isinstance(r, Exception)])
        succeeded = [r for r in results if r.success]
        failed = [r for r in results if not r.success]
        self.assertEqual(len(succeeded), 3)
        for result in failed:
            self.assertIn("Insufficient stock", result.message)

        order_numbers = [r.data["order_no"] for r in succeeded]
        self.assertEqual(len(order_numbers), len(set(order_numbers)))

        with self.app.app_context():
            inventory = db.session.query(Inventory).filter_by(product_id=self.product_id).one()
            self.assertEqual(inventory.available_qty, 1)
            self.assertEqual(inventory.quantity, 1)
            self.assertEqual(db.session.query(Order).count(), 3)
            rule = db.session.query(NumberingRule).filter_by(code="ORDER").one()
            self.assertEqual(rule.current_sequence, 3)

    def test_concurrent_member_orders_keep_every_points_update(self):
        payload = {
            "items": [{
                "product_id": self.product_id,
                "product_name": "Concurrent Product",
                "product_sku": "CONCUR-1",
                "quantity": 1,
                "unit_price": "100",
            }],
            "payments": [{"payment_method_id": self.method_id, "amount": "105"}],
            "customer_id": self.customer_id,
        }

        results = self._run_threads(lambda: order_service.create_order(payload), 5)

        self.assertFalse([r for r in results if isinstance(r, Exception)])
        self.assertTrue(all(r.success for r in results), [r.to_dict() for r in results])

        with self.app.app_context():
            customer = db.session.get(Customer, self.customer_id)
            # 105.00 per order earns 10 points
            self.assertEqual(customer.available_points, 50)
            self.assertEqual(customer.total_points, 50)
            self.assertEqual(customer.order_count, 5)
            self.assertEqual(str(customer.total_spent), "525.00")

            balances = sorted(log.balance for log in db.session.query(PointsLog).all())
            self.assertEqual(balances, [10, 20, 30, 40, 50])


if __name__ == "__main__":
    unittest.main()
