"""
Concurrency tests for the stock and payment ledgers.

Each worker runs in its own thread and app context (its own session and
connection) against a temporary file database, the way separate request
handlers would hit one shared store.
"""
import os
import tempfile
import threading
import unittest
from decimal import Decimal

from stockline import create_app
from stockline.errors import InsufficientStock
from stockline.extensions import db
from stockline.models import TruckLoad, SALE_STATUS_PAID
from stockline.services import (
    catalog_service,
    delivery_service,
    payment_service,
    sales_service,
    stock_service,
    truck_load_service,
)


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "LEDGER_RETRY_ATTEMPTS": 10,
            "LEDGER_RETRY_BACKOFF": 0.01,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            operator = catalog_service.create_user("Olga", "Operator", "olga@stockline.test", role="manager")
            self.operator_id = operator.id
            driver = catalog_service.create_user("Dev", "Driver", "dev@stockline.test", role="driver")
            self.driver_id = driver.id
            truck = catalog_service.create_truck("TRK-CONC", "Hino 300")
            self.truck_id = truck.id
            shop = catalog_service.create_shop("Race Shop", "3 Lane")
            self.shop_id = shop.id
            product = catalog_service.create_product("Contended", "10.00", "unit")
            self.product_id = product.id

            delivery_service.create_delivery(self.operator_id, "2026-09-10", [(self.product_id, 10)])

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_concurrently(self, *targets):
        results = []
        lock = threading.Lock()

        def wrap(target):
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
            return worker

        threads = [threading.Thread(target=wrap(t)) for t in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def _dispatch(self, quantity):
        def op():
            truck_load_service.create_truck_load(
                self.driver_id, self.truck_id, "2026-09-11", [(self.product_id, quantity)]
            )
            return "dispatched"
        return op

    def test_concurrent_dispatch_cannot_oversell(self):
        results = self._run_concurrently(self._dispatch(6), self._dispatch(6))

        dispatched = [r for r in results if r == "dispatched"]
        rejected = [r for r in results if isinstance(r, InsufficientStock)]
        self.assertEqual(len(dispatched), 1, results)
        self.assertEqual(len(rejected), 1, results)
        self.assertEqual(rejected[0].requested, 6)
        self.assertEqual(rejected[0].available, 4)

        with self.app.app_context():
            self.assertEqual(stock_service.get_quantity_on_hand(self.product_id), 4)
            self.assertEqual(db.session.query(TruckLoad).count(), 1)

    def test_concurrent_dispatch_within_stock_both_succeed(self):
        results = self._run_concurrently(self._dispatch(4), self._dispatch(6))

        self.assertEqual(results, ["dispatched", "dispatched"])
        with self.app.app_context():
            self.assertEqual(stock_service.get_quantity_on_hand(self.product_id), 0)

    def test_many_dispatchers_never_go_negative(self):
        results = self._run_concurrently(*[self._dispatch(3) for _ in range(6)])

        dispatched = sum(1 for r in results if r == "dispatched")
        self.assertEqual(dispatched, 3, results)
        self.assertTrue(all(r == "dispatched" or isinstance(r, InsufficientStock) for r in results), results)
        with self.app.app_context():
            self.assertEqual(stock_service.get_quantity_on_hand(self.product_id), 1)

    def test_concurrent_payments_do_not_lose_updates(self):
        with self.app.app_context():
            load = truck_load_service.create_truck_load(
                self.driver_id, self.truck_id, "2026-09-11", [(self.product_id, 10)]
            )
            sale = sales_service.create_sale(load.id, self.shop_id, "2026-09-11", [(self.product_id, 10)])
            sale_id = sale.id

        def pay(amount):
            def op():
                payment_service.create_payment(sale_id, amount, "cash", "2026-09-12")
                return "paid"
            return op

        results = self._run_concurrently(pay("25.00"), pay("25.00"), pay("25.00"), pay("25.00"))

        self.assertEqual(results, ["paid"] * 4)
        with self.app.app_context():
            sale = sales_service.get_sale(sale_id)
            self.assertEqual(sale.paid_amount, Decimal("100.00"))
            self.assertEqual(sale.status, SALE_STATUS_PAID)
            self.assertEqual(len(payment_service.get_sale_payments(sale_id)), 4)


if __name__ == "__main__":
    unittest.main(verbosity=2)
