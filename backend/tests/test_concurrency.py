# Overview: Threaded concurrency tests against a file-backed SQLite database.

"""
Scripted concurrency tests.

Each worker thread runs in its own app context (own session, own
connection) against a temporary on-disk database, so SQLite locking is
real. Run with pytest or:
    python -m unittest tests.test_concurrency
"""
import os
import tempfile
import threading
import unittest
from unittest import mock

from walkin import create_app
from walkin.extensions import db
from walkin.models import Customer, Product, ProductSale, Service, Staff, WalkIn
from walkin.services import catalog_service, customer_service, inventory_service, queue_service
from walkin.validation import GuardViolation, InsufficientStock


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "DB_RETRY_ATTEMPTS": 5,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            product = Product(name="Hair Wax", sku="CONCUR-1", price_cents=35000, stock_quantity=5, is_active=True)
            db.session.add(product)
            db.session.commit()
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, target, count):
        threads = [threading.Thread(target=target) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def test_concurrent_sales_never_oversell(self):
        sold = []
        refused = []
        errors = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    sale = inventory_service.record_sale(self.product_id, 1)
                    with lock:
                        sold.append(sale.id)
                except InsufficientStock as exc:
                    with lock:
                        refused.append(exc)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        self._run_threads(worker, 10)

        self.assertFalse(errors)
        self.assertEqual(len(sold), 5)
        self.assertEqual(len(refused), 5)

        with self.app.app_context():
            product = db.session.get(Product, self.product_id)
            self.assertEqual(product.stock_quantity, 0)
            self.assertEqual(db.session.query(ProductSale).count(), 5)

    def test_concurrent_first_sight_creates_one_customer(self):
        ids = []
        errors = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    customer = customer_service.resolve_customer("9876543210", "Asha")
                    with lock:
                        ids.append(customer.id)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        self._run_threads(worker, 8)

        self.assertFalse(errors)
        self.assertEqual(len(set(ids)), 1)
        with self.app.app_context():
            self.assertEqual(db.session.query(Customer).count(), 1)

    def test_concurrent_start_stamps_once(self):
        with self.app.app_context():
            walkin_id = queue_service.create_walkin("9876543210", "Asha").id

        stamps = []
        errors = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    walkin, _ = queue_service.advance_status(walkin_id, "in-progress")
                    with lock:
                        stamps.append(walkin.started_at)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        self._run_threads(worker, 5)

        self.assertFalse(errors)
        self.assertEqual(len(set(stamps)), 1)
        with self.app.app_context():
            self.assertEqual(db.session.get(WalkIn, walkin_id).status, "in-progress")

    def _delete_during_intake(self, delete, patch_target, intake_kwargs):
        """
        Start delete() in another thread right after intake has read the row
        it is about to reference, give it time to finish, then let intake
        commit. Returns (delete outcome, walk-in id).
        """
        outcome = {}

        def deleter_body():
            with self.app.app_context():
                try:
                    delete()
                    outcome["delete"] = "deleted"
                except GuardViolation as exc:
                    outcome["delete"] = exc.blocking_count
                except Exception as exc:
                    outcome["delete"] = exc
                finally:
                    db.session.remove()

        deleter = threading.Thread(target=deleter_body)
        real = getattr(queue_service, patch_target)

        def read_then_race(*args, **kwargs):
            result = real(*args, **kwargs)
            if deleter.ident is None:
                deleter.start()
                deleter.join(timeout=0.5)
            return result

        with self.app.app_context():
            try:
                with mock.patch.object(queue_service, patch_target, side_effect=read_then_race):
                    walkin_id = queue_service.create_walkin("9876543210", "Asha", **intake_kwargs).id
            finally:
                db.session.remove()
        deleter.join()
        return outcome["delete"], walkin_id

    def test_service_delete_waits_for_intake(self):
        with self.app.app_context():
            service = Service(name="Haircut", price_cents=30000, duration_minutes=30, is_active=True)
            db.session.add(service)
            db.session.commit()
            service_id = service.id

        outcome, walkin_id = self._delete_during_intake(
            lambda: catalog_service.delete_service(service_id),
            "find_service_by_name",
            {"service": "Haircut"},
        )

        self.assertEqual(outcome, 1)
        with self.app.app_context():
            self.assertIsNotNone(db.session.get(Service, service_id))
            self.assertEqual(db.session.get(WalkIn, walkin_id).service_id, service_id)

    def test_staff_delete_waits_for_intake(self):
        with self.app.app_context():
            member = Staff(name="Ravi", is_active=True, display_order=0)
            db.session.add(member)
            db.session.commit()
            staff_id = member.id

        outcome, walkin_id = self._delete_during_intake(
            lambda: catalog_service.delete_staff(staff_id),
            "_require_active_staff",
            {"staff_id": staff_id},
        )

        self.assertEqual(outcome, 1)
        with self.app.app_context():
            self.assertIsNotNone(db.session.get(Staff, staff_id))
            self.assertEqual(db.session.get(WalkIn, walkin_id).staff_id, staff_id)


if __name__ == "__main__":
    unittest.main()
