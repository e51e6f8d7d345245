# Overview: Pytest coverage for the HTTP surface: status codes, error bodies and end-to-end queue scenarios.

"""
HTTP route tests.

Scenarios covered end to end:
1. walk-in intake with a 10-digit phone, then the full lifecycle
2. the last unit of a product sold once, refused the second time
3. deleting a service that an active walk-in uses
4. deleting a category with services
"""

from sqlalchemy.exc import OperationalError

from walkin import create_app
from walkin.extensions import db
from walkin.models import Customer, Product, Service
from walkin.services import inventory_service


class TestWalkinRoutes:

    def test_intake_then_lifecycle(self, client, db_session, make_service):
        make_service(name="Haircut", price_cents=30000, duration_minutes=30)

        res = client.post("/api/walkins", json={"name": "Asha", "phone": "98765 43210", "service": "Haircut"})
        assert res.status_code == 201
        walkin = res.get_json()["walkin"]
        assert walkin["status"] == "waiting"
        assert walkin["customer_phone"] == "+919876543210"

        res = client.patch(f"/api/walkins/{walkin['id']}", json={"status": "in-progress"})
        assert res.status_code == 200
        assert res.get_json()["walkin"]["started_at"] is not None

        res = client.patch(f"/api/walkins/{walkin['id']}", json={"status": "done"})
        assert res.status_code == 200
        body = res.get_json()
        assert body["walkin"]["completed_at"] is not None
        assert body["service_details"]["price_cents"] == 30000

        res = client.delete(f"/api/walkins/{walkin['id']}")
        assert res.status_code == 403

        listed = client.get("/api/walkins").get_json()
        assert listed["count"] == 1

    def test_invalid_phone_is_400(self, client, db_session):
        res = client.post("/api/walkins", json={"name": "Asha", "phone": "12345"})
        assert res.status_code == 400
        assert "error" in res.get_json()

    def test_skip_to_done_is_400(self, client, db_session, make_walkin):
        walkin = make_walkin()
        res = client.patch(f"/api/walkins/{walkin.id}", json={"status": "done"})
        assert res.status_code == 400
        assert res.get_json()["current"] == "waiting"

    def test_missing_walkin_is_404(self, client, db_session):
        assert client.patch("/api/walkins/999", json={"status": "done"}).status_code == 404
        assert client.delete("/api/walkins/999").status_code == 404

    def test_empty_patch_is_400(self, client, db_session, make_walkin):
        walkin = make_walkin()
        assert client.patch(f"/api/walkins/{walkin.id}", json={}).status_code == 400


class TestCustomerRoutes:

    def test_lookup_by_phone(self, client, db_session):
        client.post("/api/walkins", json={"name": "Asha", "phone": "9876543210"})

        res = client.get("/api/customers", query_string={"phone": "+919876543210"})
        assert res.status_code == 200
        assert res.get_json()["customer"]["visit_count"] == 1

        assert client.get("/api/customers", query_string={"phone": "9999999999"}).status_code == 404

    def test_create_conflict_is_409(self, client, db_session):
        assert client.post("/api/customers", json={"name": "Asha", "phone": "9876543210"}).status_code == 201
        assert client.post("/api/customers", json={"name": "Asha", "phone": "9876543210"}).status_code == 409

    def test_rename(self, client, db_session):
        created = client.post("/api/customers", json={"name": "Asha", "phone": "9876543210"}).get_json()
        res = client.patch(f"/api/customers/{created['customer']['id']}", json={"name": "Asha K"})
        assert res.status_code == 200
        assert res.get_json()["customer"]["name"] == "Asha K"


class TestCatalogRoutes:

    def test_service_in_use_delete_is_403_with_count(self, client, db_session):
        created = client.post(
            "/api/services", json={"name": "Haircut", "price_cents": 30000, "duration_minutes": 30}
        ).get_json()["service"]
        client.post("/api/walkins", json={"name": "Asha", "phone": "9876543210", "service": "Haircut"})

        res = client.delete(f"/api/services/{created['id']}")

        assert res.status_code == 403
        assert res.get_json()["inUseCount"] == 1
        db.session.expire_all()
        assert db.session.query(Service).count() == 1

    def test_duplicate_service_name_is_409(self, client, db_session):
        payload = {"name": "Haircut", "price_cents": 30000, "duration_minutes": 30}
        assert client.post("/api/services", json=payload).status_code == 201
        payload["name"] = "HAIRCUT"
        assert client.post("/api/services", json=payload).status_code == 409

    def test_service_validation(self, client, db_session):
        res = client.post("/api/services", json={"name": "Haircut", "price_cents": 30000, "duration_minutes": 2})
        assert res.status_code == 400
        res = client.post("/api/services", json={"name": "Haircut", "price_cents": 1_000_000, "duration_minutes": 30})
        assert res.status_code == 400
        res = client.post("/api/services", json={"name": "Haircut", "price_cents": 300.5, "duration_minutes": 30})
        assert res.status_code == 400

    def test_staff_in_use_delete_is_403(self, client, db_session):
        staff = client.post("/api/staff", json={"name": "Ravi"}).get_json()["staff"]
        client.post("/api/walkins", json={"name": "Asha", "phone": "9876543210", "staff_id": staff["id"]})

        res = client.delete(f"/api/staff/{staff['id']}")

        assert res.status_code == 403
        assert res.get_json()["activeWalkIns"] == 1

    def test_category_delete_keeps_services(self, client, db_session):
        category = client.post("/api/categories", json={"name": "Hair"}).get_json()["category"]
        client.post("/api/services", json={
            "name": "Haircut", "price_cents": 30000, "duration_minutes": 30, "category_id": category["id"],
        })

        res = client.delete(f"/api/categories/{category['id']}")

        assert res.status_code == 200
        assert res.get_json()["serviceCount"] == 1
        services = client.get("/api/services").get_json()["services"]
        assert len(services) == 1
        assert services[0]["category_id"] is None

    def test_staff_services_assignment(self, client, db_session):
        staff = client.post("/api/staff", json={"name": "Ravi"}).get_json()["staff"]
        service = client.post(
            "/api/services", json={"name": "Haircut", "price_cents": 30000, "duration_minutes": 30}
        ).get_json()["service"]

        res = client.post(f"/api/staff/{staff['id']}/services",
                          json={"service_ids": [service["id"]], "primary_service_id": service["id"]})
        assert res.status_code == 200

        listed = client.get(f"/api/staff/{staff['id']}/services").get_json()["services"]
        assert listed[0]["is_primary"] is True

        assert client.post("/api/staff/999/services", json={"service_ids": []}).status_code == 404


class TestProductRoutes:

    def test_last_unit_sold_once(self, client, db_session):
        product = client.post(
            "/api/products", json={"name": "Hair Wax", "sku": "WAX-001", "price_cents": 35000, "stock_quantity": 1}
        ).get_json()["product"]

        first = client.post("/api/products/sales", json={"product_id": product["id"], "quantity": 1})
        assert first.status_code == 201

        second = client.post("/api/products/sales", json={"product_id": product["id"], "quantity": 1})
        assert second.status_code == 400
        assert second.get_json()["available"] == 0
        assert second.get_json()["requested"] == 1

        db.session.expire_all()
        assert db.session.get(Product, product["id"]).stock_quantity == 0

    def test_duplicate_sku_is_409(self, client, db_session):
        client.post("/api/products", json={"name": "Hair Wax", "sku": "WAX-001", "price_cents": 100})
        res = client.post("/api/products", json={"name": "Other", "sku": "wax-001", "price_cents": 100})
        assert res.status_code == 409

    def test_delete_product_with_sales_deactivates(self, client, db_session):
        product = client.post(
            "/api/products", json={"name": "Hair Wax", "price_cents": 100, "stock_quantity": 3}
        ).get_json()["product"]
        client.post("/api/products/sales", json={"product_id": product["id"], "quantity": 1})

        res = client.delete(f"/api/products/{product['id']}")

        assert res.status_code == 200
        assert res.get_json()["result"] == "deactivated"

    def test_sale_of_missing_product_is_404(self, client, db_session):
        res = client.post("/api/products/sales", json={"product_id": 999, "quantity": 1})
        assert res.status_code == 404

    def test_inventory_report_types(self, client, db_session):
        assert client.get("/api/products/inventory").status_code == 200
        assert client.get("/api/products/inventory", query_string={"type": "low-stock"}).status_code == 200
        assert client.get("/api/products/inventory", query_string={"type": "nope"}).status_code == 400

    def test_sales_bad_date_filter_is_400(self, client, db_session):
        res = client.get("/api/products/sales", query_string={"start": "yesterday"})
        assert res.status_code == 400


class TestCors:

    def test_allowed_origin_echoed(self, client, db_session):
        res = client.get("/api/walkins", headers={"Origin": "http://localhost:3000"})
        assert res.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_unknown_origin_ignored(self, client, db_session):
        res = client.get("/api/walkins", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in res.headers


def _locked(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is locked"))


class TestStoreUnavailable:

    def test_exhausted_retries_are_503(self, client, db_session, make_product, monkeypatch):
        product = make_product(stock_quantity=5)
        calls = []

        def locked_product(product_id):
            calls.append(product_id)
            _locked()

        monkeypatch.setattr(inventory_service, "get_product", locked_product)

        res = client.post("/api/products/sales", json={"product_id": product.id, "quantity": 1})

        assert res.status_code == 503
        assert res.get_json() == {"error": "Database temporarily unavailable", "retryable": True}
        # DB_RETRY_ATTEMPTS is 2 in the test app
        assert calls == [product.id, product.id]
        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_quantity == 5

    def test_operational_error_outside_a_service_is_503(self):
        app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
        app.add_url_rule("/api/locked", "locked", _locked)

        res = app.test_client().get("/api/locked")

        assert res.status_code == 503
        assert res.get_json()["retryable"] is True
