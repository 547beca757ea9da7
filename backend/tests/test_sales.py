"""
Sale creation and maintenance.

Verifies:
- total = subtotal - discount, with catalog prices
- Promotions apply only while active and in their window
- Stock is decremented and never goes negative
- Invoice numbers are sequential per day
- Only status and notes can be changed afterwards
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from clinicpos.models import Product, Promotion, Sale, STATUS_UNPAID
from clinicpos.time_utils import now


@pytest.fixture
def promotion(db_session):
    def _make(discount="10", is_percent=True, days_offset=0, is_active=True):
        start = now() + timedelta(days=days_offset) - timedelta(days=1)
        promo = Promotion(
            name="Promo",
            discount=Decimal(discount),
            is_percent=is_percent,
            start_date=start,
            end_date=start + timedelta(days=2),
            is_active=is_active,
        )
        db_session.add(promo)
        db_session.commit()
        return promo

    return _make


class TestCreateSale:

    def test_totals_and_stock(self, client, employee_headers, make_customer, make_product, service, db_session):
        customer = make_customer()
        product = make_product(price="5000", stock=10)

        resp = client.post("/api/sales", json={
            "customer_id": customer.id,
            "items": [
                {"product_id": product.id, "quantity": 3},
                {"service_id": service.id, "quantity": 1},
            ],
        }, headers=employee_headers)

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["subtotal"] == 35000
        assert data["discount"] == 0
        assert data["total"] == 35000
        assert data["status"] == "PAID"
        assert len(data["items"]) == 2

        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == 7

    def test_percent_promotion_in_window(self, client, employee_headers, make_customer, make_product, promotion):
        customer = make_customer()
        product = make_product(price="1000", stock=10)
        promo = promotion("10", is_percent=True)

        data = client.post("/api/sales", json={
            "customer_id": customer.id,
            "promotion_id": promo.id,
            "items": [{"product_id": product.id, "quantity": 2}],
        }, headers=employee_headers).get_json()["data"]

        assert data["subtotal"] == 2000
        assert data["discount"] == 200
        assert data["total"] == 1800
        assert data["promotion_id"] == promo.id

    def test_fixed_discount_never_exceeds_subtotal(self, client, employee_headers, make_customer,
                                                   make_product, promotion):
        customer = make_customer()
        product = make_product(price="1000", stock=10)
        promo = promotion("5000", is_percent=False)

        data = client.post("/api/sales", json={
            "customer_id": customer.id,
            "promotion_id": promo.id,
            "items": [{"product_id": product.id, "quantity": 1}],
        }, headers=employee_headers).get_json()["data"]

        assert data["total"] == 0

    @pytest.mark.parametrize("kwargs", [
        {"days_offset": 10},
        {"days_offset": -10},
        {"is_active": False},
    ])
    def test_promotion_outside_window_is_ignored(self, client, employee_headers, make_customer,
                                                 make_product, promotion, kwargs):
        customer = make_customer()
        product = make_product(price="1000", stock=10)
        promo = promotion("10", **kwargs)

        data = client.post("/api/sales", json={
            "customer_id": customer.id,
            "promotion_id": promo.id,
            "items": [{"product_id": product.id, "quantity": 1}],
        }, headers=employee_headers).get_json()["data"]

        assert data["discount"] == 0
        assert data["promotion_id"] is None

    def test_insufficient_stock_rolls_back(self, client, employee_headers, make_customer, make_product, db_session):
        customer = make_customer()
        plenty = make_product("Plenty", stock=50)
        scarce = make_product("Scarce", stock=1)

        resp = client.post("/api/sales", json={
            "customer_id": customer.id,
            "items": [
                {"product_id": plenty.id, "quantity": 5},
                {"product_id": scarce.id, "quantity": 2},
            ],
        }, headers=employee_headers)

        assert resp.status_code == 400
        assert resp.get_json()["details"]["available"] == 1
        db_session.expire_all()
        assert db_session.get(Product, plenty.id).stock == 50
        assert db_session.query(Sale).count() == 0

    @pytest.mark.parametrize("items", [
        [],
        [{"quantity": 1}],
        [{"product_id": 1, "service_id": 1, "quantity": 1}],
        [{"product_id": 1, "quantity": 0}],
    ])
    def test_item_validation(self, client, employee_headers, make_customer, items):
        customer = make_customer()
        resp = client.post("/api/sales", json={"customer_id": customer.id, "items": items},
                           headers=employee_headers)
        assert resp.status_code == 400

    def test_invoice_numbers_are_sequential_per_day(self, client, employee_headers, make_customer, service):
        customer = make_customer()
        payload = {"customer_id": customer.id, "items": [{"service_id": service.id, "quantity": 1}]}

        first = client.post("/api/sales", json=payload, headers=employee_headers).get_json()["data"]
        second = client.post("/api/sales", json=payload, headers=employee_headers).get_json()["data"]

        prefix = f"INV-{now():%Y%m%d}-"
        assert first["invoice_number"] == f"{prefix}0001"
        assert second["invoice_number"] == f"{prefix}0002"


class TestSaleAccess:

    def test_update_changes_only_status_and_notes(self, client, admin, admin_headers, make_customer, make_sale):
        sale = make_sale(admin, make_customer(), "100")
        resp = client.put(f"/api/sales/{sale.id}", json={
            "status": "unpaid",
            "notes": "pay tomorrow",
            "total": 1,
        }, headers=admin_headers)

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == STATUS_UNPAID
        assert data["notes"] == "pay tomorrow"
        assert data["total"] == 100

    def test_invalid_status_rejected(self, client, admin, admin_headers, make_customer, make_sale):
        sale = make_sale(admin, make_customer())
        resp = client.put(f"/api/sales/{sale.id}", json={"status": "REFUNDED"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_employee_cannot_read_or_edit_admin_sale(self, client, admin, employee_headers, make_customer, make_sale):
        sale = make_sale(admin, make_customer())
        assert client.get(f"/api/sales/{sale.id}", headers=employee_headers).status_code == 403
        assert client.put(f"/api/sales/{sale.id}", json={"notes": "x"},
                          headers=employee_headers).status_code == 403

    def test_employee_cannot_sell_to_hidden_customer(self, client, admin, employee_headers, make_customer,
                                                     make_sale, service, db_session):
        hidden = make_customer()
        make_sale(admin, hidden)

        resp = client.post("/api/sales", json={
            "customer_id": hidden.id,
            "items": [{"service_id": service.id, "quantity": 1}],
        }, headers=employee_headers)

        assert resp.status_code == 403
        assert db_session.query(Sale).filter(Sale.customer_id == hidden.id).count() == 1

    def test_employee_list_shows_only_todays_visible_sales(self, client, admin, employee, employee_headers,
                                                          make_customer, make_sale):
        customer = make_customer()
        make_sale(admin, make_customer())
        today = make_sale(employee, customer)
        make_sale(employee, customer, created_at=now() - timedelta(days=2))

        body = client.get("/api/sales", headers=employee_headers).get_json()
        assert [s["id"] for s in body["data"]] == [today.id]

    def test_search_by_customer_phone(self, client, admin, admin_headers, make_customer, make_sale):
        target = make_customer(phone="02099998888")
        wanted = make_sale(admin, target)
        make_sale(admin, make_customer())

        body = client.get("/api/sales?search=9999888", headers=admin_headers).get_json()
        assert [s["id"] for s in body["data"]] == [wanted.id]
