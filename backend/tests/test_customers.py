"""
Customer API tests.

Verifies:
- Phone normalization, format and uniqueness
- Visibility filtering on list and detail
- Deletion is refused once the customer has purchases
- A replaced photo is removed only after the update commits
"""

import io

import pytest
from sqlalchemy.exc import IntegrityError
from werkzeug.datastructures import FileStorage

from clinicpos.extensions import db
from clinicpos.models import Customer
from clinicpos.services.customers_service import CustomerPatch, update_customer
from clinicpos.services.file_store import get_file_store
from clinicpos.services.visibility_service import scope_for
from clinicpos.validation import normalize_phone
from clinicpos.errors import ValidationError


class TestPhoneNormalization:

    @pytest.mark.parametrize("raw,expected", [
        ("020 5555 1234", "02055551234"),
        (" 12345678 ", "12345678"),
        ("\t0205\n5551234", "02055551234"),
    ])
    def test_whitespace_is_stripped(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["1234567", "123456789012", "020-555-1234", "+8562055512", ""])
    def test_invalid_numbers_rejected(self, raw):
        with pytest.raises(ValidationError):
            normalize_phone(raw)


class TestCustomerCrud:

    def test_create_customer(self, client, employee_headers, db_session):
        resp = client.post("/api/customers", json={
            "first_name": "Somchai",
            "last_name": "Vong",
            "phone": "020 5555 0001",
            "age": 42,
            "province": "Vientiane",
        }, headers=employee_headers)

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["phone"] == "02055550001"
        assert data["age"] == 42

    def test_duplicate_phone_rejected(self, client, employee_headers, make_customer):
        make_customer(phone="02055550001")
        resp = client.post("/api/customers", json={
            "first_name": "Other",
            "last_name": "Person",
            "phone": "0205555 0001",
        }, headers=employee_headers)
        assert resp.status_code == 400
        assert "already exists" in resp.get_json()["error"]

    def test_age_out_of_range(self, client, employee_headers, db_session):
        resp = client.post("/api/customers", json={
            "first_name": "Old", "last_name": "Timer", "phone": "12345678", "age": 151,
        }, headers=employee_headers)
        assert resp.status_code == 400

    def test_create_with_image_upload(self, client, employee_headers, db_session):
        resp = client.post(
            "/api/customers",
            data={
                "first_name": "Pic",
                "last_name": "Ture",
                "phone": "87654321",
                "image": (io.BytesIO(b"fake-png"), "face.png"),
            },
            headers=employee_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["image"].startswith("/uploads/customers/customer-")

    def test_partial_update_keeps_other_fields(self, client, employee_headers, make_customer, db_session):
        customer = make_customer(first_name="Before", age=30)
        resp = client.put(f"/api/customers/{customer.id}", json={"first_name": "After"},
                          headers=employee_headers)
        assert resp.status_code == 200

        db_session.expire_all()
        refreshed = db_session.get(Customer, customer.id)
        assert refreshed.first_name == "After"
        assert refreshed.age == 30

    def test_update_rejects_blank_required_field(self, client, employee_headers, make_customer):
        customer = make_customer()
        resp = client.put(f"/api/customers/{customer.id}", json={"last_name": "  "},
                          headers=employee_headers)
        assert resp.status_code == 400

    def test_search_and_sales_count(self, client, admin, admin_headers, make_customer, make_sale):
        buyer = make_customer(first_name="Noy")
        make_customer(first_name="Kham")
        make_sale(admin, buyer)
        make_sale(admin, buyer)

        resp = client.get("/api/customers?search=noy", headers=admin_headers)
        body = resp.get_json()
        assert resp.status_code == 200
        assert [c["id"] for c in body["data"]] == [buyer.id]
        assert body["data"][0]["sales_count"] == 2
        assert body["pagination"] == {"total": 1, "page": 1, "limit": 10, "total_pages": 1}

    def test_delete_refused_with_purchase_history(self, client, admin, admin_headers, make_customer, make_sale):
        customer = make_customer()
        make_sale(admin, customer)
        resp = client.delete(f"/api/customers/{customer.id}", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_customer_without_sales(self, client, admin_headers, make_customer, db_session):
        customer = make_customer()
        resp = client.delete(f"/api/customers/{customer.id}", headers=admin_headers)
        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.get(Customer, customer.id) is None

    def test_missing_customer_is_404(self, client, admin_headers):
        resp = client.get("/api/customers/9999", headers=admin_headers)
        assert resp.status_code == 404


class TestCustomerVisibility:

    def test_employee_cannot_open_admins_customer(self, client, admin, employee_headers, make_customer, make_sale):
        customer = make_customer()
        make_sale(admin, customer)

        assert client.get(f"/api/customers/{customer.id}", headers=employee_headers).status_code == 403
        assert client.put(f"/api/customers/{customer.id}", json={"age": 1},
                          headers=employee_headers).status_code == 403

        listed = client.get("/api/customers", headers=employee_headers).get_json()
        assert listed["data"] == []
        assert listed["pagination"]["total_pages"] == 0

    def test_customer_detail_hides_admin_sales(self, client, admin, employee, employee_headers,
                                               make_customer, make_sale):
        admin_customer = make_customer()
        make_sale(admin, admin_customer)
        customer = make_customer()
        own = make_sale(employee, customer)

        resp = client.get(f"/api/customers/{customer.id}", headers=employee_headers)
        assert resp.status_code == 200
        assert [s["id"] for s in resp.get_json()["data"]["sales"]] == [own.id]


class TestCustomerImages:

    @staticmethod
    def _photo(name="face.png"):
        return FileStorage(stream=io.BytesIO(b"fake-png"), filename=name)

    def test_replacing_photo_removes_old_file(self, admin, make_customer, db_session):
        store = get_file_store()
        old = store.save(self._photo(), "customers", "customer")
        customer = make_customer(image=old)

        updated = update_customer(customer.id, CustomerPatch(), scope_for(admin), image=self._photo("new.png"))

        assert updated.image != old
        assert store.exists(updated.image)
        assert not store.exists(old)

    def test_failed_commit_keeps_old_photo(self, admin, make_customer, db_session, monkeypatch):
        store = get_file_store()
        old = store.save(self._photo(), "customers", "customer")
        customer = make_customer(image=old)
        scope = scope_for(admin)

        def _fail():
            raise IntegrityError("UPDATE customers", {}, Exception("UNIQUE constraint failed: customers.phone"))

        monkeypatch.setattr(db.session, "commit", _fail)
        with pytest.raises(IntegrityError):
            update_customer(customer.id, CustomerPatch(first_name="Renamed"), scope, image=self._photo("new.png"))
        monkeypatch.undo()
        db_session.rollback()

        assert store.exists(old)
        db_session.expire_all()
        assert db_session.get(Customer, customer.id).image == old
