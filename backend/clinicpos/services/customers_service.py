# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import func, or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Sale
from ..pagination import paginate
from ..validation import Patch, PayloadReader, UNSET, normalize_phone
from .file_store import get_file_store
from .visibility_service import VisibilityScope

UPLOAD_FOLDER = "customers"


@dataclass
class CustomerPatch(Patch):
    first_name: Any = UNSET
    last_name: Any = UNSET
    phone: Any = UNSET
    age: Any = UNSET
    province: Any = UNSET
    district: Any = UNSET
    village: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None, *, partial: bool) -> "CustomerPatch":
        reader = PayloadReader(payload, partial=partial)
        phone = UNSET
        if reader.has("phone") or not partial:
            phone = normalize_phone(reader.payload.get("phone"))
        return cls(
            first_name=reader.text("first_name", required=True, max_length=128,
                                   message="First name is required"),
            last_name=reader.text("last_name", required=True, max_length=128,
                                  message="Last name is required"),
            phone=phone,
            age=reader.integer("age", minimum=0, maximum=150, message="age must be between 0 and 150"),
            province=reader.text("province", nullable=True, max_length=128),
            district=reader.text("district", nullable=True, max_length=128),
            village=reader.text("village", nullable=True, max_length=128),
        )


def _phone_taken(phone: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Customer.id).filter(Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _get(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(
    scope: VisibilityScope,
    *,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], dict]:
    sales_count = (
        db.session.query(func.count(Sale.id))
        .filter(Sale.customer_id == Customer.id)
        .correlate(Customer)
        .scalar_subquery()
    )

    query = db.session.query(Customer, sales_count.label("sales_count")).filter(
        *scope.customer_criteria()
    )
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.first_name.ilike(like),
            Customer.last_name.ilike(like),
            Customer.phone.ilike(like),
        ))

    rows, pagination = paginate(
        query.order_by(Customer.created_at.desc(), Customer.id.desc()), page, limit
    )
    items = []
    for customer, count in rows:
        data = customer.to_dict()
        data["sales_count"] = int(count or 0)
        items.append(data)
    return items, pagination


def get_customer(customer_id: int, scope: VisibilityScope) -> dict:
    """Customer with its purchase history, both filtered by the caller's scope."""
    customer = _get(customer_id)
    scope.require_customer_visible(customer)

    sales = db.session.query(Sale).filter(
        Sale.customer_id == customer.id,
        *scope.sale_criteria(),
    ).order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    data = customer.to_dict()
    data["sales"] = [sale.to_dict() for sale in sales]
    return data


def create_customer(patch: CustomerPatch, image=None) -> Customer:
    if _phone_taken(patch.phone):
        raise ValidationError("Phone number already exists")

    customer = Customer()
    patch.apply_to(customer)
    if image is not None:
        customer.image = get_file_store().save(image, UPLOAD_FOLDER, "customer")

    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, patch: CustomerPatch, scope: VisibilityScope, image=None) -> Customer:
    customer = _get(customer_id)
    scope.require_customer_visible(customer)

    if patch.phone is not UNSET and patch.phone != customer.phone:
        if _phone_taken(patch.phone, exclude_id=customer.id):
            raise ValidationError("Phone number already exists")

    patch.apply_to(customer)

    old_image = None
    if image is not None:
        old_image = customer.image
        customer.image = get_file_store().save(image, UPLOAD_FOLDER, "customer")

    db.session.commit()
    if old_image:
        get_file_store().delete(old_image)
    return customer


def delete_customer(customer_id: int, scope: VisibilityScope) -> None:
    """Physically delete a customer that has never bought anything."""
    customer = _get(customer_id)
    scope.require_customer_visible(customer)

    sales_count = db.session.query(Sale).filter(Sale.customer_id == customer.id).count()
    if sales_count > 0:
        raise ValidationError("Cannot delete a customer with purchase history")

    image = customer.image
    db.session.delete(customer)
    db.session.commit()

    if image:
        get_file_store().delete(image)
        current_app.logger.info("Deleted customer %s and its image", customer_id)
