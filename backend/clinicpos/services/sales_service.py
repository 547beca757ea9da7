"""
Sales Service

A sale is written once, together with its items, its stock movements and
its invoice number, in a single transaction. After that only status and
notes change; monetary fields are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from flask import current_app
from sqlalchemy import or_, update

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Product, Promotion, Sale, SaleItem, Service, SALE_STATUSES, STATUS_PAID
from ..pagination import paginate
from ..validation import Patch, PayloadReader, UNSET
from .concurrency import run_with_retry
from .promotions_service import discount_for
from .visibility_service import VisibilityScope
from clinicpos.time_utils import now

INVOICE_PREFIX = "INV"


@dataclass
class SalePatch(Patch):
    status: Any = UNSET
    notes: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None) -> "SalePatch":
        reader = PayloadReader(payload, partial=True)
        return cls(
            status=reader.choice("status", SALE_STATUSES),
            notes=reader.text("notes", nullable=True),
        )


@dataclass
class SaleLineRequest:
    product_id: int | None
    service_id: int | None
    quantity: int


@dataclass
class SaleRequest:
    customer_id: int
    items: list[SaleLineRequest]
    promotion_id: int | None = None
    status: str = STATUS_PAID
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "SaleRequest":
        reader = PayloadReader(payload, partial=False)
        customer_id = reader.integer("customer_id", required=True, minimum=1, message="customer_id is required")
        promotion_id = reader.integer("promotion_id", minimum=1)
        status = reader.choice("status", SALE_STATUSES)
        notes = reader.text("notes", nullable=True)

        raw_items = reader.payload.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("A sale needs at least one item")

        items = []
        for index, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                raise ValidationError(f"items[{index}] must be an object")
            item = PayloadReader(raw, partial=False)
            product_id = item.integer("product_id", minimum=1)
            service_id = item.integer("service_id", minimum=1)
            if (product_id is UNSET) == (service_id is UNSET):
                raise ValidationError(f"items[{index}] must reference exactly one of product_id or service_id")
            quantity = item.integer("quantity", required=True, minimum=1,
                                    message=f"items[{index}].quantity must be a positive integer")
            items.append(SaleLineRequest(
                product_id=product_id or None,
                service_id=service_id or None,
                quantity=quantity,
            ))

        return cls(
            customer_id=customer_id,
            items=items,
            promotion_id=promotion_id or None,
            status=status or STATUS_PAID,
            notes=notes or None,
        )


def next_invoice_number(at: datetime) -> str:
    """INV-YYYYMMDD-NNNN, numbered from 0001 within each local day."""
    prefix = f"{INVOICE_PREFIX}-{at:%Y%m%d}-"
    last = db.session.query(Sale.invoice_number).filter(
        Sale.invoice_number.like(f"{prefix}%")
    ).order_by(Sale.invoice_number.desc()).limit(1).scalar()
    sequence = int(last[len(prefix):]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def _decrement_stock(product: Product, quantity: int) -> None:
    # Conditional update so two concurrent sales cannot both take the last unit
    result = db.session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.refresh(product)
        raise ValidationError(
            f"Insufficient stock for {product.name}",
            details={"product_id": product.id, "requested": quantity, "available": product.stock},
        )


def _build_item(line: SaleLineRequest) -> SaleItem:
    if line.product_id is not None:
        product = db.session.get(Product, line.product_id)
        if not product or not product.is_active:
            raise ValidationError(f"Product {line.product_id} not found")
        _decrement_stock(product, line.quantity)
        price = Decimal(product.price)
        return SaleItem(product_id=product.id, quantity=line.quantity, price=price, total=price * line.quantity)

    service = db.session.get(Service, line.service_id)
    if not service or not service.is_active:
        raise ValidationError(f"Service {line.service_id} not found")
    price = Decimal(service.price)
    return SaleItem(service_id=service.id, quantity=line.quantity, price=price, total=price * line.quantity)


def create_sale(sale_request: SaleRequest, user_id: int, scope: VisibilityScope) -> Sale:
    """
    Record a sale for a customer the caller is allowed to see.

    Item prices come from the catalog at sale time. A promotion is applied
    only when it is active and its window contains the sale time; otherwise
    it is ignored rather than rejected.
    """
    def _op() -> Sale:
        customer = db.session.get(Customer, sale_request.customer_id)
        if not customer:
            raise ValidationError("Customer not found")
        scope.require_customer_visible(customer)

        at = now()
        items = [_build_item(line) for line in sale_request.items]
        subtotal = sum((item.total for item in items), Decimal("0"))

        promotion = None
        discount = Decimal("0")
        if sale_request.promotion_id is not None:
            promotion = db.session.get(Promotion, sale_request.promotion_id)
            if promotion is None:
                raise ValidationError("Promotion not found")
            if promotion.is_in_window(at):
                discount = discount_for(promotion, subtotal)
            else:
                promotion = None

        sale = Sale(
            invoice_number=next_invoice_number(at),
            customer_id=sale_request.customer_id,
            user_id=user_id,
            promotion_id=promotion.id if promotion else None,
            subtotal=subtotal,
            discount=discount,
            total=subtotal - discount,
            status=sale_request.status,
            notes=sale_request.notes,
            created_at=at,
        )
        sale.items = items
        db.session.add(sale)
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except ValidationError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s recorded by user %s: total=%s", sale.invoice_number, user_id, sale.total
    )
    return sale


def list_sales(
    scope: VisibilityScope,
    *,
    search: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], dict]:
    query = db.session.query(Sale).filter(*scope.sale_list_criteria())

    if search:
        like = f"%{search.strip()}%"
        query = query.join(Customer, Sale.customer_id == Customer.id).filter(or_(
            Sale.invoice_number.ilike(like),
            Customer.first_name.ilike(like),
            Customer.last_name.ilike(like),
            Customer.phone.ilike(like),
        ))

    if status:
        status = status.strip().upper()
        if status not in SALE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")
        query = query.filter(Sale.status == status)

    rows, pagination = paginate(query.order_by(Sale.created_at.desc(), Sale.id.desc()), page, limit)
    return [sale.to_dict() for sale in rows], pagination


def get_sale(sale_id: int, scope: VisibilityScope) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    scope.require_sale_visible(sale)
    return sale


def update_sale(sale_id: int, patch: SalePatch, scope: VisibilityScope) -> Sale:
    """Change status and/or notes; every other field is immutable."""
    sale = get_sale(sale_id, scope)
    patch.apply_to(sale)
    db.session.commit()
    return sale
