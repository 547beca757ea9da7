from __future__ import annotations

from ..extensions import db
from clinicpos.money import to_number
from clinicpos.time_utils import now, to_iso

STATUS_PAID = "PAID"
STATUS_UNPAID = "UNPAID"
STATUS_TRANSFER = "TRANSFER"
SALE_STATUSES = (STATUS_PAID, STATUS_UNPAID, STATUS_TRANSFER)

# Statuses that represent collected money; UNPAID never counts as revenue
COUNTED_STATUSES = (STATUS_PAID, STATUS_TRANSFER)


class Sale(db.Model):
    """
    Sale transaction.

    Monetary fields are fixed at creation: total = subtotal - discount.
    Only status and notes change afterwards.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_user_created", "user_id", "created_at"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    promotion_id = db.Column(db.Integer, db.ForeignKey("promotions.id"), nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PAID, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=now, index=True)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    promotion = db.relationship("Promotion")
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "promotion_id": self.promotion_id,
            "subtotal": to_number(self.subtotal),
            "discount": to_number(self.discount),
            "total": to_number(self.total),
            "status": self.status,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
            "customer": self.customer.to_dict() if self.customer else None,
            "user": self.user.to_summary() if self.user else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Line item referencing exactly one of a product or a service."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint(
            "(product_id IS NULL) <> (service_id IS NULL)",
            name="ck_sale_items_product_xor_service",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    product = db.relationship("Product")
    service = db.relationship("Service")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "quantity": self.quantity,
            "price": to_number(self.price),
            "total": to_number(self.total),
            "product": self.product.to_dict(include_category=False) if self.product else None,
            "service": self.service.to_dict() if self.service else None,
        }
