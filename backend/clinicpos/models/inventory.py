from __future__ import annotations

from ..extensions import db
from clinicpos.money import to_number
from clinicpos.time_utils import now, to_iso


class ProductCategory(db.Model):
    """Product grouping with its counting unit (box, strip, bottle...)."""
    __tablename__ = "product_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    unit = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "created_at": to_iso(self.created_at),
        }


class Product(db.Model):
    """
    Stocked product.

    Soft-deleted via is_active=False; never physically removed while sale
    items reference it. `images` is an ordered list of upload paths.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_category", "is_active", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    category_id = db.Column(
        db.Integer, db.ForeignKey("product_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    images = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=now)
    updated_at = db.Column(db.DateTime, nullable=False, default=now, onupdate=now)

    category = db.relationship("ProductCategory", backref=db.backref("products", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def to_dict(self, include_category: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": to_number(self.price),
            "cost_price": to_number(self.cost_price),
            "stock": self.stock,
            "min_stock": self.min_stock,
            "category_id": self.category_id,
            "images": list(self.images or []),
            "is_active": self.is_active,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }
        if include_category:
            data["category"] = self.category.to_dict() if self.category else None
        return data


class Service(db.Model):
    """Billable clinic service (consultation, injection, dressing...). Soft-deleted."""
    __tablename__ = "services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": to_number(self.price),
            "is_active": self.is_active,
            "created_at": to_iso(self.created_at),
        }
