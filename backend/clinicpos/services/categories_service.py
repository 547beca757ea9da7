from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, ProductCategory
from ..validation import Patch, PayloadReader, UNSET


@dataclass
class CategoryPatch(Patch):
    name: Any = UNSET
    unit: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None, *, partial: bool) -> "CategoryPatch":
        reader = PayloadReader(payload, partial=partial)
        return cls(
            name=reader.text("name", required=True, max_length=128, message="Category name is required"),
            unit=reader.text("unit", required=True, max_length=32, message="Unit is required"),
        )


def _name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(ProductCategory.id).filter(func.lower(ProductCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(ProductCategory.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _active_product_count(category_id: int) -> int:
    return db.session.query(Product).filter(
        Product.category_id == category_id,
        Product.is_active.is_(True),
    ).count()


def get_category(category_id: int) -> ProductCategory:
    category = db.session.get(ProductCategory, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def list_categories() -> list[dict]:
    product_count = (
        db.session.query(func.count(Product.id))
        .filter(Product.category_id == ProductCategory.id, Product.is_active.is_(True))
        .correlate(ProductCategory)
        .scalar_subquery()
    )
    rows = db.session.query(ProductCategory, product_count.label("product_count")).order_by(
        ProductCategory.name.asc()
    ).all()

    result = []
    for category, count in rows:
        data = category.to_dict()
        data["product_count"] = int(count or 0)
        result.append(data)
    return result


def create_category(patch: CategoryPatch) -> ProductCategory:
    if _name_taken(patch.name):
        raise ValidationError("Category name already exists")

    category = ProductCategory()
    patch.apply_to(category)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category_id: int, patch: CategoryPatch) -> ProductCategory:
    category = get_category(category_id)
    if patch.name is not UNSET and _name_taken(patch.name, exclude_id=category.id):
        raise ValidationError("Category name already exists")

    patch.apply_to(category)
    db.session.commit()
    return category


def delete_category(category_id: int) -> None:
    """Delete a category no active product refers to."""
    category = get_category(category_id)

    count = _active_product_count(category.id)
    if count > 0:
        raise ValidationError(
            f"Cannot delete category: {count} active product(s) still use it",
            details={"product_count": count},
        )

    # Archived products lose their category
    detached = db.session.query(Product).filter(Product.category_id == category.id).update(
        {Product.category_id: None}, synchronize_session="fetch"
    )

    db.session.delete(category)
    db.session.commit()
    if detached:
        current_app.logger.info("Deleted category %s; detached %s archived product(s)", category_id, detached)
