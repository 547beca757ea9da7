# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Products Service

Products are never physically deleted: sale items keep referencing them,
so deletion clears is_active instead. Images are managed through the
file store and capped at MAX_IMAGES_PER_ENTITY per product.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, ProductCategory
from ..pagination import paginate
from ..validation import Patch, PayloadReader, UNSET, enforce_image_cap
from .dashboard_service import low_stock_query
from .file_store import get_file_store, replace_images

UPLOAD_FOLDER = "products"


@dataclass
class ProductPatch(Patch):
    name: Any = UNSET
    description: Any = UNSET
    price: Any = UNSET
    cost_price: Any = UNSET
    stock: Any = UNSET
    min_stock: Any = UNSET
    category_id: Any = UNSET
    is_active: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None, *, partial: bool) -> "ProductPatch":
        reader = PayloadReader(payload, partial=partial)
        return cls(
            name=reader.text("name", required=True, max_length=255, message="Product name is required"),
            description=reader.text("description", nullable=True),
            price=reader.money("price", required=True, positive=True, message="price must be greater than 0"),
            cost_price=reader.money("cost_price"),
            stock=reader.integer("stock", minimum=0),
            min_stock=reader.integer("min_stock", minimum=0),
            category_id=reader.integer("category_id", required=True, minimum=1,
                                       message="category_id is required"),
            is_active=reader.boolean("is_active"),
        )


def _require_category(category_id: int) -> None:
    if not db.session.get(ProductCategory, category_id):
        raise ValidationError("Category not found")


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def product_detail(product: Product) -> dict:
    data = product.to_dict()
    data["is_low_stock"] = product.is_low_stock
    data["is_out_of_stock"] = product.stock <= 0
    return data


def list_products(
    *,
    search: str | None = None,
    category_id: int | None = None,
    low_stock: bool = False,
    include_inactive: bool = False,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], dict]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if low_stock:
        query = query.filter(Product.stock <= Product.min_stock)

    rows, pagination = paginate(query.order_by(Product.created_at.desc(), Product.id.desc()), page, limit)
    return [product_detail(p) for p in rows], pagination


def low_stock_list() -> list[dict]:
    """Active products at or below their minimum stock, emptiest first."""
    products = low_stock_query().order_by(Product.stock.asc(), Product.name.asc()).all()
    return [
        {
            "id": p.id,
            "name": p.name,
            "stock": p.stock,
            "min_stock": p.min_stock,
            "category": p.category.to_dict() if p.category else None,
        }
        for p in products
    ]


def create_product(patch: ProductPatch, uploads=None) -> Product:
    uploads = list(uploads or [])
    limit = current_app.config["MAX_IMAGES_PER_ENTITY"]
    enforce_image_cap(len(uploads), limit)
    _require_category(patch.category_id)

    product = Product()
    patch.apply_to(product)
    if patch.cost_price is UNSET:
        product.cost_price = patch.price
    if patch.stock is UNSET:
        product.stock = 0
    if patch.min_stock is UNSET:
        product.min_stock = current_app.config["DEFAULT_MIN_STOCK"]
    if patch.is_active is UNSET:
        product.is_active = True

    store = get_file_store()
    product.images = [store.save(upload, UPLOAD_FOLDER, "product") for upload in uploads] or None

    db.session.add(product)
    db.session.commit()
    current_app.logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(product_id: int, patch: ProductPatch, *, keep_images=UNSET, uploads=None) -> Product:
    """
    Apply a partial update.

    keep_images: the image paths the client retains; UNSET keeps all of
    them. New uploads are appended after the kept images.
    """
    product = get_product(product_id)
    if patch.category_id is not UNSET:
        _require_category(patch.category_id)

    patch.apply_to(product)

    removed: list[str] = []
    uploads = list(uploads or [])
    if keep_images is not UNSET or uploads:
        images, removed = replace_images(
            product.images,
            None if keep_images is UNSET else keep_images,
            uploads,
            folder=UPLOAD_FOLDER,
            prefix="product",
            limit=current_app.config["MAX_IMAGES_PER_ENTITY"],
        )
        product.images = images or None

    db.session.commit()
    get_file_store().delete_many(removed)
    return product


def delete_product(product_id: int) -> Product:
    product = get_product(product_id)
    product.is_active = False
    db.session.commit()
    return product
