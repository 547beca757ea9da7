# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

Create and update accept multipart/form-data so images can be uploaded in
the same request (field `images`, repeatable). On update, `existing_images`
is a JSON array of the image paths to keep; paths left out are deleted.
JSON bodies are accepted too when no files are sent.
"""
from flask import Blueprint, request

from ..decorators import require_auth
from ..pagination import page_args
from ..responses import ok, paginated, request_payload, flag_arg
from ..services import products_service
from ..services.file_store import uploaded_files
from ..services.products_service import ProductPatch
from ..validation import PayloadReader

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - search: substring of name or description
    - category_id: int
    - low_stock: true to return only products at or below min_stock
    - include_inactive: true to include soft-deleted products
    - page, limit
    """
    page, limit = page_args()
    items, pagination = products_service.list_products(
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        low_stock=flag_arg("low_stock"),
        include_inactive=flag_arg("include_inactive"),
        page=page,
        limit=limit,
    )
    return paginated(items, pagination)


@products_bp.get("/low-stock")
@require_auth
def low_stock_products():
    return ok(products_service.low_stock_list())


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    return ok(products_service.product_detail(product))


@products_bp.post("")
@require_auth
def create_product_route():
    patch = ProductPatch.from_payload(request_payload(), partial=False)
    product = products_service.create_product(patch, uploads=uploaded_files(request.files, "images"))
    return ok(products_service.product_detail(product), message="Product created", status=201)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request_payload()
    patch = ProductPatch.from_payload(payload, partial=True)
    keep_images = PayloadReader(payload, partial=True).string_list("existing_images")

    product = products_service.update_product(
        product_id,
        patch,
        keep_images=keep_images,
        uploads=uploaded_files(request.files, "images"),
    )
    return ok(products_service.product_detail(product), message="Product updated")


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """Soft delete: the product stays referenced by past sales."""
    products_service.delete_product(product_id)
    return ok(message="Product deleted")
