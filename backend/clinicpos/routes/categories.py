from flask import Blueprint, request

from ..decorators import require_auth
from ..responses import ok
from ..services import categories_service
from ..services.categories_service import CategoryPatch

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    return ok(categories_service.list_categories())


@categories_bp.get("/<int:category_id>")
@require_auth
def get_category_route(category_id: int):
    return ok(categories_service.get_category(category_id).to_dict())


@categories_bp.post("")
@require_auth
def create_category_route():
    patch = CategoryPatch.from_payload(request.get_json(silent=True), partial=False)
    category = categories_service.create_category(patch)
    return ok(category.to_dict(), message="Category created", status=201)


@categories_bp.put("/<int:category_id>")
@require_auth
def update_category_route(category_id: int):
    patch = CategoryPatch.from_payload(request.get_json(silent=True), partial=True)
    category = categories_service.update_category(category_id, patch)
    return ok(category.to_dict(), message="Category updated")


@categories_bp.delete("/<int:category_id>")
@require_auth
def delete_category_route(category_id: int):
    categories_service.delete_category(category_id)
    return ok(message="Category deleted")
