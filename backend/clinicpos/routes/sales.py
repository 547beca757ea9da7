# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes.

Visibility: EMPLOYEE callers see only today's sales in the list and never
the first administrator's sales once that administrator has recorded any.
A sale hidden from the list is also refused (403) on direct access.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..pagination import page_args
from ..responses import ok, paginated
from ..services import sales_service
from ..services.sales_service import SalePatch, SaleRequest
from ..services.visibility_service import current_scope

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query params:
    - search: substring of invoice number, customer name or phone
    - status: PAID | UNPAID | TRANSFER
    - page, limit
    """
    page, limit = page_args()
    items, pagination = sales_service.list_sales(
        current_scope(),
        search=request.args.get("search"),
        status=request.args.get("status"),
        page=page,
        limit=limit,
    )
    return paginated(items, pagination)


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id, current_scope())
    return ok(sale.to_dict())


@sales_bp.post("")
@require_auth
def create_sale_route():
    sale_request = SaleRequest.from_payload(request.get_json(silent=True))
    sale = sales_service.create_sale(sale_request, user_id=g.current_user.id, scope=current_scope())
    return ok(sale.to_dict(), message="Sale recorded", status=201)


@sales_bp.put("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    patch = SalePatch.from_payload(request.get_json(silent=True))
    sale = sales_service.update_sale(sale_id, patch, current_scope())
    return ok(sale.to_dict(), message="Sale updated")
