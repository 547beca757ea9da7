# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth
from ..pagination import page_args
from ..responses import ok, paginated, request_payload
from ..services import customers_service
from ..services.customers_service import CustomerPatch
from ..services.visibility_service import current_scope

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _image_upload():
    upload = request.files.get("image")
    if upload and upload.filename:
        return upload
    return None


@customers_bp.get("")
@require_auth
def list_customers_route():
    """
    Query params:
    - search: substring of first name, last name or phone
    - page, limit
    """
    page, limit = page_args()
    items, pagination = customers_service.list_customers(
        current_scope(),
        search=request.args.get("search"),
        page=page,
        limit=limit,
    )
    return paginated(items, pagination)


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    return ok(customers_service.get_customer(customer_id, current_scope()))


@customers_bp.post("")
@require_auth
def create_customer_route():
    patch = CustomerPatch.from_payload(request_payload(), partial=False)
    customer = customers_service.create_customer(patch, image=_image_upload())
    return ok(customer.to_dict(), message="Customer created", status=201)


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    patch = CustomerPatch.from_payload(request_payload(), partial=True)
    customer = customers_service.update_customer(
        customer_id, patch, current_scope(), image=_image_upload()
    )
    return ok(customer.to_dict(), message="Customer updated")


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    customers_service.delete_customer(customer_id, current_scope())
    return ok(message="Customer deleted")
