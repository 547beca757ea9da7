from flask import Blueprint, request

from ..decorators import require_auth
from ..pagination import page_args
from ..responses import ok, paginated, flag_arg
from ..services import service_catalog_service
from ..services.service_catalog_service import ServicePatch

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


@services_bp.get("")
@require_auth
def list_services_route():
    page, limit = page_args()
    items, pagination = service_catalog_service.list_services(
        search=request.args.get("search"),
        include_inactive=flag_arg("include_inactive"),
        page=page,
        limit=limit,
    )
    return paginated(items, pagination)


@services_bp.get("/<int:service_id>")
@require_auth
def get_service_route(service_id: int):
    return ok(service_catalog_service.get_service(service_id).to_dict())


@services_bp.post("")
@require_auth
def create_service_route():
    patch = ServicePatch.from_payload(request.get_json(silent=True), partial=False)
    service = service_catalog_service.create_service(patch)
    return ok(service.to_dict(), message="Service created", status=201)


@services_bp.put("/<int:service_id>")
@require_auth
def update_service_route(service_id: int):
    patch = ServicePatch.from_payload(request.get_json(silent=True), partial=True)
    service = service_catalog_service.update_service(service_id, patch)
    return ok(service.to_dict(), message="Service updated")


@services_bp.delete("/<int:service_id>")
@require_auth
def delete_service_route(service_id: int):
    service_catalog_service.delete_service(service_id)
    return ok(message="Service deleted")
