from __future__ import annotations

from flask import Blueprint, request

from ..decorators import require_auth
from ..pagination import page_args
from ..responses import ok, paginated, request_payload, flag_arg
from ..services import promotions_service
from ..services.file_store import uploaded_files
from ..services.promotions_service import PromotionPatch
from ..validation import PayloadReader

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")


@promotions_bp.route("", methods=["GET"])
@require_auth
def list_promotions():
    page, limit = page_args()
    items, pagination = promotions_service.list_promotions(
        include_inactive=flag_arg("include_inactive"),
        page=page,
        limit=limit,
    )
    return paginated(items, pagination)


@promotions_bp.route("/public", methods=["GET"])
def public_promotions():
    """Storefront listing; no authentication."""
    return ok(promotions_service.public_promotions())


@promotions_bp.route("/<int:promotion_id>", methods=["GET"])
@require_auth
def get_promotion(promotion_id: int):
    return ok(promotions_service.get_promotion(promotion_id).to_dict())


@promotions_bp.route("", methods=["POST"])
@require_auth
def create_promotion():
    patch = PromotionPatch.from_payload(request_payload(), partial=False)
    promotion = promotions_service.create_promotion(patch, uploads=uploaded_files(request.files, "images"))
    return ok(promotion.to_dict(), message="Promotion created", status=201)


@promotions_bp.route("/<int:promotion_id>", methods=["PUT"])
@require_auth
def update_promotion(promotion_id: int):
    payload = request_payload()
    patch = PromotionPatch.from_payload(payload, partial=True)
    keep_images = PayloadReader(payload, partial=True).string_list("existing_images")
    promotion = promotions_service.update_promotion(
        promotion_id,
        patch,
        keep_images=keep_images,
        uploads=uploaded_files(request.files, "images"),
    )
    return ok(promotion.to_dict(), message="Promotion updated")


@promotions_bp.route("/<int:promotion_id>", methods=["DELETE"])
@require_auth
def delete_promotion(promotion_id: int):
    promotions_service.delete_promotion(promotion_id)
    return ok(message="Promotion deleted")
