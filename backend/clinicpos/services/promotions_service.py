# Overview: Service-layer operations for promotions; encapsulates business logic and database work.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Promotion
from ..pagination import paginate
from ..validation import Patch, PayloadReader, UNSET, enforce_image_cap
from .file_store import get_file_store, replace_images
from clinicpos.money import CENT
from clinicpos.time_utils import now

UPLOAD_FOLDER = "promotions"
MAX_PERCENT = Decimal("100")


@dataclass
class PromotionPatch(Patch):
    name: Any = UNSET
    description: Any = UNSET
    discount: Any = UNSET
    is_percent: Any = UNSET
    start_date: Any = UNSET
    end_date: Any = UNSET
    is_active: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None, *, partial: bool) -> "PromotionPatch":
        reader = PayloadReader(payload, partial=partial)
        return cls(
            name=reader.text("name", required=True, max_length=255, message="Promotion name is required"),
            description=reader.text("description", nullable=True),
            discount=reader.money("discount", required=True, positive=True,
                                  message="discount must be greater than 0"),
            is_percent=reader.boolean("is_percent"),
            start_date=reader.timestamp("start_date", required=True, message="start_date is required"),
            end_date=reader.timestamp("end_date", required=True, message="end_date is required"),
            is_active=reader.boolean("is_active"),
        )


def _validate_terms(discount: Decimal, is_percent: bool, start: datetime, end: datetime) -> None:
    if is_percent and discount > MAX_PERCENT:
        raise ValidationError("Percentage discount cannot exceed 100")
    if end < start:
        raise ValidationError("end_date must not be before start_date")


def discount_for(promotion: Promotion, subtotal: Decimal) -> Decimal:
    """Discount amount for a subtotal, never more than the subtotal itself."""
    if promotion.is_percent:
        amount = (subtotal * promotion.discount / Decimal("100")).quantize(CENT)
    else:
        amount = Decimal(promotion.discount)
    return min(amount, subtotal)


def get_promotion(promotion_id: int) -> Promotion:
    promotion = db.session.get(Promotion, promotion_id)
    if not promotion:
        raise NotFoundError("Promotion not found")
    return promotion


def list_promotions(
    *,
    include_inactive: bool = False,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], dict]:
    query = db.session.query(Promotion)
    if not include_inactive:
        query = query.filter(Promotion.is_active.is_(True))
    rows, pagination = paginate(query.order_by(Promotion.created_at.desc(), Promotion.id.desc()), page, limit)
    return [p.to_dict() for p in rows], pagination


def public_promotions(at: datetime | None = None) -> list[dict]:
    """Active promotions whose window contains `at`, newest first."""
    at = at or now()
    promotions = db.session.query(Promotion).filter(
        Promotion.is_active.is_(True),
        Promotion.start_date <= at,
        Promotion.end_date >= at,
    ).order_by(Promotion.created_at.desc(), Promotion.id.desc()).all()
    return [p.to_dict() for p in promotions]


def create_promotion(patch: PromotionPatch, uploads=None) -> Promotion:
    uploads = list(uploads or [])
    enforce_image_cap(len(uploads), current_app.config["MAX_IMAGES_PER_ENTITY"])

    is_percent = bool(patch.is_percent) if patch.is_percent is not UNSET else False
    _validate_terms(patch.discount, is_percent, patch.start_date, patch.end_date)

    promotion = Promotion()
    patch.apply_to(promotion)
    promotion.is_percent = is_percent
    if patch.is_active is UNSET:
        promotion.is_active = True

    store = get_file_store()
    promotion.images = [store.save(upload, UPLOAD_FOLDER, "promotion") for upload in uploads] or None

    db.session.add(promotion)
    db.session.commit()
    return promotion


def update_promotion(promotion_id: int, patch: PromotionPatch, *, keep_images=UNSET, uploads=None) -> Promotion:
    promotion = get_promotion(promotion_id)

    # Validate the merged terms, not just the fields that were sent
    merged = patch.changes()
    _validate_terms(
        merged.get("discount", promotion.discount),
        merged.get("is_percent", promotion.is_percent),
        merged.get("start_date", promotion.start_date),
        merged.get("end_date", promotion.end_date),
    )
    patch.apply_to(promotion)

    removed: list[str] = []
    uploads = list(uploads or [])
    if keep_images is not UNSET or uploads:
        images, removed = replace_images(
            promotion.images,
            None if keep_images is UNSET else keep_images,
            uploads,
            folder=UPLOAD_FOLDER,
            prefix="promotion",
            limit=current_app.config["MAX_IMAGES_PER_ENTITY"],
        )
        promotion.images = images or None

    db.session.commit()
    get_file_store().delete_many(removed)
    return promotion


def delete_promotion(promotion_id: int) -> Promotion:
    promotion = get_promotion(promotion_id)
    promotion.is_active = False
    db.session.commit()
    return promotion
