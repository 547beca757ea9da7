# Overview: Service-layer operations for billable clinic services.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import or_

from ..errors import NotFoundError
from ..extensions import db
from ..models import Service
from ..pagination import paginate
from ..validation import Patch, PayloadReader, UNSET


@dataclass
class ServicePatch(Patch):
    name: Any = UNSET
    description: Any = UNSET
    price: Any = UNSET
    is_active: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None, *, partial: bool) -> "ServicePatch":
        reader = PayloadReader(payload, partial=partial)
        return cls(
            name=reader.text("name", required=True, max_length=255, message="Service name is required"),
            description=reader.text("description", nullable=True),
            price=reader.money("price", required=True, message="price must be a number >= 0"),
            is_active=reader.boolean("is_active"),
        )


def get_service(service_id: int) -> Service:
    service = db.session.get(Service, service_id)
    if not service:
        raise NotFoundError("Service not found")
    return service


def list_services(
    *,
    search: str | None = None,
    include_inactive: bool = False,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], dict]:
    query = db.session.query(Service)
    if not include_inactive:
        query = query.filter(Service.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Service.name.ilike(like), Service.description.ilike(like)))

    rows, pagination = paginate(query.order_by(Service.name.asc(), Service.id.asc()), page, limit)
    return [s.to_dict() for s in rows], pagination


def create_service(patch: ServicePatch) -> Service:
    service = Service()
    patch.apply_to(service)
    if patch.is_active is UNSET:
        service.is_active = True
    db.session.add(service)
    db.session.commit()
    return service


def update_service(service_id: int, patch: ServicePatch) -> Service:
    service = get_service(service_id)
    patch.apply_to(service)
    db.session.commit()
    return service


def delete_service(service_id: int) -> Service:
    """Soft delete; past sale items keep their reference."""
    service = get_service(service_id)
    service.is_active = False
    db.session.commit()
    return service
