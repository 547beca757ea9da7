# Overview: Flask API routes for staff account management (administrators only).

from flask import Blueprint, request, g

from ..decorators import require_auth, require_admin
from ..responses import ok, flag_arg
from ..services import auth_service
from ..services.auth_service import UserPatch

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    users = auth_service.list_users(include_inactive=flag_arg("include_inactive"))
    return ok([u.to_dict() for u in users])


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    data = request.get_json(silent=True) or {}
    user = auth_service.create_user(
        username=data.get("username"),
        name=data.get("name"),
        password=data.get("password") or "",
        role=data.get("role"),
    )
    return ok(user.to_dict(), message="User created", status=201)


@users_bp.get("/<int:user_id>")
@require_auth
@require_admin
def get_user_route(user_id: int):
    return ok(auth_service.get_user(user_id).to_dict())


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    patch = UserPatch.from_payload(request.get_json(silent=True))
    user = auth_service.update_user(user_id, patch, acting_user=g.current_user)
    return ok(user.to_dict(), message="User updated")


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def deactivate_user_route(user_id: int):
    """Users are deactivated, never deleted: their sales stay attributed."""
    user = auth_service.deactivate_user(user_id, acting_user=g.current_user)
    return ok(user.to_dict(), message="User deactivated")
