# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Accounts are created by administrators only (POST /api/users or
`flask users create`); there is no self-registration.
"""

from flask import Blueprint, request, g, current_app

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, bearer_token
from ..errors import UnauthorizedError, ValidationError
from ..responses import ok


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    The token must be sent as `Authorization: Bearer <token>` on every
    protected route.
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not username or not password:
        raise ValidationError("username and password are required")

    user = auth_service.authenticate(username, password)
    if not user:
        current_app.logger.warning("Failed login for username=%s from %s", username, request.remote_addr)
        raise UnauthorizedError("Invalid username or password")

    session, token = session_service.create_session(
        user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    current_app.logger.info("User %s logged in", user.id)

    return ok(
        {
            "token": token,
            "expires_at": session.expires_at.isoformat(),
            "user": user.to_dict(),
        },
        message="Login successful",
    )


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token(), reason="User logout")
    return ok(message="Logged out")


@auth_bp.get("/me")
@require_auth
def me_route():
    return ok(g.current_user.to_dict())
