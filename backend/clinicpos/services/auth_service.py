# Overview: Service-layer operations for users and credentials.

"""
Authentication and user management service.

WHY: Every sale must be attributable to a staff account. Uses bcrypt for
password hashing. Only administrators create or modify users.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters, must mix letters and digits
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import bcrypt

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User, ROLES, ROLE_EMPLOYEE
from ..validation import Patch, PayloadReader, UNSET
from clinicpos.time_utils import now

MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain letters and digits")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt verification; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _username_taken(username: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(User).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def create_user(username: str, name: str, password: str, role: str = ROLE_EMPLOYEE) -> User:
    """
    Create a staff account.

    Raises:
        ValidationError: duplicate username, bad role, weak password
    """
    username = (username or "").strip()
    name = (name or "").strip()
    role = (role or ROLE_EMPLOYEE).strip().upper()
    if not username:
        raise ValidationError("username is required")
    if not name:
        raise ValidationError("name is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    if _username_taken(username):
        raise ValidationError("Username already exists")

    user = User(
        username=username,
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns the active User if credentials are valid, None otherwise.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = now()
    db.session.commit()
    return user


@dataclass
class UserPatch(Patch):
    username: Any = UNSET
    name: Any = UNSET
    role: Any = UNSET
    is_active: Any = UNSET
    password: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict | None) -> "UserPatch":
        reader = PayloadReader(payload, partial=True)
        patch = cls(
            username=reader.text("username", required=True, max_length=64),
            name=reader.text("name", required=True, max_length=128),
            role=reader.choice("role", ROLES),
            is_active=reader.boolean("is_active"),
            password=reader.text("password"),
        )
        if patch.password is not UNSET:
            validate_password_strength(patch.password)
        return patch


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(include_inactive: bool = False) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.id.asc()).all()


def update_user(user_id: int, patch: UserPatch, acting_user: User) -> User:
    """
    Apply an admin edit to a user.

    An administrator may not demote or deactivate their own account.
    """
    user = get_user(user_id)

    if user.id == acting_user.id:
        if patch.role is not UNSET and patch.role != user.role:
            raise ForbiddenError("You cannot change your own role")
        if patch.is_active is False:
            raise ForbiddenError("You cannot deactivate your own account")

    if patch.username is not UNSET and patch.username != user.username:
        if _username_taken(patch.username, exclude_id=user.id):
            raise ValidationError("Username already exists")

    changes = patch.changes()
    password = changes.pop("password", None)
    for key, value in changes.items():
        setattr(user, key, value)
    if password:
        user.password_hash = hash_password(password)

    db.session.commit()

    if patch.is_active is False:
        from . import session_service
        session_service.revoke_all_user_sessions(user.id, reason="User deactivated")

    return user


def deactivate_user(user_id: int, acting_user: User) -> User:
    return update_user(user_id, UserPatch(is_active=False), acting_user)
