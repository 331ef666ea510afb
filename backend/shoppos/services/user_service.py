# Overview: User administration (listing, profile edits, role and status changes).

"""
User management.

Admins manage every account. Non-admins may only edit their own profile
(name, email, username, password); role and active flag are admin-only.
An admin cannot deactivate or demote themselves, so the system always keeps
at least the acting admin.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import AuthorizationError, ValidationError
from ..models import User, ROLES, ROLE_ADMIN
from . import auth_service, session_service
from .common import commit_or_duplicate, get_or_404

PROFILE_FIELDS = {"name", "email", "username", "password"}
ADMIN_ONLY_FIELDS = {"role", "active"}


def list_users(*, active: bool | None = None) -> list[dict]:
    query = db.session.query(User)
    if active is not None:
        query = query.filter(User.active.is_(active))
    return [u.to_dict() for u in query.order_by(User.id.asc()).all()]


def get_user(user_id: int) -> dict:
    return get_or_404(User, user_id, "User").to_dict()


def create_user(*, patch: dict, password) -> dict:
    user = auth_service.create_user(
        name=patch["name"],
        email=patch["email"],
        password=password,
        role=patch.get("role") or "cashier",
        username=patch.get("username"),
        active=patch.get("active", True),
    )
    current_app.logger.info("User created id=%s role=%s", user.id, user.role)
    return user.to_dict()


def update_user(*, actor: User, user_id: int, patch: dict, password=None) -> dict:
    """
    Apply a profile edit. `patch` is already validated against the User
    column metadata; `password` is plaintext and re-hashed when provided.
    """
    is_admin = actor.role == ROLE_ADMIN
    if not is_admin and actor.id != user_id:
        raise AuthorizationError("You can only edit your own profile")

    forbidden = ADMIN_ONLY_FIELDS & set(patch)
    if forbidden and not is_admin:
        raise AuthorizationError("Only admins can change role or active status")

    user = get_or_404(User, user_id, "User")

    if "role" in patch:
        _check_role_change(actor, user, patch["role"])
    if "active" in patch:
        _check_status_change(actor, user, patch["active"])

    for key in PROFILE_FIELDS | ADMIN_ONLY_FIELDS:
        if key in patch and key != "password":
            setattr(user, key, patch[key])

    if password is not None:
        user.password_hash = auth_service.hash_password(password)

    commit_or_duplicate("A user with this username or email already exists")

    if patch.get("active") is False:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
    return user.to_dict()


def _check_role_change(actor: User, user: User, role) -> None:
    if role not in ROLES:
        raise ValidationError.for_field("role", f"role must be one of: {', '.join(ROLES)}")
    if actor.id == user.id and role != ROLE_ADMIN:
        raise ValidationError.for_field("role", "You cannot remove your own admin role")


def _check_status_change(actor: User, user: User, active) -> None:
    if not isinstance(active, bool):
        raise ValidationError.for_field("active", "active must be a boolean")
    if actor.id == user.id and not active:
        raise ValidationError.for_field("active", "You cannot deactivate your own account")


def set_user_status(*, actor: User, user_id: int, active) -> dict:
    """Activate or deactivate a user. Deactivation revokes live sessions."""
    user = get_or_404(User, user_id, "User")
    _check_status_change(actor, user, active)

    user.active = active
    db.session.commit()

    if not active:
        revoked = session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
        current_app.logger.info("User id=%s deactivated; %s session(s) revoked", user.id, revoked)
    return user.to_dict()


def set_user_role(*, actor: User, user_id: int, role) -> dict:
    user = get_or_404(User, user_id, "User")
    _check_role_change(actor, user, role)
    user.role = role
    db.session.commit()
    current_app.logger.info("User id=%s role set to %s", user.id, role)
    return user.to_dict()
