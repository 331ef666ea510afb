# backend/shoppos/routes/users.py
"""
User management routes.

- GET  /api/users              admin
- POST /api/users              admin
- GET  /api/users/roles        any authenticated user
- PUT  /api/users/<id>         self (profile fields) or admin
- PUT  /api/users/<id>/status  admin
- PUT  /api/users/<id>/role    admin
"""

from flask import Blueprint, g

from ..errors import ValidationError
from ..models import User, ROLE_ADMIN
from ..permissions import list_roles
from ..services import user_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_contact
from ..decorators import require_auth, require_role
from .helpers import arg_bool, json_body

USER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "username", "role", "active"},
    required_on_create={"name", "email"},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _split_password(payload) -> tuple[dict, object]:
    """Pull the plaintext password out before column validation."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    return payload, payload.pop("password", None)


@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users():
    return {"items": user_service.list_users(active=arg_bool("active"))}


@users_bp.get("/roles")
@require_auth
def roles():
    return {"items": list_roles()}


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user():
    payload, password = _split_password(json_body())
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    enforce_rules_contact(patch)
    return user_service.create_user(patch=patch, password=password), 201


@users_bp.put("/<int:user_id>")
@require_auth
def update_user(user_id: int):
    payload, password = _split_password(json_body())
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    enforce_rules_contact(patch)
    return user_service.update_user(actor=g.current_user, user_id=user_id, patch=patch, password=password)


@users_bp.put("/<int:user_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def set_status(user_id: int):
    data = json_body() or {}
    return user_service.set_user_status(actor=g.current_user, user_id=user_id, active=data.get("active"))


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_role(ROLE_ADMIN)
def set_role(user_id: int):
    data = json_body() or {}
    return user_service.set_user_role(actor=g.current_user, user_id=user_id, role=data.get("role"))
