# Overview: Flask API routes for categories.

from flask import Blueprint

from ..services import category_service
from ..models import Category
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import json_body

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories():
    return {"items": category_service.list_categories()}


@categories_bp.get("/<int:category_id>")
@require_auth
def get_category(category_id: int):
    return category_service.get_category(category_id)


@categories_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_category():
    patch = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY, partial=False)
    return category_service.create_category(patch=patch), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_category(category_id: int):
    patch = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY, partial=True)
    return category_service.update_category(category_id=category_id, patch=patch)


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_category(category_id: int):
    category_service.delete_category(category_id=category_id)
    return {"ok": True}, 200
