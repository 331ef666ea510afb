# backend/shoppos/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations: any authenticated user
- Write operations: admin or manager
"""
from flask import Blueprint, request

from ..services import products_service
from ..models import Product
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import arg_bool, arg_int, json_body

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "sku", "barcode",
        "price", "cost", "mrp", "weight", "weight_unit",
        "category_id", "stock_quantity", "alert_threshold", "active",
    },
    required_on_create={"name", "sku", "price", "category_id"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products ordered by name.

    Query params:
    - limit / offset: pagination (default 50, max 500)
    - category_id: int (optional)
    - active: true/false (optional)
    """
    return products_service.list_products(
        limit=arg_int("limit"),
        offset=arg_int("offset"),
        category_id=arg_int("category_id"),
        active=arg_bool("active"),
    )


@products_bp.get("/search")
@require_auth
def search_products():
    """Search by name, SKU or barcode (?q=...)."""
    q = request.args.get("q", "")
    return {"items": products_service.search_products(q, limit=arg_int("limit", 20))}


@products_bp.get("/low-stock")
@require_auth
def low_stock_products():
    return {"items": products_service.low_stock_products(limit=arg_int("limit", 10))}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    return products_service.get_product(product_id)


@products_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_product_route():
    patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    return products_service.create_product(patch=patch), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_product_route(product_id: int):
    patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    return products_service.update_product(product_id=product_id, patch=patch)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_product_route(product_id: int):
    """Referenced products are rejected with 409; deactivate them instead."""
    products_service.delete_product(product_id=product_id)
    return {"ok": True}, 200
