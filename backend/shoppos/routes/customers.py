# Overview: Flask API routes for customers. Cashiers may add and edit; only staff delete.

from flask import Blueprint, request

from ..services import customer_service
from ..models import Customer
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_contact
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import arg_int, json_body

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "gstin", "loyalty_points", "active"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    return customer_service.list_customers(limit=arg_int("limit"), offset=arg_int("offset"))


@customers_bp.get("/search")
@require_auth
def search_customers():
    q = request.args.get("q", "")
    return {"items": customer_service.search_customers(q, limit=arg_int("limit", 20))}


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    return customer_service.get_customer(customer_id)


@customers_bp.post("")
@require_auth
def create_customer():
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_contact(patch)
    return customer_service.create_customer(patch=patch), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer(customer_id: int):
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_contact(patch)
    return customer_service.update_customer(customer_id=customer_id, patch=patch)


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_customer(customer_id: int):
    customer_service.delete_customer(customer_id=customer_id)
    return {"ok": True}, 200
