# Overview: Flask API routes for suppliers.

from flask import Blueprint

from ..services import supplier_service
from ..models import Supplier
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_contact
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import arg_bool, arg_int, json_body

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "email", "phone", "address", "gstin",
        "contact_person", "supplier_type", "active",
    },
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers():
    return supplier_service.list_suppliers(
        limit=arg_int("limit"),
        offset=arg_int("offset"),
        active=arg_bool("active"),
    )


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier(supplier_id: int):
    return supplier_service.get_supplier(supplier_id)


@suppliers_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_supplier():
    patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=False)
    enforce_rules_contact(patch)
    return supplier_service.create_supplier(patch=patch), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_supplier(supplier_id: int):
    patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=True)
    enforce_rules_contact(patch)
    return supplier_service.update_supplier(supplier_id=supplier_id, patch=patch)


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_supplier(supplier_id: int):
    supplier_service.delete_supplier(supplier_id=supplier_id)
    return {"ok": True}, 200
