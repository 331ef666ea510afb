# backend/shoppos/routes/purchases.py
"""
Purchase order routes (admin, manager).

- POST /api/purchases                 create pending purchase from items
- GET  /api/purchases                 list (limit, offset, start, end, supplier_id, status)
- GET  /api/purchases/<id>            purchase with items
- PUT  /api/purchases/<id>            edit header of a pending purchase
- PUT  /api/purchases/<id>/status     {"status": "received" | "cancelled", "received_date"?}
"""

from flask import Blueprint, g, request

from ..commands import parse_purchase, parse_purchase_status, parse_purchase_update
from ..services import purchase_service
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import arg_datetime, arg_int, json_body

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_purchase():
    command = parse_purchase(json_body())
    purchase = purchase_service.create_purchase(g.current_user.id, command)
    return purchase.to_dict(), 201


@purchases_bp.get("")
@require_auth
@require_role(*STAFF_ROLES)
def list_purchases():
    return purchase_service.list_purchases(
        limit=arg_int("limit"),
        offset=arg_int("offset"),
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        supplier_id=arg_int("supplier_id"),
        status=request.args.get("status") or None,
    )


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_role(*STAFF_ROLES)
def get_purchase(purchase_id: int):
    return purchase_service.get_purchase(purchase_id).to_dict()


@purchases_bp.put("/<int:purchase_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_purchase(purchase_id: int):
    fields = parse_purchase_update(json_body())
    return purchase_service.update_purchase(purchase_id, fields).to_dict()


@purchases_bp.put("/<int:purchase_id>/status")
@require_auth
@require_role(*STAFF_ROLES)
def update_purchase_status(purchase_id: int):
    command = parse_purchase_status(json_body())
    return purchase_service.update_purchase_status(purchase_id, command).to_dict()
