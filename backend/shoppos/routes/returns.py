# Overview: Flask API routes for sale returns (admin, manager).

from flask import Blueprint, g

from ..commands import parse_return
from ..services import return_service
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import arg_int, json_body

returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_return():
    """
    Body: {"sale_id": 1, "items": [{"product_id": 2, "quantity": 1}],
           "refund_method"?, "reason"?, "notes"?}
    Refunds are priced at the sale's unit price; stock is restored.
    """
    command = parse_return(json_body())
    sale_return = return_service.create_return(g.current_user.id, command)
    return sale_return.to_dict(), 201


@returns_bp.get("")
@require_auth
@require_role(*STAFF_ROLES)
def list_returns():
    return return_service.list_returns(
        limit=arg_int("limit"),
        offset=arg_int("offset"),
        sale_id=arg_int("sale_id"),
    )


@returns_bp.get("/<int:return_id>")
@require_auth
@require_role(*STAFF_ROLES)
def get_return(return_id: int):
    return return_service.get_return(return_id).to_dict()


@returns_bp.get("/sales/<int:sale_id>/returnable")
@require_auth
@require_role(*STAFF_ROLES)
def returnable(sale_id: int):
    remaining = return_service.returnable_quantities(sale_id)
    return {
        "sale_id": sale_id,
        "items": [{"product_id": pid, "returnable_quantity": qty} for pid, qty in sorted(remaining.items())],
    }
