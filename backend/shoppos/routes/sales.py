# backend/shoppos/routes/sales.py
"""
Sales routes. Any authenticated operator can ring up and view sales.

POST /api/sales body:
    {
      "items": [{"product_id": 1, "quantity": 2, "unit_price": "9.99"}],
      "customer_id": 3,            optional
      "tax": "1.00",               optional, absolute amount
      "discount": "0.50",          optional, absolute amount
      "payment_method": "cash",    optional
      "notes": "..."               optional
    }

Insufficient stock answers 409 with per-product details and changes nothing.
"""

from flask import Blueprint, g

from ..commands import parse_sale
from ..services import sales_service
from ..decorators import require_auth
from .helpers import arg_datetime, arg_int, json_body

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale():
    command = parse_sale(json_body())
    sale = sales_service.create_sale(g.current_user.id, command)
    return sale.to_dict(), 201


@sales_bp.get("")
@require_auth
def list_sales():
    return sales_service.list_sales(
        limit=arg_int("limit"),
        offset=arg_int("offset"),
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        user_id=arg_int("user_id"),
        customer_id=arg_int("customer_id"),
    )


@sales_bp.get("/recent")
@require_auth
def recent_sales():
    return {"items": sales_service.recent_sales(limit=arg_int("limit", 5))}


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale(sale_id: int):
    return sales_service.get_sale(sale_id).to_dict()
