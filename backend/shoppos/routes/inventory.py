# backend/shoppos/routes/inventory.py
"""
Inventory forecasting routes (admin, manager).

GET /api/inventory/forecast
    ?forecast_days=30 &lookback_days=90 &method=moving_average &category=all
    Rows sorted by risk (critical first).

POST /api/inventory/generate-po
    {"supplier_id": 1, "product_ids": [1, 2], "forecast_days"?: 30, "method"?}
    Creates a pending purchase using each product's recommended order quantity.
"""

from flask import Blueprint, g, request

from ..commands import parse_forecast_query
from ..errors import ValidationError
from ..validation import FieldErrors, coerce_int
from ..services import forecast_service
from ..decorators import require_auth, require_role
from ..permissions import STAFF_ROLES
from .helpers import json_body

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/forecast")
@require_auth
@require_role(*STAFF_ROLES)
def forecast():
    query = parse_forecast_query(request.args)
    rows = forecast_service.get_forecast(
        forecast_days=query.forecast_days,
        lookback_days=query.lookback_days,
        method=query.method,
        category=query.category,
    )
    return {"items": rows, "count": len(rows)}


@inventory_bp.post("/generate-po")
@require_auth
@require_role(*STAFF_ROLES)
def generate_po():
    data = json_body()
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    errors = FieldErrors()

    supplier_id = None
    try:
        supplier_id = coerce_int("supplier_id", data.get("supplier_id"))
    except ValueError as e:
        errors.add("supplier_id", str(e))

    product_ids = data.get("product_ids")
    if not isinstance(product_ids, list) or not product_ids:
        errors.add("product_ids", "product_ids must be a non-empty list")
        product_ids = []
    parsed_ids = []
    for index, raw in enumerate(product_ids):
        try:
            parsed_ids.append(coerce_int(f"product_ids[{index}]", raw))
        except ValueError as e:
            errors.add(f"product_ids[{index}]", str(e))

    forecast_days = 30
    if data.get("forecast_days") is not None:
        try:
            forecast_days = coerce_int("forecast_days", data.get("forecast_days"))
        except ValueError as e:
            errors.add("forecast_days", str(e))

    errors.raise_if_any()

    purchase = forecast_service.generate_purchase_order(
        g.current_user.id,
        supplier_id,
        parsed_ids,
        forecast_days=forecast_days,
        method=data.get("method") or forecast_service.METHOD_MOVING_AVERAGE,
    )
    return {
        "message": "Purchase order generated successfully",
        "purchase_order": purchase.to_dict(),
    }, 201
