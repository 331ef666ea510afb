# Overview: Flask API routes for dashboard aggregates (any authenticated user).

from flask import Blueprint

from ..services import dashboard_service
from ..decorators import require_auth
from .helpers import arg_datetime, arg_int

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
def stats():
    return dashboard_service.get_stats()


@dashboard_bp.get("/sales-chart")
@require_auth
def sales_chart():
    return {"items": dashboard_service.get_sales_chart(days=arg_int("days", 7))}


@dashboard_bp.get("/top-products")
@require_auth
def top_products():
    return {
        "items": dashboard_service.get_top_products(
            limit=arg_int("limit", 5),
            start=arg_datetime("start"),
            end=arg_datetime("end"),
        )
    }
