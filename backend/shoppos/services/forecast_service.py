"""
Inventory Forecast Service

Heuristic demand forecast per product from recent sales velocity.

The computation is split in two:
- compute_forecast_row(): a pure function over ProductSnapshot / SaleRecord
  values (no database, no clock), deterministic for equal inputs
- get_forecast(): gathers active products and their sales inside the
  lookback window, then applies the pure function to each product

All intermediate arithmetic uses fractions.Fraction so ceil() results are
exact (e.g. 30 units over 30 days is exactly 1 unit/day, never 1.0000001).

Formulas (u = average daily usage, f = forecast days):
    u                   = total_sold / lookback_days
    forecasted_demand   = ceil(u * f * method multiplier)
    days_until_stockout = ceil(stock / u), or 999 when u == 0
    safety_stock        = ceil(u * 7)
    reorder_point       = ceil(u * 14) + safety_stock
    order_quantity      = ceil(u * 30)
    risk                = critical <= 3 < high <= 7 < medium <= 14 < low
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Iterable

from ..commands import PurchaseCommand, PurchaseItemCommand
from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Product, Sale, SaleItem
from ..money import money_str, quantize
from ..time_utils import to_utc_z, utcnow


METHOD_MOVING_AVERAGE = "moving_average"
METHOD_EXPONENTIAL_SMOOTHING = "exponential_smoothing"
METHOD_LINEAR_REGRESSION = "linear_regression"
METHOD_SEASONAL_ANALYSIS = "seasonal_analysis"

METHODS = (
    METHOD_MOVING_AVERAGE,
    METHOD_EXPONENTIAL_SMOOTHING,
    METHOD_LINEAR_REGRESSION,
    METHOD_SEASONAL_ANALYSIS,
)

# Demand multipliers applied on top of u * f
_METHOD_FACTORS = {
    METHOD_MOVING_AVERAGE: Fraction(1),
    METHOD_EXPONENTIAL_SMOOTHING: Fraction(11, 10),
    METHOD_LINEAR_REGRESSION: Fraction(6, 5),
    METHOD_SEASONAL_ANALYSIS: Fraction(23, 20),
}

NO_STOCKOUT_DAYS = 999
SAFETY_STOCK_DAYS = 7
REORDER_COVER_DAYS = 14
ORDER_COVER_DAYS = 30
LOOKBACK_MULTIPLIER = 3

RISK_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    sku: str
    category: str
    stock_quantity: int
    price: Decimal


@dataclass(frozen=True)
class SaleRecord:
    product_id: int
    quantity: int
    sold_at: datetime


@dataclass(frozen=True)
class ForecastRow:
    product_id: int
    product_name: str
    sku: str
    category: str
    current_stock: int
    price: str
    average_daily_usage: float
    forecasted_demand: int
    safety_stock: int
    recommended_reorder_point: int
    recommended_order_quantity: int
    days_until_stockout: int
    trend: str
    risk_level: str
    last_sale_date: str

    def to_dict(self) -> dict:
        return asdict(self)


def _round_one_decimal(value: Fraction) -> float:
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    return float(exact.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def classify_risk(days_until_stockout: int) -> str:
    if days_until_stockout <= 3:
        return "critical"
    if days_until_stockout <= 7:
        return "high"
    if days_until_stockout <= 14:
        return "medium"
    return "low"


def classify_trend(recent: int, older: int) -> str:
    if recent > older * Fraction(11, 10):
        return "increasing"
    if recent < older * Fraction(9, 10):
        return "decreasing"
    return "stable"


def _validate_params(forecast_days, lookback_days, method) -> None:
    errors = []
    if not isinstance(forecast_days, int) or isinstance(forecast_days, bool) or forecast_days <= 0:
        errors.append({"field": "forecast_days", "message": "forecast_days must be a positive integer"})
    if not isinstance(lookback_days, int) or isinstance(lookback_days, bool) or lookback_days <= 0:
        errors.append({"field": "lookback_days", "message": "lookback_days must be a positive integer"})
    if method not in METHODS:
        errors.append({"field": "method", "message": f"method must be one of: {', '.join(METHODS)}"})
    if errors:
        raise ValidationError("Invalid forecast parameters", errors=errors)


def compute_forecast_row(
    product: ProductSnapshot,
    sales_in_window: Iterable[SaleRecord],
    forecast_days: int,
    lookback_days: int,
    method: str,
    now: datetime,
) -> ForecastRow:
    """
    Forecast one product from the sales already selected for the lookback
    window. Sales for other products are ignored.
    """
    _validate_params(forecast_days, lookback_days, method)

    matching = [s for s in sales_in_window if s.product_id == product.id]
    total_sold = sum(s.quantity for s in matching)
    last_sale = max((s.sold_at for s in matching), default=None)

    usage = Fraction(total_sold, lookback_days)
    demand = usage * forecast_days * _METHOD_FACTORS[method]

    cutoff = now - timedelta(days=lookback_days // 2)
    recent = sum(s.quantity for s in matching if s.sold_at >= cutoff)
    older = total_sold - recent

    stock = product.stock_quantity
    days_until_stockout = math.ceil(Fraction(stock) / usage) if usage > 0 else NO_STOCKOUT_DAYS

    safety_stock = math.ceil(usage * SAFETY_STOCK_DAYS)

    return ForecastRow(
        product_id=product.id,
        product_name=product.name,
        sku=product.sku,
        category=product.category,
        current_stock=stock,
        price=money_str(product.price),
        average_daily_usage=_round_one_decimal(usage),
        forecasted_demand=math.ceil(demand),
        safety_stock=safety_stock,
        recommended_reorder_point=math.ceil(usage * REORDER_COVER_DAYS) + safety_stock,
        recommended_order_quantity=math.ceil(usage * ORDER_COVER_DAYS),
        days_until_stockout=days_until_stockout,
        trend=classify_trend(recent, older),
        risk_level=classify_risk(days_until_stockout),
        last_sale_date=to_utc_z(last_sale) if last_sale else "Never",
    )


def sort_by_risk(rows: list[ForecastRow]) -> list[ForecastRow]:
    """Stable sort: critical, high, medium, low; ties keep input order."""
    return sorted(rows, key=lambda row: RISK_ORDER[row.risk_level])


def _snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        sku=product.sku,
        category=product.category.name if product.category else UNCATEGORIZED,
        stock_quantity=product.stock_quantity,
        price=quantize(Decimal(product.price)),
    )


def _load_sales(product_ids: list[int], start: datetime, end: datetime) -> list[SaleRecord]:
    if not product_ids:
        return []
    rows = (
        db.session.query(SaleItem.product_id, SaleItem.quantity, Sale.created_at)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(
            SaleItem.product_id.in_(product_ids),
            Sale.created_at >= start,
            Sale.created_at <= end,
        )
        .all()
    )
    return [SaleRecord(product_id=pid, quantity=qty, sold_at=sold_at) for pid, qty, sold_at in rows]


def build_forecast(
    *,
    forecast_days: int = 30,
    lookback_days: int | None = None,
    method: str = METHOD_MOVING_AVERAGE,
    category: str = "all",
    product_ids: Iterable[int] | None = None,
    now: datetime | None = None,
) -> list[ForecastRow]:
    if lookback_days is None and isinstance(forecast_days, int):
        lookback_days = forecast_days * LOOKBACK_MULTIPLIER
    _validate_params(forecast_days, lookback_days, method)
    now = now or utcnow()

    query = db.session.query(Product).filter(Product.active.is_(True))
    if product_ids is not None:
        query = query.filter(Product.id.in_(list(product_ids)))
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()

    snapshots = [_snapshot(p) for p in products]
    if category and category != "all":
        snapshots = [s for s in snapshots if s.category == category]

    sales = _load_sales([s.id for s in snapshots], now - timedelta(days=lookback_days), now)

    by_product: dict[int, list[SaleRecord]] = {}
    for record in sales:
        by_product.setdefault(record.product_id, []).append(record)

    rows = [
        compute_forecast_row(snap, by_product.get(snap.id, []), forecast_days, lookback_days, method, now)
        for snap in snapshots
    ]
    return sort_by_risk(rows)


def get_forecast(
    forecast_days: int = 30,
    lookback_days: int | None = None,
    method: str = METHOD_MOVING_AVERAGE,
    category: str = "all",
    now: datetime | None = None,
) -> list[dict]:
    rows = build_forecast(
        forecast_days=forecast_days,
        lookback_days=lookback_days,
        method=method,
        category=category,
        now=now,
    )
    return [row.to_dict() for row in rows]


def generate_purchase_order(
    operator_id: int,
    supplier_id: int,
    product_ids: list[int],
    forecast_days: int = 30,
    method: str = METHOD_MOVING_AVERAGE,
    now: datetime | None = None,
):
    """
    Create a pending purchase for `product_ids`, ordering each product's
    recommended_order_quantity (at least 1) at its current cost.
    """
    from . import purchase_service

    if not product_ids:
        raise ValidationError.for_field("product_ids", "product_ids must be a non-empty list")

    wanted = list(dict.fromkeys(product_ids))
    products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(wanted)).all()}
    missing = [pid for pid in wanted if pid not in products]
    if missing:
        raise NotFoundError(
            f"Product not found: {', '.join(str(pid) for pid in missing)}",
            details={"product_ids": missing},
        )

    now = now or utcnow()
    rows = build_forecast(forecast_days=forecast_days, method=method, product_ids=wanted, now=now)
    quantities = {row.product_id: max(1, row.recommended_order_quantity) for row in rows}

    items = tuple(
        PurchaseItemCommand(
            product_id=pid,
            # Inactive products are not forecast; order the minimum
            quantity=quantities.get(pid, 1),
            unit_cost=quantize(Decimal(products[pid].cost or 0)),
        )
        for pid in wanted
    )
    command = PurchaseCommand(
        supplier_id=supplier_id,
        items=items,
        expected_date=now + timedelta(days=7),
        notes="Generated from inventory forecasting analysis",
    )
    return purchase_service.create_purchase(operator_id, command)
