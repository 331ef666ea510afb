# Overview: Aggregate queries backing the dashboard (stats, sales chart, top products).

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from ..extensions import db
from ..models import Category, Product, Sale, SaleItem
from ..money import ZERO, money_str, quantize
from ..time_utils import start_of_day, utcnow


def get_stats(now: datetime | None = None) -> dict:
    """Headline numbers. "Today" is the current UTC calendar day."""
    now = now or utcnow()
    day_start = start_of_day(now)

    total_products = db.session.query(db.func.count(Product.id)).filter(Product.active.is_(True)).scalar()

    todays_sales, todays_revenue = (
        db.session.query(db.func.count(Sale.id), db.func.coalesce(db.func.sum(Sale.total), 0))
        .filter(Sale.created_at >= day_start, Sale.created_at <= now)
        .one()
    )

    low_stock_items = (
        db.session.query(db.func.count(Product.id))
        .filter(Product.active.is_(True), Product.stock_quantity <= Product.alert_threshold)
        .scalar()
    )

    return {
        "total_products": total_products or 0,
        "todays_sales": todays_sales or 0,
        "todays_revenue": money_str(Decimal(str(todays_revenue or 0))),
        "low_stock_items": low_stock_items or 0,
    }


def get_sales_chart(days: int = 7, now: datetime | None = None) -> list[dict]:
    """
    Daily totals for the last `days` days (today included), oldest first.
    Days without sales are reported with zero totals.
    """
    days = max(1, min(days, 366))
    now = now or utcnow()
    first_day = start_of_day(now) - timedelta(days=days - 1)

    buckets: dict[str, dict] = {}
    for offset in range(days):
        day = (first_day + timedelta(days=offset)).date().isoformat()
        buckets[day] = {"date": day, "total": ZERO, "sales": 0}

    rows = (
        db.session.query(Sale.created_at, Sale.total)
        .filter(Sale.created_at >= first_day, Sale.created_at <= now)
        .all()
    )
    for created_at, total in rows:
        bucket = buckets.get(created_at.date().isoformat())
        if bucket is None:
            continue
        bucket["total"] += Decimal(total)
        bucket["sales"] += 1

    return [
        {"date": b["date"], "total": money_str(quantize(b["total"])), "sales": b["sales"]}
        for b in buckets.values()
    ]


def get_top_products(
    limit: int = 5,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict]:
    """Best sellers by quantity, with revenue from the charged line subtotals."""
    sold = db.func.sum(SaleItem.quantity).label("sold_quantity")
    revenue = db.func.sum(SaleItem.subtotal).label("revenue")

    query = (
        db.session.query(Product.id, Product.name, Product.sku, Category.name, sold, revenue)
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .outerjoin(Category, Category.id == Product.category_id)
    )
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)

    rows = (
        query.group_by(Product.id, Product.name, Product.sku, Category.name)
        .order_by(sold.desc(), Product.id.asc())
        .limit(max(1, min(limit, 100)))
        .all()
    )

    return [
        {
            "product": {"id": pid, "name": name, "sku": sku, "category": category},
            "sold_quantity": int(qty or 0),
            "revenue": money_str(Decimal(str(rev or 0))),
        }
        for pid, name, sku, category, qty, rev in rows
    ]
