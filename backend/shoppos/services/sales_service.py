"""
Sales Service - atomic sale creation with stock decrement

WHY: A sale, its items and the stock it consumes must commit together or not
at all. Stock is taken with a conditional UPDATE per product
(stock_quantity >= requested), so concurrent sales can never oversell and a
failed sale leaves every product untouched.

Totals:
    item.subtotal = quantity * unit_price
    subtotal      = sum(item.subtotal)
    total         = subtotal + tax - discount     (never negative)
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..commands import SaleCommand
from ..extensions import db
from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..models import Customer, Product, Sale, SaleItem
from ..money import line_subtotal, money_sum, quantize
from .common import clamp_page, get_or_404
from .concurrency import decrement_stock_if_available


def _load_products(product_ids: set[int]) -> dict[int, Product]:
    products = db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    by_id = {p.id: p for p in products}

    missing = sorted(product_ids - set(by_id))
    if missing:
        raise NotFoundError(
            f"Product not found: {', '.join(str(pid) for pid in missing)}",
            details={"product_ids": missing},
        )

    inactive = sorted(pid for pid, p in by_id.items() if not p.active)
    if inactive:
        raise ValidationError(
            "Inactive products cannot be sold",
            errors=[{"field": "items", "message": f"Product {pid} is inactive"} for pid in inactive],
        )
    return by_id


def _requested_by_product(command: SaleCommand) -> dict[int, int]:
    requested: dict[int, int] = {}
    for item in command.items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
    return requested


def _take_stock(requested: dict[int, int], products: dict[int, Product]) -> None:
    """
    Decrement every product or none. Products are updated in id order so
    concurrent sales touching the same rows lock them in the same order.
    """
    short = []
    for product_id in sorted(requested):
        if not decrement_stock_if_available(product_id, requested[product_id]):
            short.append(product_id)

    if not short:
        return

    db.session.rollback()
    details = []
    for product_id in short:
        product = products[product_id]
        db.session.refresh(product)
        details.append({
            "product_id": product_id,
            "product_name": product.name,
            "requested": requested[product_id],
            "available": product.stock_quantity,
        })
    raise InsufficientStockError("Insufficient stock", details={"items": details})


def create_sale(operator_id: int, command: SaleCommand) -> Sale:
    """
    Create a completed sale and decrement stock in one transaction.

    Raises:
        ValidationError: inactive product, or discount exceeds subtotal + tax
        NotFoundError: unknown product or customer
        InsufficientStockError: any product lacks stock (nothing is mutated)
    """
    requested = _requested_by_product(command)
    products = _load_products(set(requested))

    if command.customer_id is not None and db.session.get(Customer, command.customer_id) is None:
        raise NotFoundError("Customer not found")

    lines = []
    for item in command.items:
        product = products[item.product_id]
        unit_price = item.unit_price if item.unit_price is not None else quantize(product.price)
        lines.append((item, unit_price, line_subtotal(item.quantity, unit_price)))

    subtotal = money_sum(sub for _, _, sub in lines)
    total = quantize(subtotal + command.tax - command.discount)
    if total < 0:
        raise ValidationError.for_field("discount", "discount cannot exceed subtotal plus tax")

    _take_stock(requested, products)

    sale = Sale(
        user_id=operator_id,
        customer_id=command.customer_id,
        subtotal=subtotal,
        tax=command.tax,
        discount=command.discount,
        total=total,
        payment_method=command.payment_method,
        status="completed",
        notes=command.notes,
    )
    for item, unit_price, sub in lines:
        sale.items.append(SaleItem(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=unit_price,
            subtotal=sub,
        ))

    db.session.add(sale)
    try:
        db.session.flush()
        sale.order_number = f"SALE-{sale.id:06d}"
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s created by user=%s total=%s items=%s",
        sale.order_number, operator_id, sale.total, len(lines),
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    return get_or_404(Sale, sale_id, "Sale")


def list_sales(
    *,
    limit: int | None = None,
    offset: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    user_id: int | None = None,
    customer_id: int | None = None,
) -> dict:
    """Sales newest first, filtered by created_at window, operator and customer."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    if user_id is not None:
        query = query.filter(Sale.user_id == user_id)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)

    limit, offset = clamp_page(limit, offset)
    total = query.count()
    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).offset(offset).all()
    return {
        "items": [s.to_dict(include_items=False) for s in sales],
        "count": len(sales),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def recent_sales(limit: int = 5) -> list[dict]:
    sales = (
        db.session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [s.to_dict() for s in sales]
