"""
Purchase Service - supplier orders and receiving

LIFECYCLE:
    pending --receive--> received   (stock credited, terminal)
    pending --cancel---> cancelled  (no stock effect, terminal)

Any other transition, including receiving twice, raises
InvalidStateTransitionError. The pending -> received flip is a conditional
UPDATE checked by row count inside the same transaction as the stock
increments, so two concurrent receives credit stock exactly once.

Totals:
    subtotal = sum(quantity * unit_cost)
    total    = subtotal + tax + freight - discount   (never negative)
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..commands import PurchaseCommand, PurchaseStatusCommand
from ..extensions import db
from ..errors import InvalidStateTransitionError, NotFoundError, ValidationError
from ..models import (
    Product,
    Purchase,
    PurchaseItem,
    Supplier,
    STATUS_PENDING,
    STATUS_RECEIVED,
    STATUS_CANCELLED,
)
from ..money import line_subtotal, money_sum, quantize
from ..time_utils import utcnow
from .common import clamp_page, get_or_404
from .concurrency import increment_stock, lock_for_update

# Allowed status transitions (from -> set of to)
TRANSITIONS = {
    STATUS_PENDING: {STATUS_RECEIVED, STATUS_CANCELLED},
    STATUS_RECEIVED: set(),
    STATUS_CANCELLED: set(),
}


def compute_total(subtotal: Decimal, tax: Decimal, freight: Decimal, discount: Decimal) -> Decimal:
    total = quantize(subtotal + tax + freight - discount)
    if total < 0:
        raise ValidationError.for_field("discount", "discount cannot exceed subtotal plus tax and freight")
    return total


def create_purchase(operator_id: int, command: PurchaseCommand) -> Purchase:
    """
    Create a pending purchase order. Stock is not touched until receipt.

    Raises:
        NotFoundError: unknown supplier or product
        ValidationError: inactive product, or discount larger than the order
    """
    if db.session.get(Supplier, command.supplier_id) is None:
        raise NotFoundError("Supplier not found")

    product_ids = {item.product_id for item in command.items}
    active_by_id = dict(
        db.session.query(Product.id, Product.active).filter(Product.id.in_(product_ids)).all()
    )
    missing = sorted(product_ids - set(active_by_id))
    if missing:
        raise NotFoundError(
            f"Product not found: {', '.join(str(pid) for pid in missing)}",
            details={"product_ids": missing},
        )

    inactive = sorted(pid for pid, active in active_by_id.items() if not active)
    if inactive:
        raise ValidationError(
            "Inactive products cannot be ordered",
            errors=[{"field": "items", "message": f"Product {pid} is inactive"} for pid in inactive],
        )

    lines = [(item, line_subtotal(item.quantity, item.unit_cost)) for item in command.items]
    subtotal = money_sum(sub for _, sub in lines)
    total = compute_total(subtotal, command.tax, command.freight, command.discount)

    purchase = Purchase(
        supplier_id=command.supplier_id,
        user_id=operator_id,
        order_date=utcnow(),
        expected_date=command.expected_date,
        subtotal=subtotal,
        tax=command.tax,
        freight=command.freight,
        discount=command.discount,
        total=total,
        status=STATUS_PENDING,
        notes=command.notes,
    )
    for item, sub in lines:
        purchase.items.append(PurchaseItem(
            product_id=item.product_id,
            quantity=item.quantity,
            received_quantity=0,
            unit_cost=item.unit_cost,
            subtotal=sub,
        ))

    db.session.add(purchase)
    try:
        db.session.flush()
        purchase.order_number = f"PO-{purchase.id:06d}"
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Purchase %s created by user=%s supplier=%s total=%s",
        purchase.order_number, operator_id, purchase.supplier_id, purchase.total,
    )
    return purchase


def _require_transition(current: str, new_status: str) -> None:
    if new_status not in TRANSITIONS.get(current, set()):
        raise InvalidStateTransitionError(
            f"Cannot change purchase status from {current} to {new_status}",
            details={"from": current, "to": new_status},
        )


def _claim_pending(purchase_id: int, new_status: str, values: dict) -> bool:
    """Flip status only if still pending. Returns False if another request won."""
    values = {Purchase.status: new_status, **values}
    updated = (
        db.session.query(Purchase)
        .filter(Purchase.id == purchase_id, Purchase.status == STATUS_PENDING)
        .update(values, synchronize_session=False)
    )
    return updated == 1


def update_purchase_status(purchase_id: int, command: PurchaseStatusCommand) -> Purchase:
    """
    Move a pending purchase to received or cancelled.

    Raises:
        NotFoundError: purchase does not exist
        InvalidStateTransitionError: transition not allowed (includes a
            second receive; stock is never credited twice)
    """
    purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
    if purchase is None:
        raise NotFoundError("Purchase not found")

    _require_transition(purchase.status, command.status)

    values = {}
    if command.status == STATUS_RECEIVED:
        values[Purchase.received_date] = command.received_date or utcnow()

    if not _claim_pending(purchase.id, command.status, values):
        db.session.rollback()
        db.session.refresh(purchase)
        _require_transition(purchase.status, command.status)
        raise InvalidStateTransitionError("Purchase status changed concurrently")

    if command.status == STATUS_RECEIVED:
        for item in purchase.items:
            increment_stock(item.product_id, item.quantity)
            item.received_quantity = item.quantity

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    # Reload the row written by the conditional UPDATE
    db.session.refresh(purchase)

    current_app.logger.info("Purchase %s marked %s", purchase.order_number, purchase.status)
    return purchase


def update_purchase(purchase_id: int, fields: dict) -> Purchase:
    """
    Edit header fields of a pending purchase and recompute its total.
    Accepted fields: notes, expected_date, tax, freight, discount.
    """
    purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
    if purchase is None:
        raise NotFoundError("Purchase not found")
    if purchase.status != STATUS_PENDING:
        raise InvalidStateTransitionError(
            f"Only pending purchases can be edited (status is {purchase.status})"
        )

    tax = fields.get("tax", purchase.tax)
    freight = fields.get("freight", purchase.freight)
    discount = fields.get("discount", purchase.discount)
    total = compute_total(quantize(purchase.subtotal), quantize(tax), quantize(freight), quantize(discount))

    for key in ("notes", "expected_date", "tax", "freight", "discount"):
        if key in fields:
            setattr(purchase, key, fields[key])
    purchase.total = total

    db.session.commit()
    return purchase


def get_purchase(purchase_id: int) -> Purchase:
    return get_or_404(Purchase, purchase_id, "Purchase")


def list_purchases(
    *,
    limit: int | None = None,
    offset: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    supplier_id: int | None = None,
    status: str | None = None,
) -> dict:
    query = db.session.query(Purchase)
    if start is not None:
        query = query.filter(Purchase.created_at >= start)
    if end is not None:
        query = query.filter(Purchase.created_at <= end)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if status:
        query = query.filter(Purchase.status == status)

    limit, offset = clamp_page(limit, offset)
    total = query.count()
    purchases = (
        query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return {
        "items": [p.to_dict(include_items=False) for p in purchases],
        "count": len(purchases),
        "total": total,
        "limit": limit,
        "offset": offset,
    }
