"""
Return Service - customer returns against completed sales

Rules:
- every returned product must appear on the original sale
- across all returns for a sale, returned quantity per product never
  exceeds the quantity sold
- refund per item = quantity * the unit price charged on the sale
- returned quantities go back into stock in the same transaction
"""

from __future__ import annotations

from flask import current_app

from ..commands import ReturnCommand
from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import ReturnItem, Sale, SaleItem, SaleReturn
from ..money import line_subtotal, money_sum
from .common import clamp_page, get_or_404
from .concurrency import increment_stock, lock_for_update


def _sold_by_product(sale: Sale) -> dict[int, tuple[int, object]]:
    """product_id -> (quantity sold, unit price of the first matching line)."""
    sold: dict[int, tuple[int, object]] = {}
    for item in sale.items:
        qty, price = sold.get(item.product_id, (0, item.unit_price))
        sold[item.product_id] = (qty + item.quantity, price)
    return sold


def _already_returned(sale_id: int) -> dict[int, int]:
    rows = (
        db.session.query(ReturnItem.product_id, db.func.sum(ReturnItem.quantity))
        .join(SaleReturn, SaleReturn.id == ReturnItem.return_id)
        .filter(SaleReturn.sale_id == sale_id)
        .group_by(ReturnItem.product_id)
        .all()
    )
    return {product_id: int(qty or 0) for product_id, qty in rows}


def returnable_quantities(sale_id: int) -> dict[int, int]:
    """How many units of each product on a sale can still be returned."""
    sale = get_or_404(Sale, sale_id, "Sale")
    returned = _already_returned(sale_id)
    return {
        product_id: qty - returned.get(product_id, 0)
        for product_id, (qty, _) in _sold_by_product(sale).items()
    }


def create_return(operator_id: int, command: ReturnCommand) -> SaleReturn:
    """
    Record a return and restock the returned quantities.

    Raises:
        NotFoundError: sale does not exist
        ValidationError: product not on the sale, or more returned than sold
    """
    sale = lock_for_update(db.session.query(Sale).filter_by(id=command.sale_id)).first()
    if sale is None:
        raise NotFoundError("Sale not found")

    sold = _sold_by_product(sale)
    returned = _already_returned(sale.id)

    requested: dict[int, int] = {}
    for item in command.items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    errors = []
    for product_id, qty in requested.items():
        if product_id not in sold:
            errors.append({"field": "items", "message": f"Product {product_id} is not on this sale"})
            continue
        remaining = sold[product_id][0] - returned.get(product_id, 0)
        if qty > remaining:
            errors.append({
                "field": "items",
                "message": f"Product {product_id}: cannot return {qty}, only {remaining} returnable",
            })
    if errors:
        raise ValidationError("Invalid return", errors=errors)

    sale_return = SaleReturn(
        sale_id=sale.id,
        user_id=operator_id,
        refund_method=command.refund_method,
        reason=command.reason,
        notes=command.notes,
        status="completed",
        total_refund=0,
    )
    for item in command.items:
        unit_price = sold[item.product_id][1]
        sale_return.items.append(ReturnItem(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=unit_price,
            subtotal=line_subtotal(item.quantity, unit_price),
        ))
    sale_return.total_refund = money_sum(ri.subtotal for ri in sale_return.items)

    for product_id, qty in sorted(requested.items()):
        increment_stock(product_id, qty)

    db.session.add(sale_return)
    try:
        db.session.flush()
        sale_return.return_number = f"RET-{sale_return.id:06d}"
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Return %s against %s refund=%s",
        sale_return.return_number, sale.order_number, sale_return.total_refund,
    )
    return sale_return


def get_return(return_id: int) -> SaleReturn:
    return get_or_404(SaleReturn, return_id, "Return")


def list_returns(*, limit: int | None = None, offset: int | None = None, sale_id: int | None = None) -> dict:
    query = db.session.query(SaleReturn)
    if sale_id is not None:
        query = query.filter(SaleReturn.sale_id == sale_id)

    limit, offset = clamp_page(limit, offset)
    total = query.count()
    rows = (
        query.order_by(SaleReturn.created_at.desc(), SaleReturn.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return {
        "items": [r.to_dict() for r in rows],
        "count": len(rows),
        "total": total,
        "limit": limit,
        "offset": offset,
    }
