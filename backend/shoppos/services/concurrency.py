# Overview: Row-locking and conditional-update helpers for stock mutations.

from __future__ import annotations

from ..extensions import db
from ..models import Product


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def decrement_stock_if_available(product_id: int, quantity: int) -> bool:
    """
    Atomically take `quantity` units off a product's stock.

    Single conditional UPDATE: the row only changes if enough stock remains,
    so two concurrent sales can never both pass a stale check.
    Returns True if the row was updated. Does not commit.
    """
    result = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.stock_quantity >= quantity)
        .update(
            {Product.stock_quantity: Product.stock_quantity - quantity},
            synchronize_session=False,
        )
    )
    return result == 1


def increment_stock(product_id: int, quantity: int) -> bool:
    """Atomically add `quantity` units to a product's stock. Does not commit."""
    result = (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .update(
            {Product.stock_quantity: Product.stock_quantity + quantity},
            synchronize_session=False,
        )
    )
    return result == 1
