# Overview: Service-layer operations for categories.

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError
from ..models import Category, Product
from .common import apply_patch, get_or_404

CATEGORY_MUTABLE_FIELDS = {"name", "description"}


def list_categories() -> list[dict]:
    categories = db.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()
    return [c.to_dict() for c in categories]


def get_category(category_id: int) -> dict:
    return get_or_404(Category, category_id, "Category").to_dict()


def create_category(*, patch: dict) -> dict:
    category = Category()
    apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    db.session.commit()
    return category.to_dict()


def update_category(*, category_id: int, patch: dict) -> dict:
    category = get_or_404(Category, category_id, "Category")
    apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.commit()
    return category.to_dict()


def delete_category(*, category_id: int) -> None:
    """Categories that still hold products cannot be deleted."""
    category = get_or_404(Category, category_id, "Category")
    in_use = db.session.query(Product.id).filter(Product.category_id == category_id).first()
    if in_use:
        raise ConflictError("Category still has products; reassign them first")
    db.session.delete(category)
    db.session.commit()
