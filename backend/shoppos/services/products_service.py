# backend/shoppos/services/products_service.py
"""
Products Service

Catalog CRUD plus the product lookups the POS screen needs:
- search by name / SKU / barcode
- low stock listing (stock_quantity <= alert_threshold)

Products referenced by sale, purchase or return items are never deleted;
the caller gets a ConflictError and should deactivate the product instead.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Category, Product, SaleItem, PurchaseItem, ReturnItem
from .common import apply_patch, commit_or_duplicate, get_or_404, paginate

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "sku", "barcode",
    "price", "cost", "mrp", "weight", "weight_unit",
    "category_id", "stock_quantity", "alert_threshold", "active",
}


def _require_category(category_id: int) -> None:
    if db.session.get(Category, category_id) is None:
        raise NotFoundError("Category not found")


def _require_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ValidationError.for_field("sku", "A product with this SKU already exists")


def list_products(
    *,
    limit: int | None = None,
    offset: int | None = None,
    category_id: int | None = None,
    active: bool | None = None,
) -> dict:
    """Products ordered by name, with limit/offset pagination."""
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if active is not None:
        query = query.filter(Product.active.is_(active))
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, limit, offset)


def get_product(product_id: int) -> dict:
    return get_or_404(Product, product_id, "Product").to_dict()


def search_products(q: str, limit: int = 20) -> list[dict]:
    """Case-insensitive substring match on name, SKU and barcode."""
    q = (q or "").strip()
    if not q:
        return []
    pattern = f"%{q}%"
    products = (
        db.session.query(Product)
        .filter(
            db.or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.barcode.ilike(pattern),
            )
        )
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [p.to_dict() for p in products]


def low_stock_products(limit: int = 10) -> list[dict]:
    """Active products at or below their alert threshold, lowest stock first."""
    products = (
        db.session.query(Product)
        .filter(
            Product.active.is_(True),
            Product.stock_quantity <= Product.alert_threshold,
        )
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
    return [p.to_dict() for p in products]


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        NotFoundError: category does not exist
        ValidationError: SKU already exists
    """
    _require_category(patch["category_id"])
    _require_unique_sku(patch["sku"])

    product = Product()
    apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)

    db.session.add(product)
    commit_or_duplicate("A product with this SKU already exists")
    return product.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    product = get_or_404(Product, product_id, "Product")

    if patch.get("category_id") is not None and patch["category_id"] != product.category_id:
        _require_category(patch["category_id"])
    if patch.get("sku") and patch["sku"] != product.sku:
        _require_unique_sku(patch["sku"], exclude_id=product.id)

    apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    commit_or_duplicate("A product with this SKU already exists")
    return product.to_dict()


def is_referenced(product_id: int) -> bool:
    for model in (SaleItem, PurchaseItem, ReturnItem):
        if db.session.query(model.id).filter(model.product_id == product_id).first():
            return True
    return False


def delete_product(*, product_id: int) -> None:
    product = get_or_404(Product, product_id, "Product")
    if is_referenced(product_id):
        raise ConflictError("Product is referenced by existing orders; deactivate it instead")
    db.session.delete(product)
    db.session.commit()
