# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError
from ..models import Supplier, Purchase
from .common import apply_patch, get_or_404, paginate

SUPPLIER_MUTABLE_FIELDS = {
    "name", "email", "phone", "address", "gstin",
    "contact_person", "supplier_type", "active",
}


def list_suppliers(*, limit: int | None = None, offset: int | None = None, active: bool | None = None) -> dict:
    query = db.session.query(Supplier)
    if active is not None:
        query = query.filter(Supplier.active.is_(active))
    return paginate(query.order_by(Supplier.name.asc(), Supplier.id.asc()), limit, offset)


def get_supplier(supplier_id: int) -> dict:
    return get_or_404(Supplier, supplier_id, "Supplier").to_dict()


def create_supplier(*, patch: dict) -> dict:
    supplier = Supplier()
    apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    db.session.add(supplier)
    db.session.commit()
    return supplier.to_dict()


def update_supplier(*, supplier_id: int, patch: dict) -> dict:
    supplier = get_or_404(Supplier, supplier_id, "Supplier")
    apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    db.session.commit()
    return supplier.to_dict()


def delete_supplier(*, supplier_id: int) -> None:
    supplier = get_or_404(Supplier, supplier_id, "Supplier")
    if db.session.query(Purchase.id).filter(Purchase.supplier_id == supplier_id).first():
        raise ConflictError("Supplier has purchase orders; deactivate it instead")
    db.session.delete(supplier)
    db.session.commit()
