# Overview: Service-layer operations for customers.

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError
from ..models import Customer, Sale
from .common import apply_patch, get_or_404, paginate

CUSTOMER_MUTABLE_FIELDS = {
    "name", "email", "phone", "address", "gstin", "loyalty_points", "active",
}


def list_customers(*, limit: int | None = None, offset: int | None = None) -> dict:
    query = db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(query, limit, offset)


def search_customers(q: str, limit: int = 20) -> list[dict]:
    """Case-insensitive substring match on name, email and phone."""
    q = (q or "").strip()
    if not q:
        return []
    pattern = f"%{q}%"
    customers = (
        db.session.query(Customer)
        .filter(
            db.or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
            )
        )
        .order_by(Customer.name.asc(), Customer.id.asc())
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [c.to_dict() for c in customers]


def get_customer(customer_id: int) -> dict:
    return get_or_404(Customer, customer_id, "Customer").to_dict()


def create_customer(*, patch: dict) -> dict:
    customer = Customer()
    apply_patch(customer, patch, CUSTOMER_MUTABLE_FIELDS)
    db.session.add(customer)
    db.session.commit()
    return customer.to_dict()


def update_customer(*, customer_id: int, patch: dict) -> dict:
    customer = get_or_404(Customer, customer_id, "Customer")
    apply_patch(customer, patch, CUSTOMER_MUTABLE_FIELDS)
    db.session.commit()
    return customer.to_dict()


def delete_customer(*, customer_id: int) -> None:
    customer = get_or_404(Customer, customer_id, "Customer")
    if db.session.query(Sale.id).filter(Sale.customer_id == customer_id).first():
        raise ConflictError("Customer has sales history and cannot be deleted")
    db.session.delete(customer)
    db.session.commit()
