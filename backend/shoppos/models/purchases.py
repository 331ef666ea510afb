from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


STATUS_PENDING = "pending"
STATUS_RECEIVED = "received"
STATUS_CANCELLED = "cancelled"
PURCHASE_STATUSES = (STATUS_PENDING, STATUS_RECEIVED, STATUS_CANCELLED)


class Purchase(db.Model):
    """
    Purchase order from a supplier.

    LIFECYCLE:
    1. pending: created; no stock effect
    2. received: stock credited once per item (terminal)
    3. cancelled: never affects stock (terminal)

    total = subtotal + tax + freight - discount
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'received', 'cancelled')",
            name="ck_purchases_status",
        ),
        db.Index("ix_purchases_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=True, unique=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_date = db.Column(db.DateTime(timezone=True), nullable=True)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    freight = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    user = db.relationship("User", backref=db.backref("purchases", lazy=True))
    items = db.relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} order_number={self.order_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "supplier_id": self.supplier_id,
            "supplier": {"id": self.supplier.id, "name": self.supplier.name} if self.supplier else None,
            "user_id": self.user_id,
            "order_date": to_utc_z(self.order_date),
            "expected_date": to_utc_z(self.expected_date),
            "received_date": to_utc_z(self.received_date),
            "subtotal": money_str(self.subtotal),
            "tax": money_str(self.tax),
            "freight": money_str(self.freight),
            "discount": money_str(self.discount),
            "total": money_str(self.total),
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_purchase_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Set to quantity when the purchase is received
    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)

    purchase = db.relationship("Purchase", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "quantity": self.quantity,
            "received_quantity": self.received_quantity,
            "unit_cost": money_str(self.unit_cost),
            "subtotal": money_str(self.subtotal),
        }
