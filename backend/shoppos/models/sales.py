from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed sale header.

    Totals are derived by sales_service at creation and stored:
    total = subtotal + tax - discount, subtotal = sum of item subtotals.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable order number (e.g., "SALE-000123"), assigned after insert
    order_number = db.Column(db.String(64), nullable=True, unique=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False)

    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default="completed")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} order_number={self.order_number!r} total={self.total}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "user": {"id": self.user.id, "name": self.user.name} if self.user else None,
            "customer_id": self.customer_id,
            "customer": {"id": self.customer.id, "name": self.customer.name} if self.customer else None,
            "subtotal": money_str(self.subtotal),
            "tax": money_str(self.tax),
            "discount": money_str(self.discount),
            "total": money_str(self.total),
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Individual line on a sale: subtotal = quantity * unit_price."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "subtotal": money_str(self.subtotal),
        }


class SaleReturn(db.Model):
    """
    Return against a completed sale. Restocks the returned quantities.
    """
    __tablename__ = "sale_returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_number = db.Column(db.String(64), nullable=True, unique=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    refund_method = db.Column(db.String(32), nullable=False, default="cash")
    total_refund = db.Column(db.Numeric(10, 2), nullable=False)
    reason = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="completed")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("returns", lazy=True))
    items = db.relationship(
        "ReturnItem",
        back_populates="sale_return",
        cascade="all, delete-orphan",
        order_by="ReturnItem.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_number": self.return_number,
            "sale_id": self.sale_id,
            "order_number": self.sale.order_number if self.sale else None,
            "user_id": self.user_id,
            "refund_method": self.refund_method,
            "total_refund": money_str(self.total_refund),
            "reason": self.reason,
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class ReturnItem(db.Model):
    __tablename__ = "return_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_return_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("sale_returns.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)

    sale_return = db.relationship("SaleReturn", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "subtotal": money_str(self.subtotal),
        }
