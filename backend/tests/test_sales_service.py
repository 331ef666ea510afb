"""
Sale creation tests: totals, stock decrement, and all-or-nothing rejection.
"""

from decimal import Decimal

import pytest

from shoppos.commands import (
    PurchaseCommand,
    PurchaseItemCommand,
    PurchaseStatusCommand,
    SaleCommand,
    SaleItemCommand,
    parse_sale,
)
from shoppos.errors import (
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from shoppos.extensions import db
from shoppos.models import Sale
from shoppos.services import purchase_service, sales_service


def sale_of(*items, tax="0", discount="0", customer_id=None):
    return SaleCommand(
        items=tuple(SaleItemCommand(pid, qty, Decimal(price) if price is not None else None) for pid, qty, price in items),
        customer_id=customer_id,
        tax=Decimal(tax),
        discount=Decimal(discount),
    )


class TestCreateSale:

    def test_worked_example(self, cashier_user, product, stock_of):
        sale = sales_service.create_sale(
            cashier_user.id,
            sale_of((product.id, 10, "9.99"), tax="1.00", discount="0.50"),
        )

        assert sale.subtotal == Decimal("99.90")
        assert sale.total == Decimal("100.40")
        assert stock_of(product.id) == 90

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale(cashier_user.id, sale_of((product.id, 95, "9.99")))

        assert stock_of(product.id) == 90
        details = exc.value.details["items"][0]
        assert details["product_id"] == product.id
        assert details["requested"] == 95
        assert details["available"] == 90

    def test_total_invariant_with_multiple_lines(self, cashier_user, make_product):
        a = make_product(price="1.10")
        b = make_product(price="2.25")

        sale = sales_service.create_sale(
            cashier_user.id,
            sale_of((a.id, 3, "1.10"), (b.id, 2, "2.25"), tax="0.75", discount="1.00"),
        )

        item_sum = sum((item.subtotal for item in sale.items), Decimal("0"))
        assert sale.subtotal == item_sum == Decimal("7.80")
        assert sale.total == sale.subtotal + sale.tax - sale.discount == Decimal("7.55")

    def test_unit_price_defaults_to_product_price(self, cashier_user, product):
        sale = sales_service.create_sale(cashier_user.id, sale_of((product.id, 2, None)))

        assert sale.items[0].unit_price == Decimal("9.99")
        assert sale.total == Decimal("19.98")

    def test_order_number_assigned(self, cashier_user, product):
        sale = sales_service.create_sale(cashier_user.id, sale_of((product.id, 1, None)))
        assert sale.order_number == f"SALE-{sale.id:06d}"
        assert sale.user_id == cashier_user.id
        assert sale.status == "completed"

    def test_duplicate_lines_are_checked_together(self, cashier_user, make_product, stock_of):
        product = make_product(stock=5)

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(cashier_user.id, sale_of((product.id, 3, None), (product.id, 3, None)))

        assert stock_of(product.id) == 5

    def test_failure_on_one_product_leaves_all_unchanged(self, cashier_user, make_product, stock_of):
        plenty = make_product(stock=50)
        scarce = make_product(stock=1)

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale(cashier_user.id, sale_of((plenty.id, 10, None), (scarce.id, 2, None)))

        assert stock_of(plenty.id) == 50
        assert stock_of(scarce.id) == 1
        assert [d["product_id"] for d in exc.value.details["items"]] == [scarce.id]
        assert db.session.query(Sale).count() == 0

    def test_exact_stock_can_be_sold(self, cashier_user, make_product, stock_of):
        product = make_product(stock=4)
        sales_service.create_sale(cashier_user.id, sale_of((product.id, 4, None)))
        assert stock_of(product.id) == 0

    def test_discount_larger_than_total_rejected(self, cashier_user, product, stock_of):
        with pytest.raises(ValidationError):
            sales_service.create_sale(cashier_user.id, sale_of((product.id, 1, "1.00"), discount="5.00"))
        assert stock_of(product.id) == 100

    def test_unknown_product(self, cashier_user):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(cashier_user.id, sale_of((999, 1, None)))

    def test_inactive_product_rejected(self, cashier_user, make_product):
        retired = make_product(active=False)
        with pytest.raises(ValidationError):
            sales_service.create_sale(cashier_user.id, sale_of((retired.id, 1, None)))

    def test_unknown_customer(self, cashier_user, product, stock_of):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(cashier_user.id, sale_of((product.id, 1, None), customer_id=424242))
        assert stock_of(product.id) == 100

    def test_customer_attached(self, cashier_user, product, customer):
        sale = sales_service.create_sale(cashier_user.id, sale_of((product.id, 1, None), customer_id=customer.id))
        assert sale.to_dict()["customer"]["name"] == "Jane Doe"


class TestStockConservation:

    def test_stock_equals_initial_minus_sold(self, cashier_user, make_product, stock_of):
        product = make_product(stock=20)
        sold = 0
        for qty in (3, 7, 9, 5, 1):
            try:
                sales_service.create_sale(cashier_user.id, sale_of((product.id, qty, None)))
                sold += qty
            except InsufficientStockError:
                pass

        assert sold == 20  # the 5 is rejected once 19 are gone; the final 1 fits
        assert stock_of(product.id) == 20 - sold
        assert stock_of(product.id) >= 0

    def test_stock_equals_initial_minus_sold_plus_received(
        self, cashier_user, manager_user, supplier, make_product, stock_of
    ):
        product = make_product(stock=10)
        purchase = purchase_service.create_purchase(
            manager_user.id,
            PurchaseCommand(
                supplier_id=supplier.id,
                items=(PurchaseItemCommand(product.id, 15, Decimal("4.00")),),
            ),
        )
        sold = received = 0

        sales_service.create_sale(cashier_user.id, sale_of((product.id, 6, None)))
        sold += 6

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(cashier_user.id, sale_of((product.id, 5, None)))

        purchase_service.update_purchase_status(purchase.id, PurchaseStatusCommand(status="received"))
        received += 15

        with pytest.raises(InvalidStateTransitionError):
            purchase_service.update_purchase_status(purchase.id, PurchaseStatusCommand(status="received"))

        sales_service.create_sale(cashier_user.id, sale_of((product.id, 12, None)))
        sold += 12

        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(cashier_user.id, sale_of((product.id, 8, None)))

        assert stock_of(product.id) == 10 - sold + received == 7


class TestParseSale:

    def test_collects_every_field_error(self):
        with pytest.raises(ValidationError) as exc:
            parse_sale({
                "items": [{"product_id": "abc", "quantity": 0}, "junk"],
                "tax": "-1",
                "discount": "lots",
            })

        fields = {e["field"] for e in exc.value.errors}
        assert {"items[0].product_id", "items[0].quantity", "items[1]", "tax", "discount"} <= fields

    def test_requires_items(self):
        with pytest.raises(ValidationError) as exc:
            parse_sale({"items": []})
        assert exc.value.errors[0]["field"] == "items"

    def test_money_parsed_exactly(self):
        command = parse_sale({"items": [{"product_id": 1, "quantity": 2, "unit_price": 9.99}], "tax": "1"})
        assert command.items[0].unit_price == Decimal("9.99")
        assert command.tax == Decimal("1.00")
        assert command.payment_method == "cash"

    def test_fractional_cents_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_sale({
                "items": [{"product_id": 1, "quantity": 1, "unit_price": "9.999"}],
                "tax": "0.004",
            })

        fields = {e["field"] for e in exc.value.errors}
        assert fields == {"items[0].unit_price", "tax"}
