"""
Return tests: refunds priced at the sale, restocking, and quantity limits.
"""

from decimal import Decimal

import pytest

from shoppos.commands import ReturnCommand, ReturnItemCommand, SaleCommand, SaleItemCommand
from shoppos.errors import NotFoundError, ValidationError
from shoppos.services import return_service, sales_service


@pytest.fixture
def sale(cashier_user, product):
    """10 units of the 9.99 product sold at a discounted 8.50 each."""
    return sales_service.create_sale(
        cashier_user.id,
        SaleCommand(items=(SaleItemCommand(product.id, 10, Decimal("8.50")),)),
    )


def return_of(sale_id, *items, reason=None):
    return ReturnCommand(
        sale_id=sale_id,
        items=tuple(ReturnItemCommand(pid, qty) for pid, qty in items),
        reason=reason,
    )


class TestCreateReturn:

    def test_refund_uses_sale_price_and_restocks(self, manager_user, sale, product, stock_of):
        assert stock_of(product.id) == 90

        sale_return = return_service.create_return(manager_user.id, return_of(sale.id, (product.id, 3), reason="Damaged"))

        assert sale_return.return_number == f"RET-{sale_return.id:06d}"
        assert sale_return.total_refund == Decimal("25.50")
        assert sale_return.items[0].unit_price == Decimal("8.50")
        assert stock_of(product.id) == 93

    def test_cumulative_returns_limited_to_sold(self, manager_user, sale, product, stock_of):
        return_service.create_return(manager_user.id, return_of(sale.id, (product.id, 6)))
        return_service.create_return(manager_user.id, return_of(sale.id, (product.id, 4)))

        with pytest.raises(ValidationError):
            return_service.create_return(manager_user.id, return_of(sale.id, (product.id, 1)))

        assert stock_of(product.id) == 100
        assert return_service.returnable_quantities(sale.id) == {product.id: 0}

    def test_product_not_on_sale(self, manager_user, sale, make_product, stock_of):
        other = make_product(stock=7)

        with pytest.raises(ValidationError):
            return_service.create_return(manager_user.id, return_of(sale.id, (other.id, 1)))

        assert stock_of(other.id) == 7

    def test_unknown_sale(self, manager_user, product):
        with pytest.raises(NotFoundError):
            return_service.create_return(manager_user.id, return_of(4040, (product.id, 1)))

    def test_listed_against_sale(self, manager_user, sale, product):
        return_service.create_return(manager_user.id, return_of(sale.id, (product.id, 2)))

        listing = return_service.list_returns(sale_id=sale.id)

        assert listing["total"] == 1
        assert listing["items"][0]["order_number"] == sale.order_number
