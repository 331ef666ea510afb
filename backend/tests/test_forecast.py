"""
Inventory forecast tests.

Covers the pure row computation (formulas, methods, trend, risk, exact
ceil arithmetic), risk ordering, and the database-backed forecast and
purchase-order generation.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from shoppos.errors import ValidationError
from shoppos.extensions import db
from shoppos.models import Category, Sale, SaleItem
from shoppos.services import forecast_service
from shoppos.services.forecast_service import (
    ProductSnapshot,
    SaleRecord,
    compute_forecast_row,
    sort_by_risk,
)


NOW = datetime(2026, 3, 1, 12, 0, 0)


def snapshot(product_id=1, stock=50, category="Dairy"):
    return ProductSnapshot(
        id=product_id,
        name=f"Product {product_id}",
        sku=f"SKU-{product_id}",
        category=category,
        stock_quantity=stock,
        price=Decimal("2.50"),
    )


def daily_sales(product_id=1, days=30, quantity=1):
    """One sale per day for `days` days ending just before NOW."""
    return [
        SaleRecord(product_id=product_id, quantity=quantity, sold_at=NOW - timedelta(days=i, hours=1))
        for i in range(days)
    ]


class TestForecastRow:

    def test_thirty_units_over_thirty_days(self):
        row = compute_forecast_row(snapshot(), daily_sales(), 30, 30, "moving_average", NOW)

        assert row.average_daily_usage == 1.0
        assert row.forecasted_demand == 30
        assert row.safety_stock == 7
        assert row.recommended_reorder_point == 21
        assert row.recommended_order_quantity == 30
        assert row.days_until_stockout == 50
        assert row.risk_level == "low"
        assert row.trend == "stable"

    def test_no_sales(self):
        row = compute_forecast_row(snapshot(), [], 30, 90, "moving_average", NOW)

        assert row.average_daily_usage == 0.0
        assert row.forecasted_demand == 0
        assert row.days_until_stockout == 999
        assert row.risk_level == "low"
        assert row.trend == "stable"
        assert row.last_sale_date == "Never"
        assert row.recommended_reorder_point == 0
        assert row.recommended_order_quantity == 0

    def test_last_sale_date_is_latest_sale(self):
        row = compute_forecast_row(snapshot(), daily_sales(days=3), 30, 30, "moving_average", NOW)
        assert row.last_sale_date == "2026-03-01T11:00:00Z"

    def test_sales_for_other_products_are_ignored(self):
        sales = daily_sales(product_id=1) + daily_sales(product_id=2, quantity=5)
        row = compute_forecast_row(snapshot(product_id=1), sales, 30, 30, "moving_average", NOW)
        assert row.forecasted_demand == 30

    @pytest.mark.parametrize(
        "method,expected",
        [
            ("moving_average", 30),
            ("exponential_smoothing", 33),
            ("linear_regression", 36),
            ("seasonal_analysis", 35),  # ceil(34.5)
        ],
    )
    def test_method_multipliers(self, method, expected):
        row = compute_forecast_row(snapshot(), daily_sales(), 30, 30, method, NOW)
        assert row.forecasted_demand == expected

    def test_ceil_has_no_float_drift(self):
        # 1 unit/day * 10 days * 1.1 is exactly 11; binary floats give 11.000000000000002
        row = compute_forecast_row(snapshot(), daily_sales(), 10, 30, "exponential_smoothing", NOW)
        assert row.forecasted_demand == 11

    def test_usage_rounded_to_one_decimal(self):
        # 10 units over 30 days = 0.333...
        row = compute_forecast_row(snapshot(), daily_sales(days=10), 30, 30, "moving_average", NOW)
        assert row.average_daily_usage == 0.3
        assert row.forecasted_demand == 10
        assert row.safety_stock == 3  # ceil(2.33)

    def test_trend_increasing(self):
        recent = [SaleRecord(1, 20, NOW - timedelta(days=2))]
        older = [SaleRecord(1, 5, NOW - timedelta(days=25))]
        row = compute_forecast_row(snapshot(), recent + older, 30, 30, "moving_average", NOW)
        assert row.trend == "increasing"

    def test_trend_decreasing(self):
        recent = [SaleRecord(1, 2, NOW - timedelta(days=2))]
        older = [SaleRecord(1, 20, NOW - timedelta(days=25))]
        row = compute_forecast_row(snapshot(), recent + older, 30, 30, "moving_average", NOW)
        assert row.trend == "decreasing"

    @pytest.mark.parametrize(
        "stock,expected",
        [(0, "critical"), (3, "critical"), (4, "high"), (7, "high"), (8, "medium"), (14, "medium"), (15, "low")],
    )
    def test_risk_thresholds(self, stock, expected):
        # usage is exactly 1/day, so days_until_stockout == stock (0 stock -> 0 days)
        row = compute_forecast_row(snapshot(stock=stock), daily_sales(), 30, 30, "moving_average", NOW)
        assert row.days_until_stockout == stock
        assert row.risk_level == expected

    def test_deterministic(self):
        sales = daily_sales(days=17, quantity=3)
        first = compute_forecast_row(snapshot(), sales, 14, 45, "linear_regression", NOW)
        second = compute_forecast_row(snapshot(), list(reversed(sales)), 14, 45, "linear_regression", NOW)
        assert first == second

    def test_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            compute_forecast_row(snapshot(), [], 30, 30, "crystal_ball", NOW)

    @pytest.mark.parametrize("forecast_days,lookback_days", [(0, 30), (30, 0), (-1, 30)])
    def test_rejects_non_positive_days(self, forecast_days, lookback_days):
        with pytest.raises(ValidationError):
            compute_forecast_row(snapshot(), [], forecast_days, lookback_days, "moving_average", NOW)


class TestRiskOrdering:

    def test_sorted_critical_first_and_stable_within_level(self):
        stocks = {1: 100, 2: 2, 3: 10, 4: 1, 5: 6, 6: 200}
        rows = [
            compute_forecast_row(snapshot(pid, stock=s), daily_sales(pid), 30, 30, "moving_average", NOW)
            for pid, s in stocks.items()
        ]

        ordered = sort_by_risk(rows)

        assert [r.risk_level for r in ordered] == ["critical", "critical", "high", "medium", "low", "low"]
        # ties keep input order
        assert [r.product_id for r in ordered] == [2, 4, 5, 3, 1, 6]


def add_sale(user_id, product, quantity, created_at):
    sale = Sale(
        user_id=user_id,
        subtotal=Decimal("0.00"),
        total=Decimal("0.00"),
        created_at=created_at,
    )
    sale.items.append(SaleItem(
        product_id=product.id,
        quantity=quantity,
        unit_price=product.price,
        subtotal=product.price * quantity,
    ))
    db.session.add(sale)
    db.session.commit()
    return sale


class TestForecastQueries:

    def test_default_lookback_is_three_times_forecast(self, admin_user, make_product):
        product = make_product(stock=100)
        add_sale(admin_user.id, product, 45, NOW - timedelta(days=40))   # inside 90-day window
        add_sale(admin_user.id, product, 500, NOW - timedelta(days=120))  # outside

        rows = forecast_service.get_forecast(forecast_days=30, now=NOW)

        assert len(rows) == 1
        assert rows[0]["average_daily_usage"] == 0.5  # 45 / 90
        assert rows[0]["forecasted_demand"] == 15

    def test_explicit_lookback(self, admin_user, make_product):
        product = make_product(stock=100)
        add_sale(admin_user.id, product, 30, NOW - timedelta(days=5))

        rows = forecast_service.get_forecast(forecast_days=30, lookback_days=30, now=NOW)

        assert rows[0]["average_daily_usage"] == 1.0
        assert rows[0]["recommended_reorder_point"] == 21

    def test_category_filter_by_name(self, make_product):
        other = Category(name="Bakery")
        db.session.add(other)
        db.session.commit()
        make_product(name="Milk")
        make_product(name="Bread", category_id=other.id)

        rows = forecast_service.get_forecast(category="Bakery", now=NOW)

        assert [r["product_name"] for r in rows] == ["Bread"]
        assert len(forecast_service.get_forecast(category="all", now=NOW)) == 2

    def test_inactive_products_are_skipped(self, make_product):
        make_product(name="Active")
        make_product(name="Retired", active=False)

        rows = forecast_service.get_forecast(now=NOW)

        assert [r["product_name"] for r in rows] == ["Active"]

    def test_rows_sorted_by_risk(self, admin_user, make_product):
        safe = make_product(name="A Safe", stock=1000)
        urgent = make_product(name="B Urgent", stock=1)
        add_sale(admin_user.id, safe, 30, NOW - timedelta(days=1))
        add_sale(admin_user.id, urgent, 30, NOW - timedelta(days=1))

        rows = forecast_service.get_forecast(forecast_days=10, lookback_days=30, now=NOW)

        assert [r["product_name"] for r in rows] == ["B Urgent", "A Safe"]
        assert rows[0]["risk_level"] == "critical"


class TestGeneratePurchaseOrder:

    def test_orders_recommended_quantity_at_cost(self, admin_user, supplier, make_product):
        fast = make_product(name="Fast", cost="4.00", stock=5)
        idle = make_product(name="Idle", cost="2.50", stock=5)
        add_sale(admin_user.id, fast, 90, NOW - timedelta(days=3))  # 1/day over 90 days

        purchase = forecast_service.generate_purchase_order(
            admin_user.id, supplier.id, [fast.id, idle.id], forecast_days=30, now=NOW
        )

        assert purchase.status == "pending"
        assert purchase.supplier_id == supplier.id
        lines = {item.product_id: item for item in purchase.items}
        assert lines[fast.id].quantity == 30
        assert lines[fast.id].unit_cost == Decimal("4.00")
        assert lines[idle.id].quantity == 1  # no demand still orders the minimum
        assert purchase.total == Decimal("122.50")

    def test_unknown_product(self, admin_user, supplier):
        from shoppos.errors import NotFoundError

        with pytest.raises(NotFoundError):
            forecast_service.generate_purchase_order(admin_user.id, supplier.id, [999], now=NOW)

    def test_requires_products(self, admin_user, supplier):
        with pytest.raises(ValidationError):
            forecast_service.generate_purchase_order(admin_user.id, supplier.id, [], now=NOW)
