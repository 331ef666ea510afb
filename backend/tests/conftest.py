"""
Pytest fixtures for ShopPOS backend tests.

Provides an application bound to a fresh in-memory database per test, users
for each role, auth headers, and small catalog factories.
"""

from decimal import Decimal

import pytest

from shoppos import create_app
from shoppos.extensions import db
from shoppos.models import Category, Customer, Product, Supplier
from shoppos.services.auth_service import create_user


TEST_PASSWORD = "secret123"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def admin_user(app):
    return create_user(name="Admin", email="admin@shop.test", password=TEST_PASSWORD, role="admin", username="admin")


@pytest.fixture(scope='function')
def manager_user(app):
    return create_user(name="Manager", email="manager@shop.test", password=TEST_PASSWORD, role="manager", username="manager")


@pytest.fixture(scope='function')
def cashier_user(app):
    return create_user(name="Cashier", email="cashier@shop.test", password=TEST_PASSWORD, role="cashier", username="cashier")


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def login(client):
    """login(username, password=TEST_PASSWORD) -> token or None."""
    def _login(username: str, password: str = TEST_PASSWORD):
        return get_auth_token(client, username, password)
    return _login


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, "manager"))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, "cashier"))


@pytest.fixture(scope='function')
def category(app):
    category = Category(name="Groceries")
    db.session.add(category)
    db.session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(app, category):
    """Factory: make_product(sku=..., price=..., stock=...)."""
    counter = {"n": 0}

    def _make(sku=None, name=None, price="9.99", cost="5.00", stock=100, alert_threshold=5,
              category_id=None, active=True):
        counter["n"] += 1
        product = Product(
            name=name or f"Product {counter['n']}",
            sku=sku or f"SKU-{counter['n']:03d}",
            price=Decimal(price),
            cost=Decimal(cost),
            stock_quantity=stock,
            alert_threshold=alert_threshold,
            category_id=category_id or category.id,
            active=active,
        )
        db.session.add(product)
        db.session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product(sku="MILK-1L", name="Milk 1L", price="9.99", stock=100)


@pytest.fixture(scope='function')
def supplier(app):
    supplier = Supplier(name="Acme Wholesale", email="orders@acme.test")
    db.session.add(supplier)
    db.session.commit()
    return supplier


@pytest.fixture(scope='function')
def customer(app):
    customer = Customer(name="Jane Doe", phone="555-0100")
    db.session.add(customer)
    db.session.commit()
    return customer


@pytest.fixture(scope='function')
def stock_of(app):
    """Read stock straight from the database, bypassing the identity map."""
    def _stock(product_id: int) -> int:
        db.session.expire_all()
        return db.session.get(Product, product_id).stock_quantity
    return _stock
