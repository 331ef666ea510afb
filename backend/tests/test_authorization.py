"""
Authorization tests for ShopPOS.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied staff and admin operations (403)
- Manager role can run catalog, purchasing and forecasting
- Admin-only operations (users, settings) are protected
- Deactivated users lose access immediately
"""

import pytest

from shoppos.extensions import db
from shoppos.permissions import authorize, list_roles, STAFF_ROLES
from shoppos.services import session_service


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/user"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/categories"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/customers"),
            ("GET", "/api/users"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/purchases"),
            ("GET", "/api/returns"),
            ("GET", "/api/inventory/forecast"),
            ("POST", "/api/inventory/generate-po"),
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/settings/currency"),
            ("PUT", "/api/settings/currency"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert "message" in resp.json

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401

    def test_non_bearer_scheme_rejected(self, client):
        resp = client.get("/api/products", headers={"Authorization": "Basic YWRtaW46YWRtaW4="})
        assert resp.status_code == 401

    def test_health_is_public(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["database"]["status"] == "healthy"


# =============================================================================
# CASHIER DENIED STAFF OPERATIONS (403)
# =============================================================================


class TestCashierDenied:
    """Cashier role cannot perform privileged operations."""

    def test_cannot_list_users(self, client, cashier_headers):
        resp = client.get("/api/users", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_create_product(self, client, cashier_headers, category):
        resp = client.post("/api/products", headers=cashier_headers, json={
            "name": "Contraband", "sku": "NOPE-1", "price": "1.00", "category_id": category.id,
        })
        assert resp.status_code == 403

    def test_cannot_create_purchase(self, client, cashier_headers, supplier, product):
        resp = client.post("/api/purchases", headers=cashier_headers, json={
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 1, "unit_cost": "1.00"}],
        })
        assert resp.status_code == 403

    def test_cannot_view_forecast(self, client, cashier_headers):
        resp = client.get("/api/inventory/forecast", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_create_return(self, client, cashier_headers):
        resp = client.post("/api/returns", headers=cashier_headers, json={"sale_id": 1, "items": []})
        assert resp.status_code == 403

    def test_cannot_update_settings(self, client, cashier_headers):
        resp = client.put("/api/settings/currency", headers=cashier_headers, json={
            "base_currency": "EUR", "currency_symbol": "€", "currency_position": "after",
        })
        assert resp.status_code == 403

    def test_cannot_promote_self(self, client, cashier_headers, cashier_user):
        resp = client.put(f"/api/users/{cashier_user.id}", headers=cashier_headers, json={"role": "admin"})
        assert resp.status_code == 403
        db.session.refresh(cashier_user)
        assert cashier_user.role == "cashier"

    def test_can_edit_own_profile(self, client, cashier_headers, cashier_user):
        resp = client.put(f"/api/users/{cashier_user.id}", headers=cashier_headers, json={"name": "Till 1"})
        assert resp.status_code == 200
        assert resp.json["name"] == "Till 1"

    def test_cannot_edit_someone_else(self, client, cashier_headers, manager_user):
        resp = client.put(f"/api/users/{manager_user.id}", headers=cashier_headers, json={"name": "Boss"})
        assert resp.status_code == 403

    def test_can_sell_and_read_catalog(self, client, cashier_headers, product):
        assert client.get("/api/products", headers=cashier_headers).status_code == 200
        resp = client.post("/api/sales", headers=cashier_headers, json={
            "items": [{"product_id": product.id, "quantity": 1}],
        })
        assert resp.status_code == 201


# =============================================================================
# MANAGER AND ADMIN ACCESS
# =============================================================================


class TestStaffAccess:

    def test_manager_can_create_product(self, client, manager_headers, category):
        resp = client.post("/api/products", headers=manager_headers, json={
            "name": "Bread", "sku": "BRD-1", "price": "2.50", "category_id": category.id,
        })
        assert resp.status_code == 201

    def test_manager_can_view_forecast(self, client, manager_headers):
        assert client.get("/api/inventory/forecast", headers=manager_headers).status_code == 200

    def test_manager_cannot_manage_users(self, client, manager_headers):
        assert client.get("/api/users", headers=manager_headers).status_code == 403

    def test_manager_cannot_update_settings(self, client, manager_headers):
        resp = client.put("/api/settings/business", headers=manager_headers, json={"business_name": "Mine"})
        assert resp.status_code == 403

    def test_admin_can_manage_users(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={
            "name": "New Cashier", "email": "new@shop.test", "username": "newbie",
            "role": "cashier", "password": "secret123",
        })
        assert resp.status_code == 201
        assert "password_hash" not in resp.json

        listing = client.get("/api/users", headers=admin_headers)
        assert {u["username"] for u in listing.json["items"]} >= {"admin", "newbie"}

    def test_admin_cannot_demote_self(self, client, admin_headers, admin_user):
        resp = client.put(f"/api/users/{admin_user.id}/role", headers=admin_headers, json={"role": "cashier"})
        assert resp.status_code == 400

    def test_roles_listing(self, client, cashier_headers):
        resp = client.get("/api/users/roles", headers=cashier_headers)
        assert [r["name"] for r in resp.json["items"]] == ["admin", "manager", "cashier"]


# =============================================================================
# DEACTIVATION
# =============================================================================


class TestDeactivation:

    def test_deactivated_user_token_stops_working(self, client, login, admin_headers, cashier_headers, cashier_user):
        assert client.get("/api/products", headers=cashier_headers).status_code == 200

        resp = client.put(
            f"/api/users/{cashier_user.id}/status", headers=admin_headers, json={"active": False}
        )
        assert resp.status_code == 200

        assert client.get("/api/products", headers=cashier_headers).status_code == 401
        assert login("cashier") is None

    def test_reactivated_user_can_log_in_again(self, client, login, admin_headers, cashier_user):
        client.put(f"/api/users/{cashier_user.id}/status", headers=admin_headers, json={"active": False})
        client.put(f"/api/users/{cashier_user.id}/status", headers=admin_headers, json={"active": True})

        assert login("cashier") is not None

    def test_session_revoked_when_user_inactive(self, app, cashier_user):
        _, token = session_service.create_session(cashier_user.id)
        cashier_user.active = False
        db.session.commit()

        assert session_service.validate_session(token) is None


# =============================================================================
# AUTHORIZE (UNIT)
# =============================================================================


class _Identity:
    def __init__(self, role, active=True):
        self.role = role
        self.active = active


class TestAuthorize:

    def test_no_identity(self):
        result = authorize(None, STAFF_ROLES)
        assert not result.allowed
        assert result.reason == "Authentication required"

    def test_inactive_identity(self):
        assert not authorize(_Identity("admin", active=False), ()).allowed

    def test_unknown_role(self):
        result = authorize(_Identity("janitor"), ())
        assert not result.allowed
        assert "Unknown role" in result.reason

    @pytest.mark.parametrize("role,allowed", [("admin", True), ("manager", True), ("cashier", False)])
    def test_staff_roles(self, role, allowed):
        assert authorize(_Identity(role), STAFF_ROLES).allowed is allowed

    def test_empty_roles_means_any_authenticated(self):
        assert authorize(_Identity("cashier"), ()).allowed

    def test_list_roles_has_descriptions(self):
        assert all(r["description"] for r in list_roles())
