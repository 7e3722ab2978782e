"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Each role is denied what ROLE_PERMISSIONS does not grant it (403)
- Admin role can perform privileged operations
- Public endpoints stay reachable
"""

import pytest

from salesledger.errors import UnauthorizedError
from salesledger.models import User
from salesledger.permissions import ROLE_PERMISSIONS, authorize, has_permission


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales/1"),
            ("PATCH", "/api/sales/1/void"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/stock-history"),
            ("POST", "/api/stock-history"),
            ("GET", "/api/reports/sales"),
            ("GET", "/api/reports/inventory"),
            ("GET", "/api/reports/top-products"),
            ("GET", "/api/reports/revenue-trends"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/sales", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# ROLE RESTRICTIONS (403)
# =============================================================================


class TestStaffDenied:
    """Staff sell and void but cannot manage the catalog or see reports."""

    def test_cannot_view_reports(self, client, staff_headers):
        resp = client.get("/api/reports/inventory", headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["details"]["required_permission"] == "VIEW_REPORTS"

    def test_cannot_create_product(self, client, staff_headers):
        resp = client.post("/api/products", json={"name": "Nope"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_record_delivery(self, client, staff_headers):
        resp = client.post("/api/stock-history", json={"product_id": 1, "quantity": 5}, headers=staff_headers)
        assert resp.status_code == 403


class TestSupplierDenied:

    def test_cannot_void(self, client, supplier_headers):
        resp = client.patch("/api/sales/1/void", json={"supervisor_code": "x"}, headers=supplier_headers)
        assert resp.status_code == 403

    def test_cannot_view_reports(self, client, supplier_headers):
        resp = client.get("/api/reports/top-products", headers=supplier_headers)
        assert resp.status_code == 403


class TestAdminAccess:

    def test_can_view_reports(self, client, admin_headers):
        resp = client.get("/api/reports/inventory", headers=admin_headers)
        assert resp.status_code == 200

    def test_can_create_product(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "Rice", "price_cents": 5000}, headers=admin_headers)
        assert resp.status_code == 201


# =============================================================================
# PERMISSION TABLE
# =============================================================================


class TestPermissionTable:

    def test_admin_holds_everything(self):
        for role, codes in ROLE_PERMISSIONS.items():
            assert codes <= ROLE_PERMISSIONS["admin"], role

    def test_inactive_user_has_nothing(self):
        user = User(username="x", email="x@example.com", password_hash="-", role="admin", is_active=False)
        assert has_permission(user, "VIEW_REPORTS") is False

    def test_authorize_raises(self):
        user = User(username="s", email="s@example.com", password_hash="-", role="staff", is_active=True)
        with pytest.raises(UnauthorizedError):
            authorize(user, "MANAGE_PRODUCTS")

    def test_unknown_permission_code(self):
        user = User(username="a", email="a@example.com", password_hash="-", role="admin", is_active=True)
        with pytest.raises(ValueError):
            authorize(user, "LAUNCH_ROCKETS")


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================


class TestPublicEndpoints:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"
