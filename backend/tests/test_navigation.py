"""
Role-gated navigation tests.

The page decisions must agree with the API permissions: a role that is
redirected away from a page is also refused by that page's endpoints.
"""

import pytest

from ddik.permissions import PAGE_DEFINITIONS, role_has_permission
from ddik.services.navigation_service import (
    home_for_role,
    menu_for_role,
    normalize_path,
    resolve_route,
)


class TestResolveRoute:

    @pytest.mark.parametrize("path", ["/auth", "/register"])
    @pytest.mark.parametrize("role", [None, "admin", "cliente"])
    def test_public_pages_always_allowed(self, role, path):
        decision = resolve_route(role, path)
        assert decision.allowed is True
        assert decision.redirect_to is None

    @pytest.mark.parametrize("path", ["/dashboard", "/products", "/orders", "/catalogo", "/"])
    def test_anonymous_redirected_to_login(self, path):
        decision = resolve_route(None, path)
        assert decision.allowed is False
        assert decision.redirect_to == "/auth"

    def test_unknown_role_treated_as_anonymous(self):
        decision = resolve_route("superuser", "/dashboard")
        assert decision.redirect_to == "/auth"

    @pytest.mark.parametrize(
        "path",
        ["/dashboard", "/products", "/inventory", "/orders", "/incidents", "/reports"],
    )
    def test_customer_sent_to_catalog(self, path):
        decision = resolve_route("cliente", path)
        assert decision.allowed is False
        assert decision.redirect_to == "/catalogo"

    def test_customer_may_open_catalog(self):
        assert resolve_route("cliente", "/catalogo").allowed is True

    def test_staff_denied_reports(self):
        decision = resolve_route("funcionario", "/reports")
        assert decision.allowed is False
        assert decision.redirect_to == "/dashboard"

    @pytest.mark.parametrize("role", ["admin", "gerente"])
    def test_managers_see_reports(self, role):
        assert resolve_route(role, "/reports").allowed is True

    def test_unknown_path_is_not_found(self):
        decision = resolve_route("admin", "/does-not-exist")
        assert decision.allowed is False
        assert decision.not_found is True
        assert decision.redirect_to is None

    def test_path_normalization(self):
        assert normalize_path("/orders/?status=pending") == "/orders"
        assert normalize_path("orders") == "/orders"
        assert normalize_path("") == "/"
        assert resolve_route("funcionario", "/orders/").allowed is True

    @pytest.mark.parametrize("role", ["admin", "gerente", "funcionario", "cliente"])
    def test_decisions_match_permission_table(self, role):
        for path, _title, permission, _in_menu in PAGE_DEFINITIONS:
            if permission is None:
                continue
            assert resolve_route(role, path).allowed == role_has_permission(role, permission)


class TestMenu:

    def test_customer_menu_is_catalog_only(self):
        assert menu_for_role("cliente") == [{"path": "/catalogo", "title": "Catálogo"}]

    def test_staff_menu_hides_reports(self):
        paths = [item["path"] for item in menu_for_role("funcionario")]
        assert "/reports" not in paths
        assert "/orders" in paths
        assert "/" not in paths

    def test_admin_menu_lists_every_menu_page(self):
        expected = [path for path, _t, perm, in_menu in PAGE_DEFINITIONS if in_menu and perm]
        assert [item["path"] for item in menu_for_role("admin")] == expected

    def test_anonymous_menu_empty(self):
        assert menu_for_role(None) == []

    def test_home_pages(self):
        assert home_for_role("admin") == "/dashboard"
        assert home_for_role("funcionario") == "/dashboard"
        assert home_for_role("cliente") == "/catalogo"
        assert home_for_role(None) == "/auth"


class TestNavigationRoutes:

    def test_resolve_anonymous(self, client):
        resp = client.get("/api/navigation/resolve?path=/orders")
        assert resp.status_code == 200
        assert resp.json["allowed"] is False
        assert resp.json["redirect_to"] == "/auth"
        assert resp.json["role"] is None

    def test_resolve_with_session(self, client, customer_headers):
        resp = client.get("/api/navigation/resolve?path=/reports", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["role"] == "cliente"
        assert resp.json["redirect_to"] == "/catalogo"

    def test_resolve_requires_path(self, client):
        resp = client.get("/api/navigation/resolve")
        assert resp.status_code == 400

    def test_menu_requires_auth(self, client):
        assert client.get("/api/navigation/menu").status_code == 401

    def test_menu_for_manager(self, client, manager_headers):
        resp = client.get("/api/navigation/menu", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["home"] == "/dashboard"
        assert "/reports" in [item["path"] for item in resp.json["items"]]

    def test_redirected_page_matches_api_refusal(self, client, staff_headers):
        decision = client.get("/api/navigation/resolve?path=/reports", headers=staff_headers).json
        assert decision["allowed"] is False
        assert client.get("/api/reports/sales", headers=staff_headers).status_code == 403
