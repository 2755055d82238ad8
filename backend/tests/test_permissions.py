"""
Role capability table and CLI tests.
"""

import pytest

from ddik.cli import DEFAULT_USERS
from ddik.extensions import db
from ddik.models import SecurityEvent, User
from ddik.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    VALID_ROLES,
    get_all_permission_codes,
    permissions_for_role,
    role_has_permission,
    validate_permission_code,
)
from ddik.services import permission_service
from ddik.services.permission_service import PermissionDeniedError


class TestCapabilityTable:

    def test_every_role_defined(self):
        assert set(DEFAULT_ROLE_PERMISSIONS) == set(VALID_ROLES)

    def test_table_only_references_known_permissions(self):
        known = set(get_all_permission_codes())
        for role, perms in DEFAULT_ROLE_PERMISSIONS.items():
            assert perms <= known, role

    def test_permission_codes_unique(self):
        codes = get_all_permission_codes()
        assert len(codes) == len(set(codes)) == len(PERMISSION_DEFINITIONS)

    def test_admin_holds_everything(self):
        assert permissions_for_role("admin") == frozenset(get_all_permission_codes())

    def test_manager_cannot_administer_users(self):
        assert role_has_permission("gerente", "VIEW_REPORTS")
        assert not role_has_permission("gerente", "MANAGE_USERS")
        assert not role_has_permission("gerente", "ISSUE_INVITATIONS")

    def test_staff_scope(self):
        assert role_has_permission("funcionario", "ADJUST_STOCK")
        assert role_has_permission("funcionario", "FULFILL_ORDER")
        assert not role_has_permission("funcionario", "VIEW_REPORTS")
        assert not role_has_permission("funcionario", "DELETE_PRODUCTS")

    def test_customer_only_browses_catalog(self):
        assert permissions_for_role("cliente") == frozenset({"VIEW_CATALOG"})

    @pytest.mark.parametrize("role", [None, "", "root"])
    def test_unknown_role_has_nothing(self, role):
        assert permissions_for_role(role) == frozenset()

    def test_validate_permission_code(self):
        assert validate_permission_code("RECORD_SALE")
        assert not validate_permission_code("FLY")


class TestRequirePermission:

    def test_granted(self, app, users):
        permission_service.require_permission(users["gerente"].id, "gerente", "VIEW_REPORTS")

    def test_denied_is_logged(self, app, users):
        with pytest.raises(PermissionDeniedError):
            permission_service.require_permission(
                users["funcionario"].id, "funcionario", "VIEW_REPORTS", resource="/api/reports/sales"
            )

        events = db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").all()
        assert len(events) == 1
        assert events[0].action == "VIEW_REPORTS"


class TestCli:

    def test_system_init_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0, first.output
        assert db.session.query(User).count() == len(DEFAULT_USERS)

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0
        assert "already exists" in second.output
        assert db.session.query(User).count() == len(DEFAULT_USERS)

    def test_create_and_set_role(self, app):
        runner = app.test_cli_runner()

        created = runner.invoke(
            args=["users", "create", "--email", "rui@ddik.test", "--password", "Password123!", "--role", "cliente"]
        )
        assert created.exit_code == 0, created.output
        assert "PASS" in created.output

        changed = runner.invoke(args=["users", "set-role", "rui@ddik.test", "gerente"])
        assert "PASS" in changed.output
        assert db.session.query(User).filter_by(email="rui@ddik.test").one().role == "gerente"

    def test_issue_invitation(self, app, users):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["invites", "issue", "--role", "funcionario", "--issuer", "admin@ddik.test"])
        assert result.exit_code == 0, result.output
        assert "PASS" in result.output

        denied = runner.invoke(args=["invites", "issue", "--role", "funcionario", "--issuer", "gerente@ddik.test"])
        assert "FAIL" in denied.output

    def test_perms_check(self, app):
        runner = app.test_cli_runner()

        granted = runner.invoke(args=["perms", "check", "gerente", "VIEW_REPORTS"])
        assert "HAS permission" in granted.output

        denied = runner.invoke(args=["perms", "check", "cliente", "VIEW_REPORTS"])
        assert "DOES NOT HAVE" in denied.output

        listing = runner.invoke(args=["perms", "list", "--role", "cliente"])
        assert "VIEW_CATALOG" in listing.output
        assert "Total: 1 permissions" in listing.output
