"""
Account, session and invitation tests.

Verifies:
- Self-registration yields cliente unless a valid invitation is redeemed
- Invitations are single use, expire, and are stored only as an HMAC
- Login, validation and logout of bearer sessions
- Failed logins and rejected invitations reach security_events
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from ddik.extensions import db
from ddik.models import Invitation, SecurityEvent, User, UserRole
from ddik.services import auth_service, invitation_service, session_service
from ddik.services.auth_service import AuthError, PasswordValidationError
from ddik.services.invitation_service import InvitationError
from ddik.time_utils import utcnow
from ddik.validation import ConflictError

from conftest import TEST_PASSWORD, auth_headers


class TestSignUp:

    def test_plain_sign_up_is_customer(self, app):
        user = auth_service.sign_up(email="  Ana@Example.com ", password=TEST_PASSWORD)

        assert user.email == "ana@example.com"
        assert user.role == "cliente"
        assert user.profile.display_name == "ana"

    def test_blank_invite_token_is_ignored(self, app):
        user = auth_service.sign_up(email="bia@example.com", password=TEST_PASSWORD, invite_token="  ")
        assert user.role == "cliente"

    def test_invitation_grants_its_role_once(self, app, users):
        invitation, token = invitation_service.issue_invitation(
            role="funcionario", issued_by_user_id=users["admin"].id
        )

        user = auth_service.sign_up(email="caio@example.com", password=TEST_PASSWORD, invite_token=token)
        assert user.role == "funcionario"

        db.session.refresh(invitation)
        assert invitation.used_at is not None
        assert invitation.used_by_user_id == user.id

        with pytest.raises(InvitationError, match="already been used"):
            auth_service.sign_up(email="dani@example.com", password=TEST_PASSWORD, invite_token=token)
        assert db.session.query(User).filter_by(email="dani@example.com").first() is None

    def test_expired_invitation_rejected(self, app, users):
        invitation, token = invitation_service.issue_invitation(
            role="gerente", issued_by_user_id=users["admin"].id
        )
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        with pytest.raises(InvitationError, match="expired"):
            auth_service.sign_up(email="edu@example.com", password=TEST_PASSWORD, invite_token=token)

    def test_unknown_invitation_rejected(self, app):
        with pytest.raises(InvitationError, match="invalid"):
            auth_service.sign_up(email="fe@example.com", password=TEST_PASSWORD, invite_token="forged")

    def test_failed_sign_up_keeps_invitation(self, app, users):
        invitation, token = invitation_service.issue_invitation(
            role="funcionario", issued_by_user_id=users["admin"].id
        )

        with pytest.raises(PasswordValidationError):
            auth_service.sign_up(email="gil@example.com", password="weak", invite_token=token)

        db.session.refresh(invitation)
        assert invitation.used_at is None

    def test_duplicate_email(self, app, users):
        with pytest.raises(ConflictError):
            auth_service.sign_up(email="ADMIN@ddik.test", password=TEST_PASSWORD)

    def test_invalid_email(self, app):
        with pytest.raises(AuthError):
            auth_service.sign_up(email="not-an-email", password=TEST_PASSWORD)

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
    )
    def test_weak_passwords(self, app, password):
        with pytest.raises(PasswordValidationError):
            auth_service.sign_up(email="hugo@example.com", password=password)


class TestInvitations:

    def test_token_stored_as_hmac(self, app, users):
        invitation, token = invitation_service.issue_invitation(
            role="gerente", issued_by_user_id=users["admin"].id
        )
        assert invitation.token_hash != token
        assert invitation.token_hash == invitation_service.sign_token(token)

    def test_invalid_role(self, app, users):
        with pytest.raises(InvitationError):
            invitation_service.issue_invitation(role="owner", issued_by_user_id=users["admin"].id)

    def test_invalid_ttl(self, app, users):
        with pytest.raises(InvitationError):
            invitation_service.issue_invitation(role="gerente", issued_by_user_id=users["admin"].id, ttl_hours=0)

    def test_list_hides_used_by_default(self, app, users):
        _used, token = invitation_service.issue_invitation(role="funcionario", issued_by_user_id=users["admin"].id)
        pending, _ = invitation_service.issue_invitation(role="gerente", issued_by_user_id=users["admin"].id)
        auth_service.sign_up(email="ivo@example.com", password=TEST_PASSWORD, invite_token=token)

        assert [i.id for i in invitation_service.list_invitations()] == [pending.id]
        assert len(invitation_service.list_invitations(include_used=True)) == 2

    def test_concurrent_redemption_is_rejected(self, file_app, monkeypatch):
        admin = auth_service.create_user(email="admin@ddik.test", password=TEST_PASSWORD, role="admin")
        invitation, token = invitation_service.issue_invitation(role="gerente", issued_by_user_id=admin.id)
        invitation_id = invitation.id
        admin_id = admin.id

        original = invitation_service.find_redeemable

        def racing_find(raw_token):
            found = original(raw_token)
            table = Invitation.__table__
            with db.engine.connect() as conn:
                conn.execute(
                    update(table)
                    .where(table.c.id == invitation_id)
                    .values(used_at=utcnow(), used_by_user_id=admin_id)
                )
                conn.commit()
            return found

        monkeypatch.setattr(invitation_service, "find_redeemable", racing_find)

        with pytest.raises(InvitationError):
            auth_service.sign_up(email="late@example.com", password=TEST_PASSWORD, invite_token=token)

        assert db.session.query(User).filter_by(email="late@example.com").count() == 0
        assert db.session.get(Invitation, invitation_id).used_by_user_id == admin_id


class TestRolesAndProfiles:

    def test_assign_role_replaces(self, app, users):
        auth_service.assign_role(users["cliente"].id, "funcionario")
        assert auth_service.get_role(users["cliente"].id) == "funcionario"
        assert db.session.query(UserRole).filter_by(user_id=users["cliente"].id).count() == 1

    def test_assign_invalid_role(self, app, users):
        with pytest.raises(AuthError):
            auth_service.assign_role(users["cliente"].id, "root")

    def test_update_profile(self, app, users):
        profile = auth_service.update_profile(users["cliente"].id, {"display_name": " Joana ", "full_name": "Joana Lima"})
        assert profile.display_name == "Joana"
        assert profile.full_name == "Joana Lima"

    def test_update_profile_rejects_other_fields(self, app, users):
        with pytest.raises(AuthError):
            auth_service.update_profile(users["cliente"].id, {"role": "admin"})


class TestSessions:

    def test_validate_and_revoke(self, app, users):
        _session, token = session_service.create_session(users["gerente"].id)

        context = session_service.validate_session(token)
        assert context.user.id == users["gerente"].id
        assert context.role == "gerente"

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None

    def test_idle_session_revoked(self, app, users):
        session, token = session_service.create_session(users["gerente"].id)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db.session.commit()

        assert session_service.validate_session(token) is None
        db.session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_deactivated_user_loses_session(self, app, users):
        _session, token = session_service.create_session(users["funcionario"].id)
        users["funcionario"].is_active = False
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_revoke_all(self, app, users):
        for _ in range(3):
            session_service.create_session(users["admin"].id)
        assert session_service.revoke_all_user_sessions(users["admin"].id) == 3


class TestAuthRoutes:

    def test_register_customer(self, client):
        resp = client.post("/api/auth/register", json={"email": "kim@example.com", "password": TEST_PASSWORD})
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "cliente"
        assert resp.json["home"] == "/catalogo"
        assert resp.json["token"]

    def test_register_with_invitation(self, client, users):
        _invitation, token = invitation_service.issue_invitation(
            role="gerente", issued_by_user_id=users["admin"].id
        )
        resp = client.post(
            "/api/auth/register",
            json={"email": "leo@example.com", "password": TEST_PASSWORD, "invite_token": token},
        )
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "gerente"
        assert resp.json["home"] == "/dashboard"

    def test_register_bad_invitation_logged(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"email": "mia@example.com", "password": TEST_PASSWORD, "invite_token": "nope"},
        )
        assert resp.status_code == 400
        assert db.session.query(SecurityEvent).filter_by(event_type="INVITATION_REJECTED").count() == 1
        assert db.session.query(User).filter_by(email="mia@example.com").first() is None

    def test_register_duplicate(self, client, users):
        resp = client.post("/api/auth/register", json={"email": "cliente@ddik.test", "password": TEST_PASSWORD})
        assert resp.status_code == 409

    def test_register_weak_password(self, client):
        resp = client.post("/api/auth/register", json={"email": "nei@example.com", "password": "weak"})
        assert resp.status_code == 400

    def test_login_and_me(self, client, users):
        resp = client.post("/api/auth/login", json={"email": "funcionario@ddik.test", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        headers = auth_headers(resp.json["token"])

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["role"] == "funcionario"
        assert "ADJUST_STOCK" in me.json["permissions"]
        assert "VIEW_REPORTS" not in me.json["permissions"]
        assert me.json["home"] == "/dashboard"

    def test_login_failure_logged(self, client, users):
        resp = client.post("/api/auth/login", json={"email": "admin@ddik.test", "password": "Wrong123!"})
        assert resp.status_code == 401
        assert db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_logout_invalidates_token(self, client, users):
        token = client.post(
            "/api/auth/login", json={"email": "gerente@ddik.test", "password": TEST_PASSWORD}
        ).json["token"]
        headers = auth_headers(token)

        assert client.post("/api/auth/logout", headers=headers).json["revoked"] is True
        assert client.post("/api/auth/validate", headers=headers).status_code == 401
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_patch_me(self, client, customer_headers):
        resp = client.patch("/api/auth/me", json={"display_name": "Cliente VIP"}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["profile"]["display_name"] == "Cliente VIP"

    def test_patch_me_rejects_role(self, client, customer_headers):
        resp = client.patch("/api/auth/me", json={"role": "admin"}, headers=customer_headers)
        assert resp.status_code == 400
