# Overview: Service-layer operations for registration invitations.

"""
Invitation tokens

An administrator issues an invitation for one role. The plaintext token is
returned once; the database keeps only HMAC-SHA256(SECRET_KEY, token), so a
leaked table cannot be replayed and rotating SECRET_KEY invalidates every
outstanding invitation.

A token is redeemable while it is unexpired and unused. Redemption happens
inside the sign-up transaction (auth_service.sign_up).
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Invitation, User
from ..permissions import VALID_ROLES, is_valid_role
from ..validation import NotFoundError
from ddik.time_utils import utcnow


class InvitationError(ValueError):
    """Raised when an invitation cannot be issued or redeemed."""
    pass


def sign_token(token: str) -> str:
    key = current_app.config["SECRET_KEY"].encode("utf-8")
    return hmac.new(key, token.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_invitation(
    *,
    role: str,
    issued_by_user_id: int,
    ttl_hours: int | None = None,
) -> tuple[Invitation, str]:
    """Returns (invitation, plaintext_token)."""
    if not is_valid_role(role):
        raise InvitationError(f"role must be one of: {', '.join(VALID_ROLES)}")

    if ttl_hours is None:
        ttl_hours = current_app.config.get("INVITATION_TTL_HOURS", 72)
    if isinstance(ttl_hours, bool) or not isinstance(ttl_hours, int) or ttl_hours <= 0:
        raise InvitationError("ttl_hours must be a positive integer")

    if db.session.get(User, issued_by_user_id) is None:
        raise NotFoundError("issuer not found")

    token = secrets.token_urlsafe(24)
    invitation = Invitation(
        token_hash=sign_token(token),
        role=role,
        issued_by_user_id=issued_by_user_id,
        expires_at=utcnow() + timedelta(hours=ttl_hours),
    )
    db.session.add(invitation)
    db.session.commit()
    return invitation, token


def find_redeemable(token: str) -> Invitation:
    """Look up an invitation by token and check it can still be used."""
    invitation = db.session.query(Invitation).filter_by(token_hash=sign_token(token)).first()
    if invitation is None:
        raise InvitationError("invitation token is invalid")
    if invitation.used_at is not None:
        raise InvitationError("invitation token has already been used")
    if invitation.expires_at <= utcnow():
        raise InvitationError("invitation token has expired")
    return invitation


def mark_used(invitation: Invitation, user_id: int) -> None:
    """
    Consume the invitation. Caller commits.

    The claim is a conditional UPDATE on used_at IS NULL, so of two sign-ups
    racing on one token only the first to write gets a row back.
    """
    claimed = db.session.query(Invitation).filter(
        Invitation.id == invitation.id,
        Invitation.used_at.is_(None),
    ).update({"used_at": utcnow(), "used_by_user_id": user_id})
    if claimed != 1:
        raise InvitationError("invitation token has already been used")


def list_invitations(*, include_used: bool = False) -> list[Invitation]:
    q = db.session.query(Invitation)
    if not include_used:
        q = q.filter(Invitation.used_at.is_(None))
    return q.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()
