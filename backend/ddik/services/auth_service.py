# Overview: Service-layer operations for auth; accounts, passwords, profiles and roles.

"""
Authentication Service

Every action must be attributable. Uses bcrypt for password hashing and
validates password strength at sign-up.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with uppercase, lowercase, digit and special char
- Session tokens managed separately (see session_service.py)
- Sign-up without an invitation always yields the cliente role; staff roles
  only come from an invitation or an administrator (see invitation_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Profile, UserRole
from ..permissions import DEFAULT_SIGNUP_ROLE, VALID_ROLES, is_valid_role
from ..validation import ConflictError, NotFoundError
from ddik.time_utils import utcnow
from . import invitation_service


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PROFILE_FIELDS = ("display_name", "full_name", "avatar_url")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(ValueError):
    """Raised for invalid account input."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    if not isinstance(email, str):
        raise AuthError("email is required")
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise AuthError("email is invalid")
    return email


def _create_user_inner(*, email: str, password: str, role: str, display_name: str | None) -> User:
    if not is_valid_role(role):
        raise AuthError(f"role must be one of: {', '.join(VALID_ROLES)}")

    email = normalize_email(email)
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("email already registered")

    user = User(email=email, password_hash=hash_password(password), is_active=True)
    db.session.add(user)
    db.session.flush()

    db.session.add(Profile(user_id=user.id, display_name=(display_name or email.split("@")[0])))
    db.session.add(UserRole(user_id=user.id, role=role))
    db.session.flush()
    return user


def create_user(*, email: str, password: str, role: str, display_name: str | None = None) -> User:
    """Administrative account creation with an explicit role (CLI, seeding)."""
    user = _create_user_inner(email=email, password=password, role=role, display_name=display_name)
    db.session.commit()
    return user


def sign_up(
    *,
    email: str,
    password: str,
    display_name: str | None = None,
    invite_token: str | None = None,
) -> User:
    """
    Self-registration.

    No invitation token -> cliente. A token grants the role it was issued
    for and is consumed in the same transaction as the account creation.
    An unknown, expired or already used token raises InvitationError.
    """
    try:
        invitation = None
        role = DEFAULT_SIGNUP_ROLE
        if invite_token is not None and invite_token.strip():
            invitation = invitation_service.find_redeemable(invite_token.strip())
            role = invitation.role

        user = _create_user_inner(email=email, password=password, role=role, display_name=display_name)

        if invitation is not None:
            invitation_service.mark_used(invitation, user.id)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns User if credentials are valid and the account is active, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user


def get_role(user_id: int) -> str | None:
    assignment = db.session.query(UserRole).filter_by(user_id=user_id).first()
    return assignment.role if assignment else None


def assign_role(user_id: int, role: str) -> UserRole:
    """Set the user's single role, replacing any previous one."""
    if not is_valid_role(role):
        raise AuthError(f"role must be one of: {', '.join(VALID_ROLES)}")

    get_user(user_id)
    assignment = db.session.query(UserRole).filter_by(user_id=user_id).first()
    if assignment is None:
        assignment = UserRole(user_id=user_id, role=role)
        db.session.add(assignment)
    else:
        assignment.role = role
        assignment.assigned_at = utcnow()

    db.session.commit()
    return assignment


def update_profile(user_id: int, changes: dict) -> Profile:
    """Update display fields of the user's own profile."""
    unknown = set(changes) - set(PROFILE_FIELDS)
    if unknown:
        raise AuthError(f"Field not allowed: {', '.join(sorted(unknown))}")

    profile = db.session.get(Profile, user_id)
    if profile is None:
        get_user(user_id)
        profile = Profile(user_id=user_id)
        db.session.add(profile)

    for key, value in changes.items():
        if value is not None and not isinstance(value, str):
            raise AuthError(f"{key} must be a string")
        setattr(profile, key, value.strip() if isinstance(value, str) else None)

    db.session.commit()
    return profile


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.email.asc()).all()
