# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/ddik/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and one default user per role.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email ana@ddik.local --password "Password123!" --role funcionario
#   Create a user (prompts if options are omitted).
# - python -m flask users set-role ana@ddik.local gerente
#   Replace a user's role.
#
# Invitations:
# - python -m flask invites issue --role funcionario --hours 48 --issuer admin@ddik.local
#   Print a one-time registration token for the role.
#
# Permissions:
# - python -m flask perms list [--role gerente]
#   List permissions, optionally only those a role holds.
# - python -m flask perms check funcionario VIEW_REPORTS
#   Check whether a role holds a permission.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import (
    PERMISSION_DEFINITIONS,
    VALID_ROLES,
    get_permission_definition,
    permissions_for_role,
    role_has_permission,
)
from .services.auth_service import create_user, assign_role, AuthError, PasswordValidationError
from .services.invitation_service import issue_invitation, InvitationError
from .validation import ConflictError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("admin@ddik.local", "admin", "Administrador"),
    ("gerente@ddik.local", "gerente", "Gerente"),
    ("funcionario@ddik.local", "funcionario", "Funcionário"),
    ("cliente@ddik.local", "cliente", "Cliente"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default=DEFAULT_PASSWORD, show_default=True, help='Password for the default users')
@with_appcontext
def init_system(password):
    """
    Initialize D-DIK: tables and one default user per role.

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing D-DIK system...")

    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default users...")
    for email, role, display_name in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            create_user(email=email, password=password, role=role, display_name=display_name)
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed for '{email}': {str(e)}")
            return

    click.echo("\n" + "="*60)
    click.echo("DONE D-DIK System Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for email, role, _ in DEFAULT_USERS:
        click.echo(f"   {role:<12} -> {email:<24} / {password}")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.email.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {active_str:<8} {user.role or 'none'}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(VALID_ROLES), prompt=True, help='Role')
@click.option('--display-name', default=None, help='Display name (defaults to the email local part)')
@with_appcontext
def create_user_cli(email, password, role, display_name):
    """Create a user with an explicit role."""
    try:
        user = create_user(email=email, password=password, role=role, display_name=display_name)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except (AuthError, ConflictError) as e:
        click.echo(f"FAIL Error: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{role}'")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role', type=click.Choice(VALID_ROLES))
@with_appcontext
def set_role_cli(email, role):
    """Replace a user's role."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    assign_role(user.id, role)
    click.echo(f"PASS User '{user.email}' now has role '{role}'")


@click.group('invites')
def invites_group():
    """Registration invitation commands."""


@invites_group.command('issue')
@click.option('--role', type=click.Choice(VALID_ROLES), required=True, help='Role granted on registration')
@click.option('--hours', type=int, default=None, help='Validity in hours (defaults to INVITATION_TTL_HOURS)')
@click.option('--issuer', required=True, help='Email of the issuing administrator')
@with_appcontext
def issue_invite_cli(role, hours, issuer):
    """Print a one-time registration token."""
    user = db.session.query(User).filter_by(email=issuer.strip().lower()).first()
    if not user:
        click.echo(f"FAIL Issuer '{issuer}' not found")
        return
    if not role_has_permission(user.role, "ISSUE_INVITATIONS"):
        click.echo(f"FAIL User '{issuer}' may not issue invitations")
        return

    try:
        invitation, token = issue_invitation(role=role, issued_by_user_id=user.id, ttl_hours=hours)
    except InvitationError as e:
        click.echo(f"FAIL Error: {str(e)}")
        return

    click.echo(f"PASS Invitation {invitation.id} for role '{role}' expires {invitation.to_dict()['expires_at']}")
    click.echo(token)


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(VALID_ROLES), help='Only permissions held by this role')
def list_permissions_cli(role):
    """List permissions grouped by category."""
    if role:
        granted = permissions_for_role(role)
        perms = [p for p in PERMISSION_DEFINITIONS if p[0] in granted]
        title = f"Permissions for role: {role.upper()}"
    else:
        perms = list(PERMISSION_DEFINITIONS)
        title = "All Permissions"

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}\n")

    current_category = None
    for code, name, _description, category in sorted(perms, key=lambda p: (p[3], p[0])):
        if category != current_category:
            if current_category:
                click.echo("")
            click.echo(f"CATEGORY {category}")
            click.echo("-"*80)
            current_category = category
        click.echo(f"  {code:<28} {name}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('check')
@click.argument('role', type=click.Choice(VALID_ROLES))
@click.argument('permission_code')
def check_permission_cli(role, permission_code):
    """Check if a role holds a specific permission."""
    if get_permission_definition(permission_code) is None:
        click.echo(f"FAIL Unknown permission '{permission_code}'")
        return

    if role_has_permission(role, permission_code):
        click.echo(f"PASS Role '{role}' HAS permission '{permission_code}'")
    else:
        click.echo(f"FAIL Role '{role}' DOES NOT HAVE permission '{permission_code}'")

    click.echo(f"\nTotal permissions for '{role}': {len(permissions_for_role(role))}")


def register_commands(app):
    """Register all CLI commands with the Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(invites_group)
    app.cli.add_command(perms_group)
