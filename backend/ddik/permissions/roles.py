# Overview: Role capability table. The single source of truth for what each
# role may do; consulted by API decorators and by page navigation alike.

from .definitions import PERMISSION_DEFINITIONS

ROLE_ADMIN = "admin"
ROLE_MANAGER = "gerente"
ROLE_STAFF = "funcionario"
ROLE_CUSTOMER = "cliente"

# Ordered from most to least privileged
VALID_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, ROLE_CUSTOMER)

# Role assigned on self-registration without an invitation
DEFAULT_SIGNUP_ROLE = ROLE_CUSTOMER

_ALL = frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: _ALL,
    ROLE_MANAGER: _ALL - {"MANAGE_USERS", "ISSUE_INVITATIONS"},
    ROLE_STAFF: frozenset({
        "VIEW_DASHBOARD",
        "VIEW_PRODUCTS",
        "MANAGE_PRODUCTS",
        "ADJUST_STOCK",
        "VIEW_MOVEMENTS",
        "RECORD_SALE",
        "VIEW_ORDERS",
        "CREATE_ORDER",
        "FULFILL_ORDER",
        "CANCEL_ORDER",
        "VIEW_INCIDENTS",
        "REPORT_INCIDENT",
        "UPDATE_INCIDENT",
        "VIEW_CATALOG",
        "VIEW_NOTIFICATIONS",
    }),
    ROLE_CUSTOMER: frozenset({
        "VIEW_CATALOG",
    }),
}


def permissions_for_role(role: str | None) -> frozenset:
    """Permission codes granted to a role. Unknown or missing role grants nothing."""
    if role is None:
        return frozenset()
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def role_has_permission(role: str | None, permission_code: str) -> bool:
    return permission_code in permissions_for_role(role)


def is_valid_role(role) -> bool:
    return role in VALID_ROLES
