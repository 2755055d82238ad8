# Overview: Permission system package.
# Re-exports the capability table, page table and lookup helpers.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    ORDER_PERMISSIONS,
    INCIDENT_PERMISSIONS,
    REPORT_PERMISSIONS,
    CATALOG_PERMISSIONS,
    USER_PERMISSIONS,
    COMMUNICATION_PERMISSIONS,
)
from .roles import (
    DEFAULT_ROLE_PERMISSIONS,
    DEFAULT_SIGNUP_ROLE,
    VALID_ROLES,
    is_valid_role,
    permissions_for_role,
    role_has_permission,
)
from .pages import PAGE_DEFINITIONS, LOGIN_PATH, ROLE_HOME, get_page_definition
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "INCIDENT_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "CATALOG_PERMISSIONS",
    "USER_PERMISSIONS",
    "COMMUNICATION_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "DEFAULT_SIGNUP_ROLE",
    "VALID_ROLES",
    "is_valid_role",
    "permissions_for_role",
    "role_has_permission",
    "PAGE_DEFINITIONS",
    "LOGIN_PATH",
    "ROLE_HOME",
    "get_page_definition",
    "get_all_permission_codes",
    "get_permission_definition",
    "validate_permission_code",
]
