# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "View products, stock levels and prices",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create and edit products",
        PermissionCategory.INVENTORY,
    ),
    (
        "DELETE_PRODUCTS",
        "Delete Products",
        "Remove products from the catalog",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Record stock entries, exits and corrections",
        PermissionCategory.INVENTORY,
    ),
    (
        "VIEW_MOVEMENTS",
        "View Movements",
        "View the stock movement history",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "RECORD_SALE",
        "Record Sale",
        "Flag a stock exit as sold and record price and profit",
        PermissionCategory.SALES,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "VIEW_ORDERS",
        "View Orders",
        "View orders and their status",
        PermissionCategory.ORDERS,
    ),
    (
        "CREATE_ORDER",
        "Create Order",
        "Register a new pending order",
        PermissionCategory.ORDERS,
    ),
    (
        "FULFILL_ORDER",
        "Fulfill Order",
        "Complete a pending order and receive its stock",
        PermissionCategory.ORDERS,
    ),
    (
        "CANCEL_ORDER",
        "Cancel Order",
        "Cancel a pending order",
        PermissionCategory.ORDERS,
    ),
]


# -- INCIDENTS --

INCIDENT_PERMISSIONS = [
    (
        "VIEW_INCIDENTS",
        "View Incidents",
        "View returns, damages, losses and thefts",
        PermissionCategory.INCIDENTS,
    ),
    (
        "REPORT_INCIDENT",
        "Report Incident",
        "Register a new incident",
        PermissionCategory.INCIDENTS,
    ),
    (
        "UPDATE_INCIDENT",
        "Update Incident",
        "Move an incident through its workflow",
        PermissionCategory.INCIDENTS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "View the staff dashboard summary",
        PermissionCategory.REPORTS,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "View sales and movement reports",
        PermissionCategory.REPORTS,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "Browse active products and sale prices",
        PermissionCategory.CATALOG,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "List users and change their roles",
        PermissionCategory.USERS,
    ),
    (
        "ISSUE_INVITATIONS",
        "Issue Invitations",
        "Issue registration invitations carrying a staff role",
        PermissionCategory.USERS,
    ),
]


# -- COMMUNICATIONS --

COMMUNICATION_PERMISSIONS = [
    (
        "VIEW_NOTIFICATIONS",
        "View Notifications",
        "Read and acknowledge in-app notifications",
        PermissionCategory.COMMUNICATIONS,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + ORDER_PERMISSIONS
    + INCIDENT_PERMISSIONS
    + REPORT_PERMISSIONS
    + CATALOG_PERMISSIONS
    + USER_PERMISSIONS
    + COMMUNICATION_PERMISSIONS
)
