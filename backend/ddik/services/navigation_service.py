# Overview: Role-gated navigation; decides whether a role may open a page.

"""
Pure functions over the page table (permissions/pages.py) and the role
capability table (permissions/roles.py). No database access.

Decision rules:
- unknown path            -> not_found
- public page             -> allowed for everyone
- no role (anonymous)     -> redirect to the login page
- role lacks permission   -> redirect to the role's home page
"""

from __future__ import annotations

from dataclasses import dataclass

from ..permissions import (
    LOGIN_PATH,
    PAGE_DEFINITIONS,
    ROLE_HOME,
    get_page_definition,
    is_valid_role,
    role_has_permission,
)


@dataclass(frozen=True)
class RouteDecision:
    allowed: bool
    redirect_to: str | None = None
    not_found: bool = False

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "redirect_to": self.redirect_to,
            "not_found": self.not_found,
        }


def normalize_path(path: str | None) -> str:
    """'/orders/?x=1' -> '/orders'. Empty input is the root page."""
    if not path:
        return "/"
    path = path.strip().split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def resolve_route(role: str | None, requested_path: str | None) -> RouteDecision:
    page = get_page_definition(normalize_path(requested_path))
    if page is None:
        return RouteDecision(allowed=False, not_found=True)

    if page["permission"] is None:
        return RouteDecision(allowed=True)

    if role is None or not is_valid_role(role):
        return RouteDecision(allowed=False, redirect_to=LOGIN_PATH)

    if role_has_permission(role, page["permission"]):
        return RouteDecision(allowed=True)

    return RouteDecision(allowed=False, redirect_to=ROLE_HOME[role])


def home_for_role(role: str | None) -> str:
    if role is None or not is_valid_role(role):
        return LOGIN_PATH
    return ROLE_HOME[role]


def menu_for_role(role: str | None) -> list[dict]:
    """Menu entries the role may open, in page-table order."""
    if role is None or not is_valid_role(role):
        return []
    return [
        {"path": path, "title": title}
        for path, title, permission, in_menu in PAGE_DEFINITIONS
        if in_menu and permission is not None and role_has_permission(role, permission)
    ]
