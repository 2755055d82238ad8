# backend/ddik/routes/navigation.py
"""
Navigation routes: let a client ask whether the current user may open a
page, and which menu entries to show. Decisions come from the same role
capability table the API enforces.
"""

from flask import Blueprint, request, g

from ..services.navigation_service import resolve_route, menu_for_role, home_for_role
from ..decorators import require_auth, optional_auth

navigation_bp = Blueprint("navigation", __name__, url_prefix="/api/navigation")


@navigation_bp.get("/resolve")
@optional_auth
def resolve_route_view():
    """
    Query params:
    - path: requested page path (e.g. /reports)

    Anonymous callers are resolved as unauthenticated.
    """
    path = request.args.get("path")
    if not path:
        return {"error": "path is required"}, 400

    role = getattr(g, "role", None)
    decision = resolve_route(role, path)
    return {"path": path, "role": role, **decision.to_dict()}, 200


@navigation_bp.get("/menu")
@require_auth
def menu_view():
    return {"role": g.role, "home": home_for_role(g.role), "items": menu_for_role(g.role)}, 200
