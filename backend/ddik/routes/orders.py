# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/ddik/routes/orders.py
"""
Order API Routes

LIFECYCLE: pending -> completed (stock received) | cancelled

SECURITY:
- VIEW_ORDERS to list and read
- CREATE_ORDER to register
- FULFILL_ORDER to complete (adds stock)
- CANCEL_ORDER to cancel
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import Order
from ..services import order_service
from ..services.order_service import OrderError, OrderStatusError
from ..services.stock_ledger_service import StockLedgerError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_order,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission


ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "size", "notes"},
    required_on_create={"product_id", "quantity"},
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_route():
    """Query params: status (pending|completed|cancelled), limit"""
    try:
        orders = order_service.list_orders(
            status=request.args.get("status"),
            limit=max(1, min(request.args.get("limit", default=200, type=int), 1000)),
        )
    except OrderError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("")
@require_auth
@require_permission("CREATE_ORDER")
def create_order_route():
    """
    Create a pending order. No stock is reserved.

    Request body:
    {
        "product_id": 1,
        "quantity": 5,
        "size": "M",        (optional)
        "notes": "..."      (optional)
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=False)
        enforce_rules_order(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        order = order_service.create_order(
            product_id=patch["product_id"],
            quantity=patch["quantity"],
            size=patch.get("size"),
            notes=patch.get("notes"),
            actor_user_id=g.current_user.id,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 201


@orders_bp.post("/<int:order_id>/complete")
@require_auth
@require_permission("FULFILL_ORDER")
def complete_order_route(order_id: int):
    """
    Complete a pending order: stock entry of the ordered quantity.

    Returns:
        200: Order completed
        404: Order or product not found
        409: Order is not pending
    """
    try:
        order = order_service.complete_order(order_id, actor_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderStatusError as e:
        return jsonify({"error": str(e)}), 409
    except (OrderError, StockLedgerError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to complete order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict(), "product": order.product.to_dict()}), 200


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
@require_permission("CANCEL_ORDER")
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(order_id, actor_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderStatusError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 200
