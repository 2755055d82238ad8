# Overview: Flask API routes for products and stock movements; parses input and returns JSON responses.

# backend/ddik/routes/products.py
"""
Product management and stock ledger routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission
- Deletion requires DELETE_PRODUCTS permission
- Stock entries/exits require ADJUST_STOCK; a sold exit also requires RECORD_SALE
- Movement history requires VIEW_MOVEMENTS
- Sales history requires VIEW_REPORTS
"""
from flask import Blueprint, request, g, current_app

from ..models import Product
from ..services import products_service
from ..services import stock_ledger_service
from ..services import permission_service
from ..services.permission_service import PermissionDeniedError
from ..services.products_service import ProductError
from ..services.stock_ledger_service import SaleInfo, StockLedgerError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    coerce_decimal,
    coerce_int,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ddik.time_utils import parse_iso_datetime
from ..decorators import require_auth, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "name",
        "description",
        "category",
        "product_type",
        "size",
        "location",
        "image_url",
        "current_stock",
        "minimum_stock",
        "maximum_stock",
        "purchase_price_cents",
        "sale_price_cents",
        "is_active",
    },
    required_on_create={"sku", "name"},
)

MAX_LIST_LIMIT = 1000

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")
sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _bool_arg(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


def _limit_arg(default: int = 200) -> int:
    limit = request.args.get("limit", default=default, type=int)
    return max(1, min(limit, MAX_LIST_LIMIT))


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List products by name.

    Query params:
    - search: matches name, SKU or category (case-insensitive)
    - category: exact category
    - low_stock: true to return only products at or below minimum stock
    - active_only: true to hide inactive products
    """
    products = products_service.list_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
        low_stock_only=_bool_arg("low_stock"),
        include_inactive=not _bool_arg("active_only"),
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product": product.to_dict()}


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Create a new product.

    A positive current_stock is recorded as an entry movement.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch, actor_user_id=g.current_user.id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except (ProductError, StockLedgerError) as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return {"product": created.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    """
    Update a product.

    Optional "version_id" in the body makes the update conditional on the
    product not having changed since it was read (409 otherwise).
    A "current_stock" value is recorded as an adjustment movement.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400
    payload = dict(payload)
    expected_version = payload.pop("version_id", None)

    try:
        if expected_version is not None:
            expected_version = coerce_int("version_id", expected_version)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(
            product_id,
            patch,
            actor_user_id=g.current_user.id,
            expected_version=expected_version,
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except (ProductError, StockLedgerError) as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return {"product": updated.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("DELETE_PRODUCTS")
def delete_product_route(product_id: int):
    """Delete a product, or deactivate it when it has history."""
    try:
        outcome = products_service.delete_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True, "result": outcome}, 200


@products_bp.post("/<int:product_id>/adjust")
@require_auth
@require_permission("ADJUST_STOCK")
def adjust_stock_route(product_id: int):
    """
    Record a stock entry or exit.

    Request body:
    {
        "direction": "entry" | "exit",
        "quantity": 5,
        "reason": "supplier delivery",       (optional)
        "notes": "...",                      (optional)
        "reference_number": "NF-123",        (optional)
        "sold": true,                        (optional, exit only; requires RECORD_SALE)
        "sale_price_cents": 10000,           (optional, defaults to product price)
        "purchase_price_cents": 6000,        (optional, defaults to product cost)
        "discount_pct": 10                   (optional, 0-100)
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    direction = data.get("direction")
    if direction not in stock_ledger_service.DIRECTIONS:
        return {"error": "direction must be entry or exit"}, 400

    sold = data.get("sold", False)
    if not isinstance(sold, bool):
        return {"error": "sold must be true or false"}, 400

    try:
        quantity = coerce_int("quantity", data.get("quantity"))
        for key in ("reason", "notes", "reference_number"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValidationError(f"{key} must be a string")
    except ValidationError as e:
        return {"error": str(e)}, 400

    sale = None
    if sold:
        try:
            permission_service.require_permission(
                user_id=g.current_user.id,
                role=g.role,
                permission_code="RECORD_SALE",
                resource=request.path,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
        except PermissionDeniedError as e:
            return {
                "error": "Permission denied",
                "required_permission": "RECORD_SALE",
                "message": str(e),
            }, 403

        try:
            product = products_service.get_product(product_id)
        except NotFoundError as e:
            return {"error": str(e)}, 404

        try:
            sale_price = data.get("sale_price_cents", product.sale_price_cents)
            if sale_price is None:
                raise ValidationError("sale_price_cents is required; product has no sale price")
            purchase_price = data.get("purchase_price_cents")
            sale = SaleInfo(
                sale_price_cents=coerce_int("sale_price_cents", sale_price),
                purchase_price_cents=(
                    coerce_int("purchase_price_cents", purchase_price) if purchase_price is not None else None
                ),
                discount_pct=coerce_decimal("discount_pct", data.get("discount_pct", 0)),
            )
        except ValidationError as e:
            return {"error": str(e)}, 400

    try:
        result = stock_ledger_service.apply_adjustment(
            product_id=product_id,
            quantity=quantity,
            direction=direction,
            reason=data.get("reason"),
            actor_user_id=g.current_user.id,
            sale=sale,
            notes=data.get("notes"),
            reference_number=data.get("reference_number"),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StockLedgerError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return {
        "product": result.product.to_dict(),
        "movement": result.movement.to_dict(),
        "sale": result.sale.to_dict() if result.sale else None,
    }, 201


@products_bp.get("/<int:product_id>/movements")
@require_auth
@require_permission("VIEW_MOVEMENTS")
def product_movements_route(product_id: int):
    try:
        movements = stock_ledger_service.list_movements(
            product_id=product_id,
            movement_type=request.args.get("type"),
            limit=_limit_arg(),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StockLedgerError as e:
        return {"error": str(e)}, 400

    return {"product_id": product_id, "movements": [m.to_dict() for m in movements]}


@movements_bp.get("")
@require_auth
@require_permission("VIEW_MOVEMENTS")
def list_movements_route():
    """
    Movement history across products, newest first.

    Query params: product_id, type (entry|exit|adjustment), start, end (ISO-8601), limit
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return {"error": "start and end must be ISO-8601 datetimes"}, 400

    try:
        movements = stock_ledger_service.list_movements(
            product_id=request.args.get("product_id", type=int),
            movement_type=request.args.get("type"),
            start=start,
            end=end,
            limit=_limit_arg(),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StockLedgerError as e:
        return {"error": str(e)}, 400

    return {"movements": [m.to_dict() for m in movements]}


@sales_bp.get("")
@require_auth
@require_permission("VIEW_REPORTS")
def list_sales_route():
    """
    Sales history, newest first.

    Query params: product_id, start, end (ISO-8601), limit
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return {"error": "start and end must be ISO-8601 datetimes"}, 400

    sales = stock_ledger_service.list_sales(
        product_id=request.args.get("product_id", type=int),
        start=start,
        end=end,
        limit=_limit_arg(),
    )
    return {"sales": [s.to_dict() for s in sales]}
