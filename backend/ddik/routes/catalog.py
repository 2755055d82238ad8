# backend/ddik/routes/catalog.py
"""
Customer catalog: active products with sale prices only. Every role holds
VIEW_CATALOG, so staff can preview what customers see.
"""
from flask import Blueprint, request

from ..services import products_service
from ..validation import NotFoundError
from ..decorators import require_auth, require_permission

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_catalog():
    products = products_service.list_catalog(
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return {
        "items": [p.to_catalog_dict() for p in products],
        "categories": products_service.list_categories(),
    }


@catalog_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_catalog_item(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    if not product.is_active:
        return {"error": "product not found"}, 404
    return {"product": product.to_catalog_dict()}
