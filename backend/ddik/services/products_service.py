# Overview: Service-layer operations for products and the customer catalog.

"""
Product master data.

Stock is never written directly here: initial stock on creation is an entry
movement and a stock value in an update is an absolute correction, both
through stock_ledger_service in the same transaction as the product change.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Incident, Order, Product, Sale, StockMovement
from ..validation import ConflictError, NotFoundError
from .concurrency import run_in_transaction
from . import stock_ledger_service


INITIAL_STOCK_REASON = "initial stock"


class ProductError(ValueError):
    """Raised for invalid product operations."""
    pass


def _search_filter(search: str):
    pattern = f"%{search.strip()}%"
    return or_(
        Product.name.ilike(pattern),
        Product.sku.ilike(pattern),
        Product.category.ilike(pattern),
    )


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    low_stock_only: bool = False,
    include_inactive: bool = True,
) -> list[Product]:
    """Staff product list, by name. search matches name, SKU or category."""
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    if search and search.strip():
        q = q.filter(_search_filter(search))
    if category:
        q = q.filter(Product.category == category)
    if low_stock_only:
        q = q.filter(Product.current_stock <= Product.minimum_stock)
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def list_catalog(*, search: str | None = None, category: str | None = None) -> list[Product]:
    """Active products for customers, by name."""
    return list_products(search=search, category=category, include_inactive=False)


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.category.isnot(None), Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("product not found")
    return product


def _ensure_unique_sku(sku: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("SKU already exists")


def _column_default(name: str):
    default = Product.__table__.c[name].default
    return default.arg if default is not None else None


def _check_stock_bounds(minimum: int | None, maximum: int | None) -> None:
    if maximum is not None and minimum is not None and maximum < minimum:
        raise ProductError("maximum_stock must be >= minimum_stock")


def create_product(patch: dict, *, actor_user_id: int | None = None) -> Product:
    """
    Create a product from a validated patch.

    A positive current_stock is recorded as an entry movement so the
    movement history accounts for every unit on hand.
    """
    data = dict(patch)
    initial_stock = data.pop("current_stock", None) or 0

    def _op():
        _ensure_unique_sku(data["sku"])
        _check_stock_bounds(
            data.get("minimum_stock", _column_default("minimum_stock")),
            data.get("maximum_stock", _column_default("maximum_stock")),
        )

        product = Product(**data)
        product.current_stock = 0
        product.created_by_user_id = actor_user_id
        db.session.add(product)
        db.session.flush()

        if initial_stock > 0:
            stock_ledger_service._apply_adjustment_inner(
                product_id=product.id,
                quantity=initial_stock,
                direction=stock_ledger_service.ENTRY,
                reason=INITIAL_STOCK_REASON,
                actor_user_id=actor_user_id,
            )
        return product

    return run_in_transaction(_op)


def update_product(
    product_id: int,
    patch: dict,
    *,
    actor_user_id: int | None = None,
    expected_version: int | None = None,
) -> Product:
    """
    Apply a validated patch.

    expected_version, when given, must match the product's version_id, so a
    client editing a stale copy gets a conflict instead of overwriting.
    """
    data = dict(patch)
    new_stock = data.pop("current_stock", None)

    def _op():
        product = get_product(product_id)
        if expected_version is not None and product.version_id != expected_version:
            raise ConflictError("product was modified by another user; reload and retry")

        if "sku" in data and data["sku"] != product.sku:
            _ensure_unique_sku(data["sku"], exclude_id=product.id)

        minimum = data.get("minimum_stock", product.minimum_stock)
        maximum = data.get("maximum_stock", product.maximum_stock)
        _check_stock_bounds(minimum, maximum)

        for key, value in data.items():
            setattr(product, key, value)
        db.session.flush()

        if new_stock is not None:
            stock_ledger_service._set_stock_inner(
                product_id=product.id,
                new_stock=new_stock,
                actor_user_id=actor_user_id,
            )
        return product

    return run_in_transaction(_op)


def _has_history(product_id: int) -> bool:
    for model in (StockMovement, Sale, Order, Incident):
        if db.session.query(model.id).filter(model.product_id == product_id).first() is not None:
            return True
    return False


def delete_product(product_id: int) -> str:
    """
    Remove a product.

    Products with movements, sales, orders or incidents are deactivated
    instead, so history keeps its references. Returns "deleted" or
    "deactivated".
    """
    def _op():
        product = get_product(product_id)
        if _has_history(product.id):
            product.is_active = False
            db.session.flush()
            return "deactivated"
        db.session.delete(product)
        db.session.flush()
        return "deleted"

    return run_in_transaction(_op)
