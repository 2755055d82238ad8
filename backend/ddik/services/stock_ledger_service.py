# Overview: Service-layer operations for the stock ledger; the only code path that changes product stock.

"""
Stock ledger invariants (authoritative)

Stock model:
- Product.current_stock is a stored quantity, always >= 0.
- Every change appends exactly one StockMovement with previous_stock and
  new_stock. Movements are append-only.
- entry:  new = stock + quantity
- exit:   new = max(0, stock - quantity); the movement keeps the requested
          quantity even when the result is clamped at zero
- adjustment (set_stock): new = requested absolute value,
          movement quantity = |new - previous|

Sales:
- A sale is only valid on an exit and may not exceed available stock.
- final unit price = sale price * (1 - discount/100), nearest cent, half-up
- profit = (final unit price - purchase price) * quantity

Atomicity:
- Stock update, movement, sale and low-stock notification are written in one
  DB transaction. Any failure rolls all of them back.
- Product.version_id turns a stale read-modify-write into StaleDataError,
  which run_with_retry handles by rolling back and re-reading.
- Not idempotent: replaying a call records a second movement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Product, StockMovement, Sale
from ..validation import NotFoundError
from .concurrency import lock_for_update, run_in_transaction
from . import notification_service


ENTRY = "entry"
EXIT = "exit"
ADJUSTMENT = "adjustment"

DIRECTIONS = (ENTRY, EXIT)
MOVEMENT_TYPES = (ENTRY, EXIT, ADJUSTMENT)

DEFAULT_CORRECTION_REASON = "stock correction"

# Sale.discount_pct is Numeric(5, 2)
DISCOUNT_STEP = Decimal("0.01")


class StockLedgerError(ValueError):
    """Raised when a stock change is rejected."""
    pass


@dataclass(frozen=True)
class SaleInfo:
    """Sale details attached to an exit. Prices in cents, discount in percent."""
    sale_price_cents: int
    purchase_price_cents: int | None = None
    discount_pct: Decimal = field(default_factory=lambda: Decimal("0"))


@dataclass
class AdjustmentResult:
    product: Product
    movement: StockMovement | None
    sale: Sale | None = None


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise StockLedgerError("quantity must be an integer")
    if quantity <= 0:
        raise StockLedgerError("quantity must be > 0")
    return quantity


def compute_new_stock(current_stock: int, quantity: int, direction: str) -> int:
    """Stock after applying quantity in direction. Exits clamp at zero."""
    if direction == ENTRY:
        return current_stock + quantity
    if direction == EXIT:
        return max(0, current_stock - quantity)
    raise StockLedgerError("direction must be entry or exit")


def compute_sale_amounts(
    *,
    sale_price_cents: int,
    purchase_price_cents: int,
    discount_pct: Decimal,
    quantity: int,
) -> tuple[int, int]:
    """
    Returns (final_unit_price_cents, profit_cents).

    Example: 10000 sale, 6000 purchase, 10% discount, qty 2 -> (9000, 6000).
    """
    discount = Decimal(str(discount_pct))
    if discount < 0 or discount > 100:
        raise StockLedgerError("discount_pct must be between 0 and 100")
    if discount != discount.quantize(DISCOUNT_STEP):
        raise StockLedgerError("discount_pct allows at most 2 decimal places")
    if sale_price_cents < 0 or purchase_price_cents < 0:
        raise StockLedgerError("prices must be >= 0")

    final_price = (Decimal(sale_price_cents) * (Decimal("100") - discount) / Decimal("100")).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    final_price_cents = int(final_price)
    profit_cents = (final_price_cents - purchase_price_cents) * quantity
    return final_price_cents, profit_cents


def _load_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("product not found")
    return product


def _notify_if_low_stock(product: Product, previous_stock: int) -> None:
    """Low-stock notification when stock crosses down to the minimum."""
    if not current_app.config.get("LOW_STOCK_NOTIFICATIONS", True):
        return
    if previous_stock > product.minimum_stock >= product.current_stock:
        notification_service.notify(
            title="Estoque baixo",
            message=(
                f"{product.name} ({product.sku}) has {product.current_stock} units left "
                f"(minimum {product.minimum_stock})"
            ),
            type=notification_service.TYPE_LOW_STOCK,
            related_entity_type="product",
            related_entity_id=product.id,
        )


def _apply_adjustment_inner(
    *,
    product_id: int,
    quantity: int,
    direction: str,
    reason: str | None = None,
    actor_user_id: int | None = None,
    sale: SaleInfo | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
) -> AdjustmentResult:
    """Core ledger logic without retry or commit.

    Called by apply_adjustment() and by services that fold a stock change
    into their own transaction (order fulfillment, product creation).
    """
    quantity = _require_quantity(quantity)
    if direction not in DIRECTIONS:
        raise StockLedgerError("direction must be entry or exit")
    if sale is not None and direction != EXIT:
        raise StockLedgerError("a sale can only be recorded on an exit")

    product = _load_product(product_id, lock=True)
    previous_stock = product.current_stock

    if sale is not None and quantity > previous_stock:
        raise StockLedgerError("sale quantity exceeds available stock")

    product.current_stock = compute_new_stock(previous_stock, quantity, direction)

    movement = StockMovement(
        product_id=product.id,
        movement_type=direction,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=product.current_stock,
        reason=reason,
        notes=notes,
        reference_number=reference_number,
        created_by_user_id=actor_user_id,
    )
    db.session.add(movement)
    db.session.flush()

    sale_row = None
    if sale is not None:
        purchase_price_cents = sale.purchase_price_cents
        if purchase_price_cents is None:
            purchase_price_cents = product.purchase_price_cents or 0
        final_price_cents, profit_cents = compute_sale_amounts(
            sale_price_cents=sale.sale_price_cents,
            purchase_price_cents=purchase_price_cents,
            discount_pct=sale.discount_pct,
            quantity=quantity,
        )
        sale_row = Sale(
            product_id=product.id,
            movement_id=movement.id,
            quantity=quantity,
            sale_price_cents=final_price_cents,
            purchase_price_cents=purchase_price_cents,
            discount_pct=Decimal(str(sale.discount_pct)),
            profit_cents=profit_cents,
            created_by_user_id=actor_user_id,
        )
        db.session.add(sale_row)
        db.session.flush()

    _notify_if_low_stock(product, previous_stock)

    return AdjustmentResult(product=product, movement=movement, sale=sale_row)


def apply_adjustment(
    *,
    product_id: int,
    quantity: int,
    direction: str,
    reason: str | None = None,
    actor_user_id: int | None = None,
    sale: SaleInfo | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
) -> AdjustmentResult:
    """
    Apply an entry or exit to a product's stock.

    Writes the new stock, one movement, the optional sale and any low-stock
    notification in a single transaction, retried on concurrency conflicts.
    """
    def _op():
        return _apply_adjustment_inner(
            product_id=product_id,
            quantity=quantity,
            direction=direction,
            reason=reason,
            actor_user_id=actor_user_id,
            sale=sale,
            notes=notes,
            reference_number=reference_number,
        )

    return run_in_transaction(_op)


def _set_stock_inner(
    *,
    product_id: int,
    new_stock: int,
    reason: str | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> AdjustmentResult:
    if isinstance(new_stock, bool) or not isinstance(new_stock, int):
        raise StockLedgerError("new_stock must be an integer")
    if new_stock < 0:
        raise StockLedgerError("new_stock must be >= 0")

    product = _load_product(product_id, lock=True)
    previous_stock = product.current_stock
    if new_stock == previous_stock:
        return AdjustmentResult(product=product, movement=None)

    product.current_stock = new_stock
    movement = StockMovement(
        product_id=product.id,
        movement_type=ADJUSTMENT,
        quantity=abs(new_stock - previous_stock),
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason or DEFAULT_CORRECTION_REASON,
        notes=notes,
        created_by_user_id=actor_user_id,
    )
    db.session.add(movement)
    db.session.flush()

    _notify_if_low_stock(product, previous_stock)
    return AdjustmentResult(product=product, movement=movement)


def set_stock(
    *,
    product_id: int,
    new_stock: int,
    reason: str | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> AdjustmentResult:
    """Absolute stock correction, recorded as an adjustment movement. No movement when unchanged."""
    def _op():
        return _set_stock_inner(
            product_id=product_id,
            new_stock=new_stock,
            reason=reason,
            actor_user_id=actor_user_id,
            notes=notes,
        )

    return run_in_transaction(_op)


def list_movements(
    *,
    product_id: int | None = None,
    movement_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise StockLedgerError("movement_type must be entry, exit, or adjustment")

    q = db.session.query(StockMovement)
    if product_id is not None:
        _load_product(product_id)
        q = q.filter(StockMovement.product_id == product_id)
    if movement_type is not None:
        q = q.filter(StockMovement.movement_type == movement_type)
    if start is not None:
        q = q.filter(StockMovement.created_at >= start)
    if end is not None:
        q = q.filter(StockMovement.created_at <= end)

    return q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    product_id: int | None = None,
    limit: int = 500,
) -> list[Sale]:
    q = db.session.query(Sale)
    if product_id is not None:
        q = q.filter(Sale.product_id == product_id)
    if start is not None:
        q = q.filter(Sale.sale_date >= start)
    if end is not None:
        q = q.filter(Sale.sale_date <= end)
    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).limit(limit).all()
