# Overview: Service-layer operations for orders; fulfillment receives stock through the ledger.

"""
Order Fulfillment Service

LIFECYCLE:
1. create_order  -> pending   (no stock reserved)
2. complete_order: pending -> completed (stock entry via the ledger, delivered_at set)
3. cancel_order:   pending -> cancelled (no stock effect, irreversible)

complete_order writes the status change, the stock entry, its movement and
the completion notification in one transaction. If the ledger step fails the
order stays pending.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order, Product
from ..validation import ConflictError, NotFoundError
from ddik.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from . import notification_service
from . import stock_ledger_service


ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"

VALID_STATUSES = (ORDER_STATUS_PENDING, ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED)

FULFILLMENT_REASON = "order fulfilled"


class OrderError(ValueError):
    """Raised for invalid order input."""
    pass


class OrderStatusError(ConflictError):
    """Raised when an order is not in a state that allows the transition."""
    pass


def reference_number_for(order_id: int) -> str:
    return f"ORDER-{order_id}"


def _get_order(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("order not found")
    return order


def create_order(
    *,
    product_id: int,
    quantity: int,
    size: str | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> Order:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise OrderError("quantity must be a positive integer")

    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("product not found")
    if not product.is_active:
        raise OrderError("product is inactive")

    order = Order(
        product_id=product_id,
        quantity=quantity,
        size=size,
        notes=notes,
        status=ORDER_STATUS_PENDING,
        created_by_user_id=actor_user_id,
    )
    db.session.add(order)
    db.session.commit()
    return order


def complete_order(order_id: int, *, actor_user_id: int | None = None) -> Order:
    """Receive a pending order: stock entry of its quantity, status completed."""
    def _op():
        order = _get_order(order_id, lock=True)
        if order.status != ORDER_STATUS_PENDING:
            raise OrderStatusError(f"order is {order.status}; only pending orders can be completed")

        result = stock_ledger_service._apply_adjustment_inner(
            product_id=order.product_id,
            quantity=order.quantity,
            direction=stock_ledger_service.ENTRY,
            reason=FULFILLMENT_REASON,
            actor_user_id=actor_user_id,
            reference_number=reference_number_for(order.id),
        )

        order.status = ORDER_STATUS_COMPLETED
        order.delivered_at = utcnow()
        order.completed_by_user_id = actor_user_id

        notification_service.notify(
            title="Pedido concluído",
            message=(
                f"Order #{order.id}: {order.quantity} x {result.product.name} received "
                f"(stock {result.movement.previous_stock} -> {result.movement.new_stock})"
            ),
            type=notification_service.TYPE_ORDER_COMPLETED,
            related_entity_type="order",
            related_entity_id=order.id,
        )
        db.session.flush()
        return order

    return run_in_transaction(_op)


def cancel_order(order_id: int, *, actor_user_id: int | None = None) -> Order:
    def _op():
        order = _get_order(order_id, lock=True)
        if order.status != ORDER_STATUS_PENDING:
            raise OrderStatusError(f"order is {order.status}; only pending orders can be cancelled")

        order.status = ORDER_STATUS_CANCELLED
        order.cancelled_at = utcnow()
        order.cancelled_by_user_id = actor_user_id
        db.session.flush()
        return order

    return run_in_transaction(_op)


def get_order(order_id: int) -> Order:
    return _get_order(order_id)


def list_orders(*, status: str | None = None, limit: int = 200) -> list[Order]:
    """Orders newest first, optionally filtered by status."""
    if status is not None and status not in VALID_STATUSES:
        raise OrderError("status must be pending, completed, or cancelled")

    q = db.session.query(Order)
    if status is not None:
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
