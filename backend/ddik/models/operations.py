from __future__ import annotations

from ..extensions import db
from ddik.time_utils import to_utc_z


class Order(db.Model):
    """
    Supplier/customer order tracked by staff.

    LIFECYCLE:
    1. pending: created by staff, no stock reserved
    2. completed: goods received, stock increased through the ledger
    3. cancelled: terminal, no stock effect
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    size = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    completed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("orders", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": (
                {"name": self.product.name, "sku": self.product.sku} if self.product else None
            ),
            "quantity": self.quantity,
            "size": self.size,
            "notes": self.notes,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "completed_by_user_id": self.completed_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
        }


class Incident(db.Model):
    """
    Stock-affecting incident (return, damage, loss, theft, other).

    Informational only: reporting or resolving an incident does not change
    product stock.

    LIFECYCLE: open -> in_progress -> resolved -> closed. closed is terminal.
    resolved_at / resolved_by_user_id are set only while status is resolved
    or closed.
    """
    __tablename__ = "incidents"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.Index("ix_incidents_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    incident_type = db.Column(db.String(16), nullable=False, index=True)
    severity = db.Column(db.String(16), nullable=False, default="low")
    quantity = db.Column(db.Integer, nullable=False, default=1)
    description = db.Column(db.Text, nullable=False)
    resolution = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="open")

    reported_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    resolved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("incidents", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": (
                {"name": self.product.name, "sku": self.product.sku} if self.product else None
            ),
            "incident_type": self.incident_type,
            "severity": self.severity,
            "quantity": self.quantity,
            "description": self.description,
            "resolution": self.resolution,
            "status": self.status,
            "reported_by_user_id": self.reported_by_user_id,
            "resolved_by_user_id": self.resolved_by_user_id,
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
