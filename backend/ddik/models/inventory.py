from __future__ import annotations

from ..extensions import db
from ddik.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data.

    STOCK: current_stock is a stored quantity. It is only changed through the
    stock ledger (services/stock_ledger_service.py), which appends a
    StockMovement for every change.

    CONCURRENCY: version_id is the optimistic concurrency token. A write based
    on a stale read raises StaleDataError at flush time instead of silently
    overwriting a concurrent update.

    Prices are stored in cents.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="current_stock_non_negative"),
        db.CheckConstraint("minimum_stock >= 0", name="minimum_stock_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True, index=True)
    product_type = db.Column(db.String(64), nullable=True)
    size = db.Column(db.String(32), nullable=True)
    location = db.Column(db.String(120), nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock = db.Column(db.Integer, nullable=False, default=10)
    maximum_stock = db.Column(db.Integer, nullable=True, default=100)

    purchase_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.minimum_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "product_type": self.product_type,
            "size": self.size,
            "location": self.location,
            "image_url": self.image_url,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "maximum_stock": self.maximum_stock,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_catalog_dict(self) -> dict:
        """Customer-facing view: no cost, stock thresholds or audit fields."""
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "size": self.size,
            "image_url": self.image_url,
            "sale_price_cents": self.sale_price_cents,
            "in_stock": self.current_stock > 0,
        }


class StockMovement(db.Model):
    """
    One stock change event.

    movement_type:
    - entry:      stock increased by quantity
    - exit:       stock decreased by quantity (clamped at zero)
    - adjustment: stock set to an absolute value; quantity is |new - previous|

    Append-only. Nothing in the application updates or deletes movements.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        db.Index("ix_stock_movements_type_created", "movement_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class Sale(db.Model):
    """
    Sale recorded as a side effect of a stock exit flagged as sold.

    sale_price_cents is the unit price after discount. purchase_price_cents is
    the product's cost snapshot at sale time, so later cost changes do not
    rewrite historical profit.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_product_date", "product_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    movement_id = db.Column(db.Integer, db.ForeignKey("stock_movements.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    discount_pct = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    profit_cents = db.Column(db.Integer, nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    product = db.relationship("Product", backref=db.backref("sales", lazy="dynamic"))
    movement = db.relationship("StockMovement")

    @property
    def revenue_cents(self) -> int:
        return self.sale_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_id": self.movement_id,
            "quantity": self.quantity,
            "sale_price_cents": self.sale_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "discount_pct": float(self.discount_pct or 0),
            "profit_cents": self.profit_cents,
            "revenue_cents": self.revenue_cents,
            "sale_date": to_utc_z(self.sale_date),
            "created_by_user_id": self.created_by_user_id,
        }
