from __future__ import annotations

from ..extensions import db
from salesledger.time_utils import to_utc_z, utcnow


STANDARD_UNITS = (
    "Kilogram",
    "Gram",
    "Liter",
    "Milliliter",
    "Meter",
    "Centimeter",
    "Piece",
    "Gallon",
    "Pound",
    "Ounce",
    "Feet",
    "Inch",
)


class Product(db.Model):
    """
    Product master data and current stock.

    price_cents is the base cost paid to the supplier; selling_price_cents is
    derived from it and markup_percentage whenever either changes. Both are
    integer cents (frontend may only format for display).

    stock_quantity is mutated only through inventory_service so that every
    decrement is a conditional UPDATE and can never drive stock negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True)
    unit = db.Column(db.String(32), nullable=False, default="Piece")

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    markup_percentage = db.Column(db.Numeric(7, 2), nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    pricing_history = db.relationship(
        "PricingHistoryEntry",
        back_populates="product",
        order_by="PricingHistoryEntry.id",
        cascade="all, delete-orphan",
        lazy="select",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def to_dict(self, include_history: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "unit": self.unit,
            "price_cents": self.price_cents,
            "markup_percentage": float(self.markup_percentage or 0),
            "selling_price_cents": self.selling_price_cents,
            "stock_quantity": self.stock_quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["pricing_history"] = [entry.to_dict() for entry in self.pricing_history]
        return data


class PricingHistoryEntry(db.Model):
    """
    Append-only (base price, markup) snapshot for a product.

    Insertion order is chronological order; the last row is the price in
    effect. Rows are never updated or deleted while the product exists.
    """
    __tablename__ = "pricing_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    base_price_cents = db.Column(db.Integer, nullable=False)
    markup_percentage = db.Column(db.Numeric(7, 2), nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product", back_populates="pricing_history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "base_price_cents": self.base_price_cents,
            "markup_percentage": float(self.markup_percentage),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockHistory(db.Model):
    """
    Delivery record: a stock addition distinct from sale-driven decrements.

    Append-only audit stream; the matching stock increment is applied in the
    same transaction by inventory_service.record_delivery.
    """
    __tablename__ = "stock_history"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 1", name="ck_stock_history_quantity_positive"),
        db.CheckConstraint("total_cost_cents >= 0", name="ck_stock_history_cost_non_negative"),
        db.Index("ix_stock_history_date_delivered", "date_delivered"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), nullable=False, unique=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False)
    date_delivered = db.Column(db.DateTime, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    added_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "stock_quantity": self.stock_quantity,
            "date_delivered": to_utc_z(self.date_delivered),
            "total_cost_cents": self.total_cost_cents,
            "added_by_user_id": self.added_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
