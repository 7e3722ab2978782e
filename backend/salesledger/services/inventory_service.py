# Overview: Inventory ledger; atomic stock decrement/increment and delivery records.

"""
Stock lives on Product.stock_quantity. Every change goes through a single
conditional UPDATE so the database, not Python, decides whether enough
stock remains:

    UPDATE products SET stock_quantity = stock_quantity - :qty
    WHERE id = :id AND is_active AND stock_quantity >= :qty

Zero rows updated means the product is missing/inactive or short. Two
concurrent decrements can therefore never drive stock negative.

reserve_and_decrement and increment never commit. Callers wrap one call per
line item in their own transaction (see sales_service).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, InvalidAmountError, ProductNotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockHistory
from .concurrency import begin_write, lock_for_update, run_with_retry
from .document_service import next_document_number
from salesledger.time_utils import parse_iso_datetime, utcnow


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidAmountError("quantity must be a positive integer", details={"quantity": quantity})
    return quantity


def get_active_product(product_id: int, *, lock: bool = False) -> Product:
    """Resolve an active product or raise ProductNotFoundError."""
    query = db.session.query(Product).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if not product or not product.is_active:
        raise ProductNotFoundError(product_id)
    return product


def reserve_and_decrement(product_id: int, quantity: int) -> None:
    """
    Decrement stock by quantity if at least that much is available.

    Raises ProductNotFoundError / InsufficientStockError and leaves stock
    untouched on failure.
    """
    quantity = _require_quantity(quantity)

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.stock_quantity >= quantity,
        )
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
    )
    result = db.session.execute(stmt)
    if result.rowcount == 1:
        return

    product = db.session.get(Product, product_id, populate_existing=True)
    if not product or not product.is_active:
        raise ProductNotFoundError(product_id)
    raise InsufficientStockError(
        product_id=product.id,
        product_name=product.name,
        requested=quantity,
        available=product.stock_quantity,
    )


def increment(product_id: int, quantity: int) -> None:
    """
    Add quantity back to stock. No upper bound; archived products still
    receive restocks so a void can always be applied.
    """
    quantity = _require_quantity(quantity)

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=Product.stock_quantity + quantity,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise ProductNotFoundError(product_id)


def record_delivery(
    *,
    product_id: int,
    quantity: int,
    added_by_user_id: int,
    total_cost_cents: int = 0,
    date_delivered=None,
) -> StockHistory:
    """
    Record a supplier delivery and add its quantity to stock, atomically.
    """
    quantity = _require_quantity(quantity)
    if isinstance(total_cost_cents, bool) or not isinstance(total_cost_cents, int) or total_cost_cents < 0:
        raise InvalidAmountError("total_cost_cents must be a non-negative integer")

    if date_delivered is None:
        delivered_at = utcnow()
    elif isinstance(date_delivered, datetime):
        delivered_at = date_delivered
    else:
        try:
            delivered_at = parse_iso_datetime(str(date_delivered))
        except ValueError:
            raise ValidationError("date_delivered must be an ISO-8601 datetime")

    def _op():
        begin_write()
        product = get_active_product(product_id, lock=True)

        increment(product.id, quantity)

        entry = StockHistory(
            transaction_id=next_document_number(prefix="STK", column=StockHistory.transaction_id),
            product_id=product.id,
            product_name=product.name,
            stock_quantity=quantity,
            date_delivered=delivered_at or utcnow(),
            total_cost_cents=total_cost_cents,
            added_by_user_id=added_by_user_id,
        )
        db.session.add(entry)
        db.session.commit()
        return entry

    return run_with_retry(_op, retry_on=(IntegrityError,))


def list_deliveries(
    *,
    product_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
) -> list[StockHistory]:
    query = db.session.query(StockHistory)
    if product_id:
        query = query.filter(StockHistory.product_id == product_id)
    if start:
        query = query.filter(StockHistory.date_delivered >= start)
    if end:
        query = query.filter(StockHistory.date_delivered <= end)
    limit = max(1, min(limit, 500))
    return query.order_by(StockHistory.date_delivered.desc(), StockHistory.id.desc()).limit(limit).all()


def get_stock_quantity(product_id: int) -> int:
    value = db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()
    if value is None:
        raise ProductNotFoundError(product_id)
    return int(value)
