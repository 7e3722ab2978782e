"""
Sale transaction engine.

create_sale turns a validated request into a committed, stock-consistent
sale or fails leaving no partial effect: every line's stock decrement and
the sale row are written in one transaction, and any failure rolls all of
it back.

void_sale is the only state transition (Active -> Voided, terminal). The
void flag and the stock restoration commit together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..errors import AlreadyVoidError, InsufficientStockError, InvalidAmountError, SaleNotFoundError, UnauthorizedError
from ..extensions import db
from ..models import Sale, SaleItem
from .concurrency import begin_write, lock_for_update, run_with_retry
from .document_service import next_document_number
from .inventory_service import get_active_product, increment, reserve_and_decrement
from .pricing_service import snapshot_for
from . import auth_service
from salesledger.time_utils import utcnow


DEFAULT_VOID_REASON = "Voided"


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    quantity: int


def _combined_quantities(lines: list[SaleLineRequest]) -> dict[int, int]:
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def _build_items(lines: list[SaleLineRequest]) -> list[SaleItem]:
    """
    Resolve products, check stock and price every line.

    Stock is checked against the combined quantity when the same product
    appears on several lines.
    """
    totals = _combined_quantities(lines)
    products = {}
    for product_id, requested in totals.items():
        product = get_active_product(product_id, lock=True)
        if requested > product.stock_quantity:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                requested=requested,
                available=product.stock_quantity,
            )
        products[product_id] = product

    items = []
    for position, line in enumerate(lines):
        product = products[line.product_id]
        unit_price = snapshot_for(product).selling_price_cents
        items.append(SaleItem(
            product_id=product.id,
            position=position,
            product_name=product.name,
            quantity=line.quantity,
            unit_price_cents=unit_price,
            subtotal_cents=unit_price * line.quantity,
        ))
    return items


def create_sale(
    *,
    lines: list[SaleLineRequest],
    payment_method: str,
    cashier_id: int,
    discount_cents: int = 0,
    tax_cents: int = 0,
    customer_name: str | None = None,
    customer_email: str | None = None,
    customer_phone: str | None = None,
) -> Sale:
    """
    Create and commit a sale with its stock decrements.

    Raises ProductNotFoundError, InsufficientStockError, InvalidAmountError;
    ConflictError / UnavailableError when the store keeps refusing the
    transaction.
    """
    if not lines:
        raise InvalidAmountError("At least one item is required")
    if discount_cents < 0 or tax_cents < 0:
        raise InvalidAmountError("discount and tax cannot be negative")

    def _op() -> Sale:
        begin_write()

        items = _build_items(lines)
        subtotal = sum(item.subtotal_cents for item in items)
        total = subtotal - discount_cents + tax_cents
        if total < 0:
            raise InvalidAmountError(
                "Sale total cannot be negative",
                details={"subtotal_cents": subtotal, "discount_cents": discount_cents, "tax_cents": tax_cents},
            )

        for product_id, quantity in _combined_quantities(lines).items():
            reserve_and_decrement(product_id, quantity)

        sale = Sale(
            sale_number=next_document_number(prefix="S", column=Sale.sale_number),
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            subtotal_cents=subtotal,
            discount_cents=discount_cents,
            tax_cents=tax_cents,
            total_cents=total,
            payment_method=payment_method,
            cashier_id=cashier_id,
            is_void=False,
            created_at=utcnow(),
            items=items,
        )
        db.session.add(sale)
        db.session.commit()
        return sale

    return run_with_retry(_op, retry_on=(IntegrityError,))


def void_sale(
    *,
    sale_id: int,
    user_id: int,
    supervisor_code: str | None,
    reason: str | None = None,
) -> Sale:
    """
    Void a sale and restore every line's quantity to stock.

    The supervisor code is checked before anything is read or written.
    Voiding twice raises AlreadyVoidError and changes nothing.
    """
    if not auth_service.verify_supervisor_code(supervisor_code):
        raise UnauthorizedError("Invalid supervisor code")

    def _op() -> Sale:
        begin_write()
        sale = lock_for_update(db.session.query(Sale).filter(Sale.id == sale_id)).first()
        if not sale:
            raise SaleNotFoundError(sale_id)
        if sale.is_void:
            raise AlreadyVoidError(
                "Sale already voided",
                details={"sale_id": sale.id, "sale_number": sale.sale_number},
            )

        for item in sale.items:
            increment(item.product_id, item.quantity)

        sale.is_void = True
        sale.voided_at = utcnow()
        sale.voided_by_user_id = user_id
        sale.void_reason = (reason or "").strip() or DEFAULT_VOID_REASON

        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = (
        db.session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(Sale.id == sale_id)
        .first()
    )
    if not sale:
        raise SaleNotFoundError(sale_id)
    return sale


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    include_void: bool = True,
    cashier_id: int | None = None,
    page: int = 1,
    per_page: int = 20,
) -> dict:
    """
    Newest-first paginated sale listing.

    start/end are UTC-naive bounds (already widened to whole days by the caller).
    """
    query = db.session.query(Sale).options(selectinload(Sale.items))
    if start:
        query = query.filter(Sale.created_at >= start)
    if end:
        query = query.filter(Sale.created_at <= end)
    if not include_void:
        query = query.filter(Sale.is_void.is_(False))
    if cashier_id:
        query = query.filter(Sale.cashier_id == cashier_id)

    per_page = min(max(per_page or 20, 1), 100)
    page = max(page or 1, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    sales = (
        query.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": [sale.to_dict() for sale in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
