# backend/salesledger/services/products_service.py
"""
Products Service

Product construction fills absent fields from PRODUCT_DEFAULTS; a field
counts as absent when it is missing, None or the empty string. Price and
markup changes are routed through pricing_service so the history stays
append-only. Stock is not editable here: it moves through sales, voids and
deliveries only.
"""
from __future__ import annotations

from decimal import Decimal

from ..errors import ProductNotFoundError, ValidationError
from ..extensions import db
from ..models import Product, STANDARD_UNITS
from .concurrency import begin_write, lock_for_update, run_with_retry
from .pricing_service import (
    INTEGER_RE,
    compute_selling_price_cents,
    normalize_markup,
    normalize_price_cents,
    record_price_change,
    seed_history,
)
from salesledger.time_utils import utcnow


# Default table applied at construction time
PRODUCT_DEFAULTS = {
    "price_cents": 0,
    "markup_percentage": Decimal("0"),
    "stock_quantity": 0,
    "low_stock_threshold": 10,
    "unit": "Piece",
    "category": None,
    "description": None,
    "is_active": True,
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "category",
    "unit",
    "low_stock_threshold",
    "is_active",
}


def _is_absent(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def apply_defaults(payload: dict) -> dict:
    data = dict(payload)
    for key, default in PRODUCT_DEFAULTS.items():
        if _is_absent(data.get(key)):
            data[key] = default
    return data


def _clean_text(value, field: str, max_length: int) -> str | None:
    if _is_absent(value):
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def _non_negative_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str) and INTEGER_RE.fullmatch(value.strip()):
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    return value


def _strict_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
    raise ValidationError(f"{field} must be true or false")


def _clean_patch(data: dict) -> dict:
    patch = {}
    if "name" in data:
        name = _clean_text(data["name"], "name", 255)
        if not name:
            raise ValidationError("name is required")
        patch["name"] = name
    if "description" in data:
        patch["description"] = _clean_text(data["description"], "description", 4000)
    if "category" in data:
        patch["category"] = _clean_text(data["category"], "category", 120)
    if "unit" in data:
        unit = _clean_text(data["unit"], "unit", 32) or PRODUCT_DEFAULTS["unit"]
        if unit not in STANDARD_UNITS:
            raise ValidationError(f"unit must be one of: {', '.join(STANDARD_UNITS)}")
        patch["unit"] = unit
    if "low_stock_threshold" in data:
        patch["low_stock_threshold"] = _non_negative_int(data["low_stock_threshold"], "low_stock_threshold")
    if "is_active" in data:
        patch["is_active"] = _strict_bool(data["is_active"], "is_active")
    return patch


def create_product(payload: dict) -> Product:
    data = apply_defaults(payload)
    patch = _clean_patch(data)
    if "name" not in patch:
        raise ValidationError("name is required")

    price_cents = normalize_price_cents(data["price_cents"])
    markup = normalize_markup(data["markup_percentage"])

    product = Product(
        price_cents=price_cents,
        markup_percentage=markup,
        selling_price_cents=compute_selling_price_cents(price_cents, markup),
        stock_quantity=_non_negative_int(data["stock_quantity"], "stock_quantity"),
        created_at=utcnow(),
        **patch,
    )
    seed_history(product, at=product.created_at)

    db.session.add(product)
    db.session.commit()
    return product


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    """
    Apply a partial update. price_cents / markup_percentage changes append a
    pricing history entry; resubmitting the current values is a no-op there.
    """
    if "stock_quantity" in payload:
        raise ValidationError("stock_quantity cannot be edited directly; record a delivery instead")

    patch = _clean_patch(payload)
    price_given = "price_cents" in payload or "markup_percentage" in payload

    def _op() -> Product:
        begin_write()
        product = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if not product:
            raise ProductNotFoundError(product_id)

        for key, value in patch.items():
            setattr(product, key, value)

        if price_given:
            new_price = payload.get("price_cents")
            new_markup = payload.get("markup_percentage")
            record_price_change(
                product,
                product.price_cents if _is_absent(new_price) else new_price,
                product.markup_percentage if _is_absent(new_markup) else new_markup,
            )

        db.session.commit()
        return product

    return run_with_retry(_op)


def archive_product(product_id: int) -> Product:
    """Deactivate instead of deleting; sales keep referencing the row."""
    return update_product(product_id, {"is_active": False})


def list_products(
    *,
    category: str | None = None,
    low_stock: bool = False,
    is_active: bool | None = None,
) -> list[Product]:
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    if low_stock:
        query = query.filter(Product.stock_quantity <= Product.low_stock_threshold)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()
