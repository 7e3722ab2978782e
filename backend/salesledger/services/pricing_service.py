# Overview: Pricing snapshot; owns each product's append-only (base price, markup) history.

"""
A product exclusively owns its pricing history. Appending is the only
mutation, and record_price_change refuses to append an entry identical to
the one in effect, so repeated saves of an unchanged price never bloat the
history.

Sales read the selling price from here at the moment of sale and copy it
into the line item. Reports read the base price from here for COGS.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..errors import InvalidAmountError, ProductNotFoundError
from ..extensions import db
from ..models import PricingHistoryEntry, Product
from salesledger.time_utils import utcnow


INTEGER_RE = re.compile(r"-?[0-9]+")
MARKUP_QUANT = Decimal("0.01")
MAX_PRICE_CENTS = 999_999_999
MAX_MARKUP = Decimal("99999.99")


@dataclass(frozen=True)
class PriceSnapshot:
    base_price_cents: int
    markup_percentage: Decimal
    selling_price_cents: int

    def to_dict(self) -> dict:
        return {
            "base_price_cents": self.base_price_cents,
            "markup_percentage": float(self.markup_percentage),
            "selling_price_cents": self.selling_price_cents,
        }


def normalize_price_cents(value, field: str = "price_cents") -> int:
    """Integer cents, 0..MAX_PRICE_CENTS. Floats and bools are rejected."""
    if isinstance(value, bool):
        raise InvalidAmountError(f"{field} must be an integer number of cents")
    if isinstance(value, str):
        value = value.strip()
        if not INTEGER_RE.fullmatch(value):
            raise InvalidAmountError(f"{field} must be an integer number of cents")
        value = int(value)
    if not isinstance(value, int):
        raise InvalidAmountError(f"{field} must be an integer number of cents")
    if value < 0:
        raise InvalidAmountError(f"{field} cannot be negative")
    if value > MAX_PRICE_CENTS:
        raise InvalidAmountError(f"{field} exceeds maximum of {MAX_PRICE_CENTS}")
    return value


def normalize_markup(value) -> Decimal:
    """Percentage with two decimals; compared exactly after this step."""
    if isinstance(value, bool):
        raise InvalidAmountError("markup_percentage must be a number")
    try:
        markup = Decimal(str(value).strip()).quantize(MARKUP_QUANT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("markup_percentage must be a number")
    if not markup.is_finite():
        raise InvalidAmountError("markup_percentage must be a number")
    if markup < 0:
        raise InvalidAmountError("markup_percentage cannot be negative")
    if markup > MAX_MARKUP:
        raise InvalidAmountError(f"markup_percentage exceeds maximum of {MAX_MARKUP}")
    return markup


def compute_selling_price_cents(base_price_cents: int, markup_percentage) -> int:
    """base × (100 + markup) / 100, rounded half-up to the cent."""
    markup = Decimal(markup_percentage)
    value = Decimal(base_price_cents) * (Decimal(100) + markup) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def snapshot_for(product: Product) -> PriceSnapshot:
    """Price in effect for an already-loaded product."""
    if product.pricing_history:
        entry = product.pricing_history[-1]
        base, markup = entry.base_price_cents, normalize_markup(entry.markup_percentage)
    else:
        base, markup = product.price_cents or 0, normalize_markup(product.markup_percentage or 0)
    return PriceSnapshot(
        base_price_cents=base,
        markup_percentage=markup,
        selling_price_cents=compute_selling_price_cents(base, markup),
    )


def current_price(product_id: int) -> PriceSnapshot:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return snapshot_for(product)


def _append(product: Product, base: int, markup: Decimal, at: datetime) -> PricingHistoryEntry:
    entry = PricingHistoryEntry(base_price_cents=base, markup_percentage=markup, updated_at=at)
    product.pricing_history.append(entry)
    return entry


def seed_history(product: Product, at: datetime | None = None) -> PricingHistoryEntry | None:
    """
    Seed an empty history with the product's own price fields.

    Used at creation (fields already hold the provided values) and for
    legacy rows that were priced before history was kept (seeded at their
    creation time).
    """
    if product.pricing_history:
        return None
    return _append(
        product,
        normalize_price_cents(product.price_cents or 0),
        normalize_markup(product.markup_percentage or 0),
        at or product.created_at or utcnow(),
    )


def record_price_change(product: Product, new_base_price_cents, new_markup, at: datetime | None = None) -> PricingHistoryEntry | None:
    """
    Append (new base, new markup) if either differs from the entry in effect.

    Returns the new entry, or None when nothing changed. Updates the
    product's price fields and derived selling price; the caller commits.
    """
    base = normalize_price_cents(new_base_price_cents)
    markup = normalize_markup(new_markup)

    seed_history(product)
    current = product.pricing_history[-1]
    if current.base_price_cents == base and normalize_markup(current.markup_percentage) == markup:
        return None

    entry = _append(product, base, markup, at or utcnow())
    product.price_cents = base
    product.markup_percentage = markup
    product.selling_price_cents = compute_selling_price_cents(base, markup)
    return entry


def pricing_history(product_id: int) -> list[dict]:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return [entry.to_dict() for entry in product.pricing_history]
