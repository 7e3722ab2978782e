"""
Pricing history tests.

Verifies:
- Selling price derivation with half-up rounding
- Creation seeds exactly one history entry
- Unchanged price/markup submissions are no-ops
- Every change appends; the last entry is the price in effect
"""

from decimal import Decimal

import pytest

from salesledger.errors import InvalidAmountError, ProductNotFoundError
from salesledger.models import Product, PricingHistoryEntry
from salesledger.services import pricing_service, products_service


class TestComputeSellingPrice:

    @pytest.mark.parametrize(
        "base,markup,expected",
        [
            (100, Decimal("20"), 120),
            (10000, Decimal("0"), 10000),
            (999, Decimal("12.5"), 1124),   # 1123.875 rounds up
            (5, Decimal("10"), 6),          # 5.5 rounds half up
            (0, Decimal("50"), 0),
        ],
    )
    def test_rounding(self, base, markup, expected):
        assert pricing_service.compute_selling_price_cents(base, markup) == expected


class TestNormalization:

    @pytest.mark.parametrize("value", [-1, 1.5, "abc", True, None, "--5", "²", "١٢"])
    def test_rejects_bad_prices(self, value):
        with pytest.raises(InvalidAmountError):
            pricing_service.normalize_price_cents(value)

    def test_accepts_digit_strings(self):
        assert pricing_service.normalize_price_cents("250") == 250

    @pytest.mark.parametrize("value", [-5, "x"])
    def test_rejects_bad_markup(self, value):
        with pytest.raises(InvalidAmountError):
            pricing_service.normalize_markup(value)

    def test_markup_quantized_to_cents(self):
        assert pricing_service.normalize_markup("12.345") == Decimal("12.35")


class TestPricingHistory:

    def test_create_seeds_single_entry(self, make_product):
        product = make_product(price_cents=100, markup_percentage=20)

        history = pricing_service.pricing_history(product.id)
        assert len(history) == 1
        assert history[0]["base_price_cents"] == 100
        assert history[0]["markup_percentage"] == 20.0
        assert product.selling_price_cents == 120

    def test_unchanged_values_are_noop(self, make_product, db_session):
        product = make_product(price_cents=100, markup_percentage=20)

        products_service.update_product(product.id, {"price_cents": 100, "markup_percentage": 20})
        products_service.update_product(product.id, {"price_cents": "100"})

        count = db_session.query(PricingHistoryEntry).filter_by(product_id=product.id).count()
        assert count == 1

    def test_change_appends_and_updates_current(self, make_product):
        product = make_product(price_cents=100, markup_percentage=20)

        products_service.update_product(product.id, {"price_cents": 150})
        products_service.update_product(product.id, {"markup_percentage": 50})

        history = pricing_service.pricing_history(product.id)
        assert [(h["base_price_cents"], h["markup_percentage"]) for h in history] == [
            (100, 20.0),
            (150, 20.0),
            (150, 50.0),
        ]

        current = pricing_service.current_price(product.id)
        assert current.base_price_cents == 150
        assert current.markup_percentage == Decimal("50.00")
        assert current.selling_price_cents == 225

    def test_invalid_price_leaves_history_untouched(self, make_product, db_session):
        product = make_product(price_cents=100, markup_percentage=20)

        with pytest.raises(InvalidAmountError):
            products_service.update_product(product.id, {"price_cents": -10})

        assert db_session.query(PricingHistoryEntry).filter_by(product_id=product.id).count() == 1
        assert db_session.get(Product, product.id).price_cents == 100

    def test_legacy_product_is_seeded_on_first_change(self, db_session):
        product = Product(name="Legacy", price_cents=200, markup_percentage=Decimal("10"), selling_price_cents=220)
        db_session.add(product)
        db_session.commit()
        assert product.pricing_history == []

        entry = pricing_service.record_price_change(product, 300, 10)
        db_session.commit()

        assert entry is not None
        history = pricing_service.pricing_history(product.id)
        assert [h["base_price_cents"] for h in history] == [200, 300]

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            pricing_service.current_price(999)
