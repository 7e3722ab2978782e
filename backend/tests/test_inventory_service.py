"""
Inventory ledger tests.

Verifies:
- reserve_and_decrement is all-or-nothing per product
- Shortfall details on InsufficientStockError
- increment restores stock, including on archived products
- Deliveries add stock and record a stock history entry
"""

import pytest

from salesledger.errors import InvalidAmountError, InsufficientStockError, ProductNotFoundError
from salesledger.extensions import db
from salesledger.models import StockHistory
from salesledger.services import inventory_service, products_service


def test_decrement_reduces_stock(make_product):
    product = make_product(stock_quantity=10)

    inventory_service.reserve_and_decrement(product.id, 4)
    db.session.commit()

    assert inventory_service.get_stock_quantity(product.id) == 6


def test_decrement_to_exactly_zero(make_product):
    product = make_product(stock_quantity=3)

    inventory_service.reserve_and_decrement(product.id, 3)
    db.session.commit()

    assert inventory_service.get_stock_quantity(product.id) == 0


def test_insufficient_stock_reports_shortfall(make_product):
    product = make_product(name="Rice", stock_quantity=2)

    with pytest.raises(InsufficientStockError) as exc_info:
        inventory_service.reserve_and_decrement(product.id, 5)
    db.session.rollback()

    err = exc_info.value
    assert err.details["product_id"] == product.id
    assert err.details["available"] == 2
    assert err.details["requested"] == 5
    assert err.details["shortfall"] == 3
    assert inventory_service.get_stock_quantity(product.id) == 2


def test_decrement_unknown_product(db_session):
    with pytest.raises(ProductNotFoundError):
        inventory_service.reserve_and_decrement(404, 1)


def test_decrement_archived_product_is_not_found(make_product):
    product = make_product(stock_quantity=5)
    products_service.archive_product(product.id)

    with pytest.raises(ProductNotFoundError):
        inventory_service.reserve_and_decrement(product.id, 1)
    db.session.rollback()


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
def test_decrement_rejects_non_positive_quantity(make_product, quantity):
    product = make_product(stock_quantity=5)

    with pytest.raises(InvalidAmountError):
        inventory_service.reserve_and_decrement(product.id, quantity)


def test_increment_on_archived_product(make_product):
    product = make_product(stock_quantity=1)
    products_service.archive_product(product.id)

    inventory_service.increment(product.id, 4)
    db.session.commit()

    assert inventory_service.get_stock_quantity(product.id) == 5


def test_increment_unknown_product(db_session):
    with pytest.raises(ProductNotFoundError):
        inventory_service.increment(404, 1)


class TestDeliveries:

    def test_record_delivery_adds_stock(self, make_product, supplier_user):
        product = make_product(name="Flour", stock_quantity=5)

        entry = inventory_service.record_delivery(
            product_id=product.id,
            quantity=20,
            added_by_user_id=supplier_user.id,
            total_cost_cents=15000,
            date_delivered="2026-03-01T08:00:00Z",
        )

        assert entry.transaction_id.startswith("STK-")
        assert entry.product_name == "Flour"
        assert entry.stock_quantity == 20
        assert inventory_service.get_stock_quantity(product.id) == 25

    def test_list_deliveries_filters_by_product(self, make_product, supplier_user):
        first = make_product(name="A")
        second = make_product(name="B")
        inventory_service.record_delivery(product_id=first.id, quantity=1, added_by_user_id=supplier_user.id)
        inventory_service.record_delivery(product_id=second.id, quantity=2, added_by_user_id=supplier_user.id)

        entries = inventory_service.list_deliveries(product_id=second.id)

        assert [e.product_id for e in entries] == [second.id]

    def test_bad_delivery_leaves_no_trace(self, make_product, supplier_user, db_session):
        product = make_product(stock_quantity=5)

        with pytest.raises(InvalidAmountError):
            inventory_service.record_delivery(
                product_id=product.id,
                quantity=3,
                added_by_user_id=supplier_user.id,
                total_cost_cents=-1,
            )

        assert db_session.query(StockHistory).count() == 0
        assert inventory_service.get_stock_quantity(product.id) == 5

    def test_delivery_for_unknown_product(self, supplier_user):
        with pytest.raises(ProductNotFoundError):
            inventory_service.record_delivery(product_id=404, quantity=1, added_by_user_id=supplier_user.id)
