"""
Sale transaction engine tests.

Verifies:
- Sale creation decrements stock and snapshots prices
- Any failing line rolls back every decrement (no partial sale)
- Voiding restores stock exactly once and requires the supervisor code
- Later price changes never alter a committed sale
"""

import re

import pytest

from salesledger.errors import (
    AlreadyVoidError,
    InsufficientStockError,
    InvalidAmountError,
    ProductNotFoundError,
    SaleNotFoundError,
    UnauthorizedError,
)
from salesledger.models import Sale
from salesledger.services import inventory_service, products_service, sales_service
from salesledger.services.sales_service import SaleLineRequest

from conftest import SUPERVISOR_CODE


def _sell(cashier, *lines, **kwargs):
    kwargs.setdefault("payment_method", "cash")
    return sales_service.create_sale(
        lines=[SaleLineRequest(product_id=pid, quantity=qty) for pid, qty in lines],
        cashier_id=cashier.id,
        **kwargs,
    )


class TestCreateSale:

    def test_worked_example(self, make_product, staff_user):
        product = make_product(name="P", price_cents=100, markup_percentage=20, stock_quantity=10)

        sale = _sell(staff_user, (product.id, 3))

        assert inventory_service.get_stock_quantity(product.id) == 7
        assert sale.subtotal_cents == 360
        assert sale.total_cents == 360
        assert sale.is_void is False
        assert sale.items[0].unit_price_cents == 120
        assert sale.items[0].product_name == "P"

    def test_sale_number_format(self, make_product, staff_user):
        product = make_product()

        sale = _sell(staff_user, (product.id, 1))

        assert re.fullmatch(r"S-\d{8}-[0-9A-F]{6}", sale.sale_number)

    def test_discount_and_tax(self, make_product, staff_user):
        product = make_product(price_cents=1000, markup_percentage=0)

        sale = _sell(staff_user, (product.id, 2), discount_cents=300, tax_cents=120)

        assert sale.subtotal_cents == 2000
        assert sale.total_cents == 1820

    def test_negative_total_rejected_without_side_effects(self, make_product, staff_user, db_session):
        product = make_product(price_cents=100, markup_percentage=0, stock_quantity=5)

        with pytest.raises(InvalidAmountError):
            _sell(staff_user, (product.id, 1), discount_cents=500)

        assert inventory_service.get_stock_quantity(product.id) == 5
        assert db_session.query(Sale).count() == 0

    def test_shortfall_on_second_line_rolls_back_first(self, make_product, staff_user, db_session):
        plenty = make_product(name="Plenty", stock_quantity=50)
        scarce = make_product(name="Scarce", stock_quantity=1)

        with pytest.raises(InsufficientStockError) as exc_info:
            _sell(staff_user, (plenty.id, 10), (scarce.id, 2))

        assert exc_info.value.details["product_id"] == scarce.id
        assert exc_info.value.details["shortfall"] == 1
        assert inventory_service.get_stock_quantity(plenty.id) == 50
        assert inventory_service.get_stock_quantity(scarce.id) == 1
        assert db_session.query(Sale).count() == 0

    def test_repeated_product_checks_combined_quantity(self, make_product, staff_user):
        product = make_product(stock_quantity=5)

        with pytest.raises(InsufficientStockError) as exc_info:
            _sell(staff_user, (product.id, 3), (product.id, 3))

        assert exc_info.value.details["requested"] == 6
        assert inventory_service.get_stock_quantity(product.id) == 5

    def test_unknown_product_rolls_back(self, make_product, staff_user):
        product = make_product(stock_quantity=5)

        with pytest.raises(ProductNotFoundError):
            _sell(staff_user, (product.id, 1), (9999, 1))

        assert inventory_service.get_stock_quantity(product.id) == 5

    def test_empty_sale_rejected(self, staff_user, db_session):
        with pytest.raises(InvalidAmountError):
            sales_service.create_sale(lines=[], payment_method="cash", cashier_id=staff_user.id)

    def test_price_change_does_not_touch_committed_sale(self, make_product, staff_user):
        product = make_product(price_cents=100, markup_percentage=20, stock_quantity=10)
        sale = _sell(staff_user, (product.id, 3))

        products_service.update_product(product.id, {"price_cents": 150})

        reloaded = sales_service.get_sale(sale.id)
        assert reloaded.subtotal_cents == 360
        assert reloaded.items[0].unit_price_cents == 120


class TestVoidSale:

    def test_void_restores_stock(self, make_product, staff_user, admin_user):
        product = make_product(price_cents=100, markup_percentage=20, stock_quantity=10)
        sale = _sell(staff_user, (product.id, 3))

        voided = sales_service.void_sale(
            sale_id=sale.id,
            user_id=admin_user.id,
            supervisor_code=SUPERVISOR_CODE,
            reason="Customer changed mind",
        )

        assert voided.is_void is True
        assert voided.voided_by_user_id == admin_user.id
        assert voided.voided_at is not None
        assert voided.void_reason == "Customer changed mind"
        assert inventory_service.get_stock_quantity(product.id) == 10

    def test_second_void_fails_without_stock_change(self, make_product, staff_user):
        product = make_product(stock_quantity=10)
        sale = _sell(staff_user, (product.id, 4))
        sales_service.void_sale(sale_id=sale.id, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

        with pytest.raises(AlreadyVoidError):
            sales_service.void_sale(sale_id=sale.id, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

        assert inventory_service.get_stock_quantity(product.id) == 10

    def test_default_reason(self, make_product, staff_user):
        product = make_product()
        sale = _sell(staff_user, (product.id, 1))

        voided = sales_service.void_sale(sale_id=sale.id, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

        assert voided.void_reason == "Voided"

    @pytest.mark.parametrize("code", [None, "", "wrong-code"])
    def test_bad_supervisor_code(self, make_product, staff_user, code):
        product = make_product(stock_quantity=10)
        sale = _sell(staff_user, (product.id, 2))

        with pytest.raises(UnauthorizedError):
            sales_service.void_sale(sale_id=sale.id, user_id=staff_user.id, supervisor_code=code)

        assert sales_service.get_sale(sale.id).is_void is False
        assert inventory_service.get_stock_quantity(product.id) == 8

    def test_unset_supervisor_code_refuses_all(self, app, make_product, staff_user, monkeypatch):
        product = make_product()
        sale = _sell(staff_user, (product.id, 1))
        monkeypatch.setitem(app.config, "SUPERVISOR_CODE", None)

        with pytest.raises(UnauthorizedError):
            sales_service.void_sale(sale_id=sale.id, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

    def test_void_unknown_sale(self, staff_user):
        with pytest.raises(SaleNotFoundError):
            sales_service.void_sale(sale_id=12345, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

    def test_void_sale_of_archived_product(self, make_product, staff_user):
        product = make_product(stock_quantity=3)
        sale = _sell(staff_user, (product.id, 3))
        products_service.archive_product(product.id)

        sales_service.void_sale(sale_id=sale.id, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

        assert inventory_service.get_stock_quantity(product.id) == 3


class TestListSales:

    def test_newest_first_and_void_filter(self, make_product, staff_user):
        product = make_product()
        first = _sell(staff_user, (product.id, 1))
        second = _sell(staff_user, (product.id, 1))
        sales_service.void_sale(sale_id=first.id, user_id=staff_user.id, supervisor_code=SUPERVISOR_CODE)

        everything = sales_service.list_sales()
        active = sales_service.list_sales(include_void=False)

        assert [s["id"] for s in everything["items"]][0] == second.id
        assert everything["pagination"]["total"] == 2
        assert [s["id"] for s in active["items"]] == [second.id]
