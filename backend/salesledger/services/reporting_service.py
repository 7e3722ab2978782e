# Overview: Read-only reporting over committed, non-void sales and current product data.

from __future__ import annotations

from datetime import date, datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..errors import ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleItem
from .pricing_service import snapshot_for
from salesledger.time_utils import local_day_bounds, parse_report_date, to_local


GROUP_BY_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%G-W%V",  # ISO year and week
    "month": "%Y-%m",
}

UNCATEGORIZED = "Uncategorized"
MAX_TOP_PRODUCTS = 100


def _coerce_date(value, field: str) -> date | None:
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    if isinstance(value, datetime):
        return value.date()
    try:
        return parse_report_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def _resolve_timezone(tz_name: str | None) -> str:
    return tz_name or current_app.config["REPORT_TIMEZONE"]


def _bounds(start, end, tz_name: str, *, required: bool) -> tuple[datetime | None, datetime | None]:
    """
    UTC-naive [start-of-day(start), end-of-day(end)] in the report timezone.
    """
    start_d = _coerce_date(start, "startDate")
    end_d = _coerce_date(end, "endDate")
    if required and (start_d is None or end_d is None):
        raise ValidationError("Start date and end date are required")
    if start_d and end_d and start_d > end_d:
        raise ValidationError("Start date must not be after end date")

    try:
        if start_d and end_d:
            return local_day_bounds(start_d, end_d, tz_name)
        if start_d:
            return local_day_bounds(start_d, start_d, tz_name)[0], None
        if end_d:
            return None, local_day_bounds(end_d, end_d, tz_name)[1]
    except ValueError as exc:
        raise ValidationError(str(exc))
    return None, None


def resolve_bounds(start, end, tz_name: str | None = None) -> tuple[datetime | None, datetime | None]:
    """Optional whole-day bounds for listings (sales, deliveries)."""
    return _bounds(start, end, _resolve_timezone(tz_name), required=False)


def _committed_sales(lo: datetime | None, hi: datetime | None) -> list[Sale]:
    query = (
        db.session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(Sale.is_void.is_(False))
    )
    if lo is not None:
        query = query.filter(Sale.created_at >= lo)
    if hi is not None:
        query = query.filter(Sale.created_at <= hi)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def bucket_key(created_at: datetime, group_by: str, tz_name: str) -> str:
    return to_local(created_at, tz_name).strftime(GROUP_BY_FORMATS[group_by])


def _bucket(sales: list[Sale], group_by: str, tz_name: str) -> dict[str, dict]:
    buckets: dict[str, dict] = {}
    for sale in sales:
        key = bucket_key(sale.created_at, group_by, tz_name)
        row = buckets.setdefault(key, {"count": 0, "revenue_cents": 0})
        row["count"] += 1
        row["revenue_cents"] += sale.total_cents
    return dict(sorted(buckets.items()))


def cost_of_goods_sold(sales: list[Sale]) -> int:
    """
    Σ (product's current base price × quantity) over every line item.

    Uses the price in effect now, not at the time of sale: historical profit
    moves when base prices change.
    """
    quantities: dict[int, int] = {}
    for sale in sales:
        for item in sale.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
    if not quantities:
        return 0

    products = (
        db.session.query(Product)
        .options(selectinload(Product.pricing_history))
        .filter(Product.id.in_(quantities.keys()))
        .all()
    )
    return sum(
        snapshot_for(product).base_price_cents * quantities[product.id]
        for product in products
    )


def sales_report(*, start, end, tz_name: str | None = None) -> dict:
    tz_name = _resolve_timezone(tz_name)
    lo, hi = _bounds(start, end, tz_name, required=True)
    sales = _committed_sales(lo, hi)

    total_revenue = sum(sale.total_cents for sale in sales)
    total_vat = sum(sale.tax_cents for sale in sales)
    total_cogs = cost_of_goods_sold(sales)

    recent_limit = current_app.config.get("RECENT_SALES_LIMIT", 100)
    return {
        "period": {"start_date": str(_coerce_date(start, "startDate")), "end_date": str(_coerce_date(end, "endDate"))},
        "timezone": tz_name,
        "summary": {
            "total_sales": len(sales),
            "total_revenue_cents": total_revenue,
            "total_vat_cents": total_vat,
            "total_cogs_cents": total_cogs,
            "profit_cents": total_revenue - total_cogs,
        },
        "sales_by_date": _bucket(sales, "day", tz_name),
        "sales": [sale.to_dict() for sale in sales[:recent_limit]],
    }


def inventory_report() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.category.asc(), Product.name.asc(), Product.id.asc())
        .all()
    )

    by_category: dict[str, dict] = {}
    low_stock = []
    out_of_stock = []
    total_value = 0
    for product in products:
        value = product.price_cents * product.stock_quantity
        total_value += value

        row = by_category.setdefault(product.category or UNCATEGORIZED, {"count": 0, "total_value_cents": 0})
        row["count"] += 1
        row["total_value_cents"] += value

        if product.stock_quantity <= product.low_stock_threshold:
            low_stock.append({
                "id": product.id,
                "name": product.name,
                "stock_quantity": product.stock_quantity,
                "low_stock_threshold": product.low_stock_threshold,
            })
        if product.stock_quantity == 0:
            out_of_stock.append({"id": product.id, "name": product.name})

    return {
        "summary": {
            "total_products": len(products),
            "total_stock_value_cents": total_value,
            "low_stock_count": len(low_stock),
            "out_of_stock_count": len(out_of_stock),
        },
        "by_category": by_category,
        "low_stock_products": low_stock,
        "out_of_stock_products": out_of_stock,
        "products": [product.to_dict() for product in products],
    }


def top_products(*, start=None, end=None, limit: int | None = None, tz_name: str | None = None) -> list[dict]:
    """
    Products ranked by total quantity sold, descending; ties go to the lower
    product id.
    """
    if limit is None:
        limit = current_app.config.get("TOP_PRODUCTS_LIMIT", 10)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > MAX_TOP_PRODUCTS:
        raise ValidationError(f"limit must be between 1 and {MAX_TOP_PRODUCTS}")

    lo, hi = _bounds(start, end, _resolve_timezone(tz_name), required=False)

    total_quantity = func.sum(SaleItem.quantity).label("total_quantity")
    query = (
        db.session.query(
            SaleItem.product_id.label("product_id"),
            func.max(SaleItem.product_name).label("sold_as"),
            total_quantity,
            func.sum(SaleItem.subtotal_cents).label("total_revenue_cents"),
            func.count(SaleItem.id).label("occurrences"),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.is_void.is_(False))
    )
    if lo is not None:
        query = query.filter(Sale.created_at >= lo)
    if hi is not None:
        query = query.filter(Sale.created_at <= hi)

    rows = (
        query.group_by(SaleItem.product_id)
        .order_by(total_quantity.desc(), SaleItem.product_id.asc())
        .limit(limit)
        .all()
    )

    names = dict(
        db.session.query(Product.id, Product.name)
        .filter(Product.id.in_([row.product_id for row in rows]))
        .all()
    ) if rows else {}

    return [
        {
            "rank": index + 1,
            "product_id": row.product_id,
            "product_name": names.get(row.product_id, row.sold_as),
            "total_quantity": int(row.total_quantity or 0),
            "total_revenue_cents": int(row.total_revenue_cents or 0),
            "sale_count": int(row.occurrences or 0),
        }
        for index, row in enumerate(rows)
    ]


def revenue_trends(*, start, end, group_by: str = "day", tz_name: str | None = None) -> dict:
    if group_by not in GROUP_BY_FORMATS:
        raise ValidationError("groupBy must be day, week, or month")

    tz_name = _resolve_timezone(tz_name)
    lo, hi = _bounds(start, end, tz_name, required=True)
    buckets = _bucket(_committed_sales(lo, hi), group_by, tz_name)

    return {
        "period": {
            "start_date": str(_coerce_date(start, "startDate")),
            "end_date": str(_coerce_date(end, "endDate")),
            "group_by": group_by,
        },
        "timezone": tz_name,
        "data": [
            {"period": key, "revenue_cents": row["revenue_cents"], "sales": row["count"]}
            for key, row in buckets.items()
        ],
    }
