from __future__ import annotations

import re

from .errors import ValidationError
from .models import PAYMENT_METHODS
from .services.sales_service import SaleLineRequest


INTEGER_RE = re.compile(r"-?[0-9]+")
PHONE_RE = re.compile(r"[0-9]+")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_MAX_DIGITS = 11


def _strict_int(value, field: str, *, minimum: int = 0) -> int:
    """
    Integers only: floats, bools, decimals and scientific notation are
    rejected rather than silently truncated.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not INTEGER_RE.fullmatch(stripped):
            raise ValidationError(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return value


def _optional_text(value, field: str, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def validate_customer_email(value) -> str | None:
    email = _optional_text(value, "customer_email")
    if email and not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def validate_customer_phone(value) -> str | None:
    phone = _optional_text(value, "customer_phone", max_length=64)
    if phone is None:
        return None
    if not PHONE_RE.fullmatch(phone):
        raise ValidationError("Phone number must contain only digits")
    if len(phone) > PHONE_MAX_DIGITS:
        raise ValidationError(f"Phone number must be maximum {PHONE_MAX_DIGITS} digits")
    return phone


def parse_sale_request(data: dict | None) -> dict:
    """
    Validate a create-sale body and return keyword arguments for
    sales_service.create_sale (minus cashier_id).

    Accepts `product` or `product_id` per item, and camelCase or snake_case
    for payment method and customer fields.
    """
    if not isinstance(data, dict):
        raise ValidationError("JSON body required")

    items = data.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = item.get("product_id", item.get("product"))
        if product_id is None:
            raise ValidationError(f"items[{index}]: valid product ID is required")
        lines.append(SaleLineRequest(
            product_id=_strict_int(product_id, f"items[{index}].product_id", minimum=1),
            quantity=_strict_int(item.get("quantity"), f"items[{index}].quantity", minimum=1),
        ))

    payment_method = data.get("payment_method", data.get("paymentMethod"))
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("Invalid payment method", details={"allowed": list(PAYMENT_METHODS)})

    discount = data.get("discount_cents", data.get("discount"))
    tax = data.get("tax_cents", data.get("tax"))

    return {
        "lines": lines,
        "payment_method": payment_method,
        "discount_cents": 0 if discount is None else _strict_int(discount, "discount_cents"),
        "tax_cents": 0 if tax is None else _strict_int(tax, "tax_cents"),
        "customer_name": _optional_text(data.get("customer_name", data.get("customerName")), "customer_name"),
        "customer_email": validate_customer_email(data.get("customer_email", data.get("customerEmail"))),
        "customer_phone": validate_customer_phone(data.get("customer_phone", data.get("customerPhone"))),
    }


def parse_void_request(data: dict | None) -> dict:
    """
    A missing supervisor code is passed through as None; the sale engine
    rejects it as Unauthorized, the same as a wrong code.
    """
    data = data or {}
    code = data.get("supervisor_code", data.get("superAdminCode"))
    code = code.strip() if isinstance(code, str) else None
    return {
        "supervisor_code": code,
        "reason": _optional_text(data.get("reason"), "reason"),
    }


def parse_delivery_request(data: dict | None) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON body required")
    product_id = data.get("product_id", data.get("product"))
    if product_id is None:
        raise ValidationError("product_id is required")
    quantity = data.get("stock_quantity", data.get("quantity"))
    total_cost = data.get("total_cost_cents", data.get("totalCost"))
    return {
        "product_id": _strict_int(product_id, "product_id", minimum=1),
        "quantity": _strict_int(quantity, "stock_quantity", minimum=1),
        "total_cost_cents": 0 if total_cost is None else _strict_int(total_cost, "total_cost_cents"),
        "date_delivered": data.get("date_delivered", data.get("dateDelivered")),
    }


def parse_int_arg(value: str | None, field: str, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    return _strict_int(value, field, minimum=1)


def parse_bool_arg(value: str | None, default: bool | None = None) -> bool | None:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
