# Overview: Ledger error taxonomy shared by services and routes.

"""
Business outcomes vs. transient failures.

NotFound, InsufficientStock, InvalidAmount, AlreadyVoid, Unauthorized and
Validation errors are expected outcomes shown to the end user. Conflict and
Unavailable are transient: the operation left no effect and the client may
retry.
"""

from __future__ import annotations

from flask import jsonify


class LedgerError(Exception):
    """Base class for every error the ledger reports to a caller."""
    status_code = 400
    code = "LEDGER_ERROR"
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(LedgerError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"


class NotFoundError(LedgerError):
    status_code = 404
    code = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id):
        super().__init__("Product not found", details={"product_id": product_id})


class SaleNotFoundError(NotFoundError):
    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id):
        super().__init__("Sale not found", details={"sale_id": sale_id})


class InsufficientStockError(LedgerError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, product_id: int, product_name: str | None, requested: int, available: int):
        shortfall = requested - available
        super().__init__(
            f"Insufficient stock for {product_name or f'product {product_id}'}: "
            f"requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested": requested,
                "available": available,
                "shortfall": shortfall,
            },
        )
        self.product_id = product_id
        self.shortfall = shortfall


class InvalidAmountError(LedgerError):
    code = "INVALID_AMOUNT"


class AlreadyVoidError(LedgerError):
    status_code = 409
    code = "ALREADY_VOID"


class UnauthorizedError(LedgerError):
    status_code = 403
    code = "UNAUTHORIZED"


class ConflictError(LedgerError):
    """Concurrent modification kept winning after all retries."""
    status_code = 409
    code = "CONFLICT"
    retryable = True


class UnavailableError(LedgerError):
    status_code = 503
    code = "UNAVAILABLE"
    retryable = True


def error_response(exc: LedgerError):
    response = jsonify(exc.to_dict())
    response.status_code = exc.status_code
    if exc.retryable:
        response.headers["Retry-After"] = "1"
    return response
