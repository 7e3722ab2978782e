# Overview: Human-readable document numbers for sales and deliveries.

from __future__ import annotations

import secrets

from flask import current_app

from ..errors import ConflictError
from ..extensions import db
from salesledger.time_utils import local_today


def _candidate(prefix: str) -> str:
    day = local_today(current_app.config["REPORT_TIMEZONE"]).strftime("%Y%m%d")
    return f"{prefix}-{day}-{secrets.token_hex(3).upper()}"


def next_document_number(*, prefix: str, column, attempts: int | None = None) -> str:
    """
    Allocate a date-prefixed number not yet present in `column`.

    Must run inside the caller's write transaction so the existence check and
    the insert are covered by the same lock. The unique constraint on the
    column remains the backstop; callers retry IntegrityError.
    """
    if attempts is None:
        attempts = current_app.config.get("SALE_NUMBER_ATTEMPTS", 5)

    for _ in range(attempts):
        number = _candidate(prefix)
        taken = db.session.query(column).filter(column == number).first()
        if taken is None:
            return number

    raise ConflictError(
        "Could not allocate a unique document number; please retry",
        details={"prefix": prefix, "attempts": attempts},
    )
