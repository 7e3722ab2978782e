# backend/salesledger/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    if min_value is not None:
        return max(min_value, value)
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    try:
        return float(raw) if raw is not None else default
    except ValueError:
        return default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/salesledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///salesledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Only applied to SQLite URIs (see create_app)
    SQLITE_CONNECT_ARGS = {"timeout": 30, "check_same_thread": False}

    # Sale day boundaries and report buckets are derived in this zone
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE") or os.environ.get("TZ") or "Asia/Manila"

    # Shared secret required to void a sale; voids are refused while unset
    SUPERVISOR_CODE = os.environ.get("SUPERVISOR_CODE")

    TX_RETRY_ATTEMPTS = _env_int("TX_RETRY_ATTEMPTS", 3, min_value=1)
    TX_RETRY_BACKOFF = _env_float("TX_RETRY_BACKOFF", 0.05)
    SALE_NUMBER_ATTEMPTS = _env_int("SALE_NUMBER_ATTEMPTS", 5, min_value=1)

    TOP_PRODUCTS_LIMIT = 10
    RECENT_SALES_LIMIT = 100

    SESSION_TTL_HOURS = _env_int("SESSION_TTL_HOURS", 12, min_value=1)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
