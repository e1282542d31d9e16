# backend/retail_erp/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retail_erp.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retail_erp.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # SQLite busy timeout (seconds) while another writer holds the lock
    SQLALCHEMY_ENGINE_OPTIONS = (
        {"connect_args": {"timeout": 30}}
        if SQLALCHEMY_DATABASE_URI.startswith("sqlite")
        else {}
    )

    # Checkout
    TAX_RATE = os.environ.get("TAX_RATE", "0.05")
    ORDER_NUMBERING_RULE = os.environ.get("ORDER_NUMBERING_RULE", "ORDER")
    TRANSACTION_TIMEOUT_MS = int(os.environ.get("TRANSACTION_TIMEOUT_MS", "10000"))

    # Loyalty
    POINTS_PER_CURRENCY_UNIT = int(os.environ.get("POINTS_PER_CURRENCY_UNIT", "10"))
    POINTS_EXPIRY_DAYS = int(os.environ.get("POINTS_EXPIRY_DAYS", "365"))

    # Calendar used for document number dates and reset boundaries
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "UTC")
