# backend/barpos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the desktop shell's working directory
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///barpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stock floor policy: False rejects any operation that would drive
    # godown or counter stock below zero.
    ALLOW_NEGATIVE_STOCK = _env_flag("ALLOW_NEGATIVE_STOCK", False)

    STOCK_MOVEMENT_LIMIT = int(os.environ.get("STOCK_MOVEMENT_LIMIT", "30"))
    TOP_SELLERS_LIMIT = 10

    # Business day for sale numbers and daily reports. Unset means the
    # host's local time; otherwise "UTC" or an IANA name ("Asia/Kolkata").
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    ALLOW_NEGATIVE_STOCK = False
    BUSINESS_TIMEZONE = "UTC"
    LOG_LEVEL = "WARNING"
