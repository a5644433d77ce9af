# backend/pos_backend/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sale numbers look like SALE-<epoch ms>-<16 hex chars>
    SALE_NUMBER_PREFIX = os.environ.get("SALE_NUMBER_PREFIX", "SALE")
    RETURN_NUMBER_PREFIX = os.environ.get("RETURN_NUMBER_PREFIX", "RET")

    # An item counts as tax-excluded when its allocated tax is below
    # expected * tolerance.
    TAX_EXCLUSION_TOLERANCE = float(os.environ.get("TAX_EXCLUSION_TOLERANCE", "0.95"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"
