# backend/smartpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/smartpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///smartpos.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Thai VAT, in basis points (700 = 7%)
    VAT_RATE_BPS = int(os.environ.get("VAT_RATE_BPS", "700"))

    # Shop-local day boundaries (Asia/Bangkok is UTC+7, no DST)
    SHOP_UTC_OFFSET_MINUTES = int(os.environ.get("SHOP_UTC_OFFSET_MINUTES", "420"))

    DEFAULT_REORDER_POINT = 5

    MOVEMENT_PAGE_DEFAULT = 50
    MOVEMENT_PAGE_MAX = 200
