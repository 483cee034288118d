# backend/unitrack/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///unitrack.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stock projection: a product is "low" when available units <= threshold
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    # Capacity given to storage slots created on demand by relocation
    DEFAULT_LOCATION_CAPACITY = int(os.environ.get("DEFAULT_LOCATION_CAPACITY", "100"))

    # External collaborators. None selects the built-in implementations:
    # - PERMISSION_CHECKER(actor_id, resource, action) -> bool (role tables)
    # - NOTIFIER(level, message) (app logger)
    PERMISSION_CHECKER = None
    NOTIFIER = None


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
