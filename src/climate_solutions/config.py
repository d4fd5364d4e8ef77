"""
climate_solutions/config.py

Environment-driven configuration.

Responsibilities:
- Build the PostgreSQL connection URL for the catalog store
- Read the MongoDB connection URL for the account store
- Provide the default Flask settings (session timing, pool sizes, ...)

Values come from plain environment variables; tests override anything
through create_app(test_config=...).
"""

from __future__ import annotations

import os
from datetime import timedelta


def get_database_url() -> str:
    """
    Return a PostgreSQL connection URL.

    Supported configuration (in priority order):
    1) DATABASE_URL
    2) PGHOST, PGPORT, PGDATABASE, PGUSER, PGPASSWORD

    Raises:
        ValueError: if required environment variables are missing.
    """
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        return db_url

    host = os.getenv("PGHOST")
    port = os.getenv("PGPORT", "5432")
    name = os.getenv("PGDATABASE")
    user = os.getenv("PGUSER")
    password = os.getenv("PGPASSWORD")

    missing = [k for k, v in {
        "PGHOST": host,
        "PGDATABASE": name,
        "PGUSER": user,
        "PGPASSWORD": password,
    }.items() if not v]

    if missing:
        raise ValueError(
            "Catalog database environment is not configured.\n"
            "Set DATABASE_URL, or set: PGHOST, PGDATABASE, PGUSER, PGPASSWORD "
            "(optional PGPORT).\n"
            f"Missing: {', '.join(missing)}"
        )

    return f"postgresql://{user}:{password}@{host}:{port}/{name}"


def get_mongodb_url() -> str:
    """
    Return the MongoDB connection string for the account store.

    Raises:
        ValueError: if neither MONGODB nor MONGODB_URL is set.
    """
    url = os.getenv("MONGODB") or os.getenv("MONGODB_URL")
    if not url:
        raise ValueError(
            "MONGODB environment variable is not set.\n"
            "Example:\n"
            'export MONGODB="mongodb://localhost:27017/climate_solutions"'
        )
    return url


def is_production() -> bool:
    """True when APP_ENV is 'production' (catalog seeding is then skipped)."""
    return os.getenv("APP_ENV", "").strip().lower() == "production"


def default_settings() -> dict:
    """
    Flask settings applied by create_app() before any test overrides.
    """
    duration = timedelta(minutes=30)
    return {
        "SECRET_KEY": os.getenv("SECRET_KEY", "dev"),
        "PRODUCTION": is_production(),
        # Session cookie: absolute lifetime and sliding extension window
        "SESSION_COOKIE_NAME": "session",
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_DURATION": duration,
        "SESSION_ACTIVE_DURATION": timedelta(minutes=10),
        "PERMANENT_SESSION_LIFETIME": duration,
        # Catalog connection pool
        "DB_POOL_MIN_SIZE": int(os.getenv("DB_POOL_MIN_SIZE", "1")),
        "DB_POOL_MAX_SIZE": int(os.getenv("DB_POOL_MAX_SIZE", "10")),
        "DB_POOL_MAX_IDLE": float(os.getenv("DB_POOL_MAX_IDLE", "300")),
        "DB_CONNECT_TIMEOUT": float(os.getenv("DB_CONNECT_TIMEOUT", "10")),
        # Account store
        "MONGODB_TIMEOUT_MS": int(os.getenv("MONGODB_TIMEOUT_MS", "5000")),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        "LOG_FILE": os.getenv("LOG_FILE"),
    }
