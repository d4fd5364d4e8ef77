"""
climate_solutions/__init__.py

Flask application factory for the Climate Solutions catalog.

The factory pattern gives:
- Isolated app instances per test
- Dependency injection of the two stores (tests pass fakes)
- An explicit startup sequence: stores built from configuration are
  initialized here, before the app can accept a request
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask

from climate_solutions import session as session_layer
from climate_solutions.auth_service import AccountStore
from climate_solutions.catalog import CatalogStore
from climate_solutions.config import default_settings, get_database_url, get_mongodb_url
from climate_solutions.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_account_store(config: dict) -> AccountStore:
    return AccountStore(
        config.get("MONGODB_URL") or get_mongodb_url(),
        timeout_ms=config["MONGODB_TIMEOUT_MS"],
    )


def build_catalog_store(config: dict) -> CatalogStore:
    return CatalogStore(
        config.get("DATABASE_URL") or get_database_url(),
        production=config["PRODUCTION"],
        min_size=config["DB_POOL_MIN_SIZE"],
        max_size=config["DB_POOL_MAX_SIZE"],
        max_idle=config["DB_POOL_MAX_IDLE"],
        connect_timeout=config["DB_CONNECT_TIMEOUT"],
    )


def create_app(test_config: Optional[dict] = None,
               deps: Optional[dict] = None) -> Flask:
    """
    Create and configure a Flask application instance.

    Args:
        test_config (dict, optional):
            Configuration overrides, e.g. {"TESTING": True}.

        deps (dict, optional):
            Prebuilt collaborators:
                - account_store: object with register/authenticate
                - catalog_store: object with the project/sector operations
            Injected stores are used as given (the caller owns their
            initialization). Missing stores are built from configuration
            and initialized immediately.

    Returns:
        Flask: configured application.

    Raises:
        StoreConnectionError: a store built here could not connect.
    """
    app = Flask(__name__)

    app.config.update(default_settings())
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config["LOG_LEVEL"], app.config.get("LOG_FILE"))

    deps = deps or {}

    account_store = deps.get("account_store")
    if account_store is None:
        account_store = build_account_store(app.config)
        account_store.initialize()

    catalog_store = deps.get("catalog_store")
    if catalog_store is None:
        catalog_store = build_catalog_store(app.config)
        catalog_store.initialize()

    # Routes reach the stores via current_app.extensions["deps"]
    app.extensions["deps"] = {
        "account_store": account_store,
        "catalog_store": catalog_store,
    }

    session_layer.init_app(app)

    from climate_solutions.pages import pages_bp
    app.register_blueprint(pages_bp)

    logger.info("Climate Solutions app created")
    return app
