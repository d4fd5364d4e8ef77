"""
climate_solutions/pages/__init__.py

Blueprint holding every page route, split across:
- main.py:      home, about, not-found page
- auth.py:      login, register, logout, login history
- solutions.py: project catalog pages and admin forms
"""

from flask import Blueprint, current_app, render_template

pages_bp = Blueprint("pages", __name__)

FAILURE_PREFIX = "I'm sorry, but we have encountered the following error: "


def account_store():
    return current_app.extensions["deps"]["account_store"]


def catalog_store():
    return current_app.extensions["deps"]["catalog_store"]


def render_failure(message: str, status: int = 500):
    """Generic failure page used when a store write fails."""
    return render_template("500.html", message=f"{FAILURE_PREFIX}{message}"), status


def render_not_found(message: str):
    return render_template("404.html", message=message), 404


# Import route modules so Flask registers them with the Blueprint
from climate_solutions.pages import main, auth, solutions  # pylint: disable=wrong-import-position  # noqa: E402,F401
