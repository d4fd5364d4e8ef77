"""
Static pages and the catch-all not-found handler.
"""

from flask import render_template

from climate_solutions.pages import pages_bp, render_not_found

NOT_FOUND_MESSAGE = "I'm sorry, we're unable to find what you're looking for"


@pages_bp.get("/")
def home():
    return render_template("home.html", page="/")


@pages_bp.get("/about")
def about():
    return render_template("about.html", page="/about")


@pages_bp.app_errorhandler(404)
def not_found(_error):
    """Any unmatched route (app-wide, not only this blueprint)."""
    return render_not_found(NOT_FOUND_MESSAGE)


@pages_bp.app_errorhandler(405)
def method_not_allowed(_error):
    """A known path with the wrong method is treated like any unmatched route."""
    return render_not_found(NOT_FOUND_MESSAGE)
