"""
climate_solutions/pages/auth.py

Account routes: login, registration, logout and the login-history page.

Handlers stay thin: read the form, call one AccountStore operation,
render either the success view or the store's error message.
"""

import logging

from flask import redirect, render_template, request, url_for

from climate_solutions.errors import StoreError
from climate_solutions.pages import account_store, pages_bp
from climate_solutions.session import SESSION_HISTORY_LIMIT, end_session, login_required, start_session

logger = logging.getLogger(__name__)


@pages_bp.get("/login")
def login():
    return render_template("login.html", errorMessage="", userName="")


@pages_bp.post("/login")
def login_submit():
    """
    Authenticate and open a session.

    The User-Agent header is recorded as the client identifier in the
    user's login history.
    """
    user_name = request.form.get("userName", "")
    password = request.form.get("password", "")
    user_agent = request.headers.get("User-Agent", "")

    try:
        user = account_store().authenticate(user_name, password, user_agent)
    except StoreError as err:
        logger.info("Login failed for %r: %s", user_name, err.kind.value)
        return render_template("login.html", errorMessage=err.message, userName=user_name)

    start_session(user)
    return redirect(url_for("pages.projects"))


@pages_bp.get("/register")
def register():
    return render_template("register.html", errorMessage="", successMessage="", userName="")


@pages_bp.post("/register")
def register_submit():
    user_name = request.form.get("userName", "")

    try:
        account_store().register(
            user_name,
            request.form.get("password", ""),
            request.form.get("password2", ""),
            request.form.get("email", ""),
        )
    except StoreError as err:
        return render_template("register.html", errorMessage=err.message, successMessage="",
                               userName=user_name)

    return render_template("register.html", errorMessage="", successMessage="User created", userName="")


@pages_bp.get("/logout")
def logout():
    end_session()
    return redirect(url_for("pages.home"))


@pages_bp.get("/userHistory")
@login_required
def user_history():
    return render_template("userHistory.html", page="/userHistory", history_limit=SESSION_HISTORY_LIMIT)
