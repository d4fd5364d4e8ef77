"""
climate_solutions/session.py

Session layer: a signed, time-limited session carried entirely in the
client's cookie (Flask's itsdangerous-backed session). There is no
server-side session store.

The cookie is signed, not encrypted: its contents are readable by the
client but cannot be altered without SECRET_KEY. It carries only the
user name, email and recent login history, never the password hash.

Lifecycle per browser:
    Anonymous --start_session()--> Authenticated --end_session() / expiry--> Anonymous

Timing (see config.default_settings):
- SESSION_DURATION:        lifetime given to a fresh session
- SESSION_ACTIVE_DURATION: when less than this remains, any request
                           extends the expiry by this much
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from functools import wraps
from typing import Optional

from flask import Flask, current_app, redirect, session, url_for

logger = logging.getLogger(__name__)

USER_KEY = "user"
EXPIRES_KEY = "expires_at"

# Most recent login entries kept in the cookie (browsers cap cookies near 4 KB)
SESSION_HISTORY_LIMIT = 20


def _now() -> float:
    return time.time()


def _seconds(value) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def start_session(user) -> None:
    """Replace whatever the client carried with a fresh authenticated session."""
    session.clear()
    session.permanent = True
    session[USER_KEY] = user.to_session(history_limit=SESSION_HISTORY_LIMIT)
    session[EXPIRES_KEY] = _now() + _seconds(current_app.config["SESSION_DURATION"])


def end_session() -> None:
    session.clear()


def current_user() -> Optional[dict]:
    """The session view of the logged-in user, or None when anonymous."""
    return session.get(USER_KEY)


def refresh_session() -> None:
    """
    before_request hook: drop expired sessions, slide active ones forward.
    """
    expires_at = session.get(EXPIRES_KEY)
    if expires_at is None:
        return

    now = _now()
    if now >= expires_at:
        logger.info("Session for %r expired", (session.get(USER_KEY) or {}).get("userName"))
        session.clear()
        return

    active = _seconds(current_app.config["SESSION_ACTIVE_DURATION"])
    if expires_at - now < active:
        session[EXPIRES_KEY] = expires_at + active


def login_required(view):
    """
    Route decorator: anonymous clients are redirected to the login page
    and the view is not executed.
    """
    @wraps(view)
    def decorated(*args, **kwargs):
        if current_user() is None:
            return redirect(url_for("pages.login"))
        return view(*args, **kwargs)
    return decorated


def init_app(app: Flask) -> None:
    """Register the refresh hook and expose the session user to templates."""
    app.before_request(refresh_session)

    @app.context_processor
    def inject_session_user():
        return {"session_user": current_user()}
