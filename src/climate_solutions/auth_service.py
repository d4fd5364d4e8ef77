"""
climate_solutions/auth_service.py

Account store: user registration and authentication backed by MongoDB.

Responsibilities:
- Connect to the document database (fail fast when it is unreachable)
- Register users with a bcrypt-hashed password
- Authenticate users and record each successful login

Documents in the `users` collection look like:

    {
        "userName": "alice",
        "password": "$2b$10$...",
        "email": "alice@example.com",
        "loginHistory": [{"dateTime": <datetime>, "userAgent": "Mozilla/5.0 ..."}]
    }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import bcrypt
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from climate_solutions.errors import (
    DuplicateUserError,
    InvalidCredentialsError,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# bcrypt work factor; changing it only affects newly hashed passwords
BCRYPT_ROUNDS = 10

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

DEFAULT_DATABASE = "climate_solutions"
USERS_COLLECTION = "users"


def _password_bytes(password: str) -> bytes:
    """UTF-8 bytes of a password, cut to what bcrypt actually hashes."""
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


@dataclass
class LoginEvent:
    date_time: datetime
    user_agent: str

    def to_session(self) -> dict:
        stamp = self.date_time.isoformat() if isinstance(self.date_time, datetime) else str(self.date_time)
        return {"dateTime": stamp, "userAgent": self.user_agent}


@dataclass
class User:
    """A registered account, as read back from the users collection."""

    user_name: str
    email: str
    password_hash: str = field(repr=False)
    login_history: list[LoginEvent] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        history = [
            LoginEvent(date_time=entry.get("dateTime"), user_agent=entry.get("userAgent") or "")
            for entry in doc.get("loginHistory") or []
        ]
        return cls(
            user_name=doc["userName"],
            email=doc.get("email") or "",
            password_hash=doc.get("password") or "",
            login_history=history,
        )

    def to_session(self, history_limit: Optional[int] = None) -> dict:
        """
        Session view of the user. Never includes the password hash.

        history_limit keeps only the most recent entries (the cookie has a
        hard size ceiling).
        """
        history = self.login_history
        if history_limit is not None:
            history = history[-history_limit:] if history_limit > 0 else []
        return {
            "userName": self.user_name,
            "email": self.email,
            "loginHistory": [event.to_session() for event in history],
        }


class AccountStore:
    """
    User accounts in a MongoDB collection.

    Construct with a connection string, then call initialize() once at
    startup. Tests may pass a ready collection object instead.
    """

    def __init__(self, mongodb_url: Optional[str] = None, *,
                 timeout_ms: int = 5000,
                 collection: Any = None):
        self._url = mongodb_url
        self._timeout_ms = timeout_ms
        self._client: Optional[MongoClient] = None
        self._injected = collection
        self._users = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Connect and bind the users collection.

        Raises:
            StoreConnectionError: the server could not be reached within
                the selection timeout.
        """
        if self._injected is not None:
            users = self._injected
        else:
            if not self._url:
                raise StoreConnectionError("No MongoDB connection string configured")
            try:
                client = MongoClient(
                    self._url,
                    serverSelectionTimeoutMS=self._timeout_ms,
                    tz_aware=True,
                )
                # MongoClient connects lazily; ping forces server selection
                client.admin.command("ping")
            except PyMongoError as exc:
                logger.error("MongoDB connection error: %s", exc)
                raise StoreConnectionError(f"Unable to connect to the account database: {exc}") from exc
            self._client = client
            users = client.get_default_database(default=DEFAULT_DATABASE)[USERS_COLLECTION]

        try:
            users.create_index("userName", unique=True)
        except PyMongoError as exc:
            logger.error("Could not ensure userName index: %s", exc)
            raise StoreConnectionError(f"Unable to prepare the account database: {exc}") from exc

        self._users = users
        logger.info("MongoDB connection successful")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        self._users = None

    def _collection(self):
        if self._users is None:
            raise StoreConnectionError("Account store has not been initialized")
        return self._users

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, user_name: str, password: str, password_confirmation: str, email: str) -> None:
        """
        Create a new account with an empty login history.

        Raises:
            ValidationError: password and confirmation differ.
            DuplicateUserError: userName is already taken.
            PersistenceError: hashing or the insert failed for another reason.
        """
        if password != password_confirmation:
            raise ValidationError("Passwords do not match")

        users = self._collection()

        try:
            hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
        except (ValueError, TypeError) as exc:
            raise PersistenceError("There was an error encrypting the password") from exc

        document = {
            "userName": user_name,
            "password": hashed.decode("utf-8"),
            "email": email,
            "loginHistory": [],
        }
        try:
            users.insert_one(document)
        except DuplicateKeyError as exc:
            raise DuplicateUserError("User Name already taken") from exc
        except PyMongoError as exc:
            logger.warning("Registration of %r failed: %s", user_name, exc)
            raise PersistenceError(f"There was an error creating the user: {exc}") from exc

        logger.info("Registered user %r", user_name)

    def authenticate(self, user_name: str, password: str, client_identifier: str) -> User:
        """
        Verify credentials and append a login entry.

        Returns:
            User: the account including the entry just recorded.

        Raises:
            NotFoundError: no account with that exact userName.
            InvalidCredentialsError: password does not match (history untouched).
            PersistenceError: the lookup or the history update failed.
        """
        users = self._collection()

        try:
            doc = users.find_one({"userName": user_name})
        except PyMongoError as exc:
            raise PersistenceError(f"Unable to find user: {user_name}") from exc
        if not doc:
            raise NotFoundError(f"Unable to find user: {user_name}")

        try:
            matches = bcrypt.checkpw(_password_bytes(password), (doc.get("password") or "").encode("utf-8"))
        except ValueError as exc:
            raise PersistenceError(f"There was an error verifying the password: {exc}") from exc
        if not matches:
            raise InvalidCredentialsError(f"Incorrect Password for user: {user_name}")

        entry = {"dateTime": datetime.now(timezone.utc), "userAgent": client_identifier}
        try:
            updated = users.find_one_and_update(
                {"userName": user_name},
                {"$push": {"loginHistory": entry}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise PersistenceError(f"There was an error verifying the user: {exc}") from exc
        if updated is None:
            # removed between the read and the update
            raise PersistenceError(f"There was an error verifying the user: {user_name} no longer exists")

        logger.info("User %r logged in", user_name)
        return User.from_document(updated)
