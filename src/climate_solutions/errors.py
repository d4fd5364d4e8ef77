"""
climate_solutions/errors.py

Error taxonomy shared by the account store, the catalog store and the routes.

Every store failure is raised as a StoreError subclass that carries:
- kind:    an ErrorKind member callers can branch on
- message: the human-readable text rendered into the page

Routes never parse the message; they only display it.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Machine-readable classification of a store failure."""

    CONNECTION = "connection"
    VALIDATION = "validation"
    DUPLICATE_USER = "duplicate_user"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    PERSISTENCE = "persistence"


class StoreError(Exception):
    """Base class for every failure raised by a store."""

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class StoreConnectionError(StoreError):
    """Store unreachable at startup (fatal: the app must not serve)."""

    kind = ErrorKind.CONNECTION


class ValidationError(StoreError):
    """Bad input; the message is the first field-level problem found."""

    kind = ErrorKind.VALIDATION


class DuplicateUserError(StoreError):
    kind = ErrorKind.DUPLICATE_USER


class NotFoundError(StoreError):
    """Missing user/project/sector, or an empty collection."""

    kind = ErrorKind.NOT_FOUND


class InvalidCredentialsError(StoreError):
    kind = ErrorKind.INVALID_CREDENTIALS


class PersistenceError(StoreError):
    """Unclassified storage failure."""

    kind = ErrorKind.PERSISTENCE
