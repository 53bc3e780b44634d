"""
Typed storage errors raised by the repository layer.

Callers branch on the exception class, never on driver error text.
"""

from __future__ import annotations

from sqlalchemy import exc as sa_exc

# PostgreSQL SQLSTATE for "canceling statement due to statement timeout".
_QUERY_CANCELED_SQLSTATE = "57014"


class StorageError(Exception):
    """Base exception for transaction store failures."""


class StorageTimeoutError(StorageError):
    """Raised when a statement or pool checkout exceeds its deadline."""


class StorageConnectivityError(StorageError):
    """Raised when the database cannot be reached or the connection dropped."""


class StorageWriteError(StorageError):
    """Raised when the database rejects a write (constraint or data errors)."""


def _sqlstate(error: sa_exc.DBAPIError) -> str | None:
    original = error.orig
    if original is None:
        return None
    return getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)


def classify_storage_error(error: sa_exc.SQLAlchemyError) -> StorageError:
    """
    Map a SQLAlchemy exception onto the storage error taxonomy.

    The returned exception is meant to be raised ``from`` the original.
    """

    message = str(error)
    if isinstance(error, sa_exc.TimeoutError):
        return StorageTimeoutError(message)

    if isinstance(error, sa_exc.DBAPIError):
        if _sqlstate(error) == _QUERY_CANCELED_SQLSTATE:
            return StorageTimeoutError(message)
        if error.connection_invalidated:
            return StorageConnectivityError(message)
        if isinstance(error, (sa_exc.IntegrityError, sa_exc.DataError)):
            return StorageWriteError(message)
        if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError)):
            return StorageConnectivityError(message)

    if isinstance(error, sa_exc.DisconnectionError):
        return StorageConnectivityError(message)

    return StorageError(message)
