"""Storage layer for farmsync application."""

from farmsync.database.base import KeyValueStorage, RemoteStore
from farmsync.database.factories import create_sqlite_storage, create_remote_store
from farmsync.database.local_store import LocalStore

__all__ = [
    "KeyValueStorage",
    "RemoteStore",
    "LocalStore",
    "create_sqlite_storage",
    "create_remote_store",
]
