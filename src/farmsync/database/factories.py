"""Factory functions for creating storage instances."""

import os
from pathlib import Path
from typing import Optional

from farmsync.database.sqlalchemy_db import SQLAlchemyKeyValueStorage
from farmsync.database.remote import SQLAlchemyRemoteStore


def _default_path(filename: str) -> str:
    data_dir = Path.home() / ".farmsync"
    data_dir.mkdir(exist_ok=True)
    return str(data_dir / filename)


def create_sqlite_storage(database_path: Optional[str] = None) -> SQLAlchemyKeyValueStorage:
    """Create the local key-value storage on a SQLite file.

    Args:
        database_path: Path to SQLite database file. If None, checks FARMSYNC_DB_PATH
            environment variable, then defaults to ~/.farmsync/farmsync.db

    Returns:
        SQLAlchemyKeyValueStorage instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("FARMSYNC_DB_PATH")

    if database_path is None:
        database_path = _default_path("farmsync.db")

    return SQLAlchemyKeyValueStorage(f"sqlite:///{database_path}")


def create_remote_store(database_url: Optional[str] = None) -> SQLAlchemyRemoteStore:
    """Create the remote document store.

    Args:
        database_url: SQLAlchemy URL of the document database. If None, checks
            FARMSYNC_REMOTE_URL, then defaults to ~/.farmsync/remote.db

    Returns:
        SQLAlchemyRemoteStore instance
    """
    if database_url is None:
        database_url = os.environ.get("FARMSYNC_REMOTE_URL")

    if database_url is None:
        database_url = f"sqlite:///{_default_path('remote.db')}"

    return SQLAlchemyRemoteStore(database_url)
