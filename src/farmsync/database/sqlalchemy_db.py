"""SQLAlchemy implementation of the local key-value storage."""

from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farmsync.database.base import KeyValueStorage
from farmsync.database.models import KeyValueItem, LocalBase, create_session_factory


class SQLAlchemyKeyValueStorage(KeyValueStorage):
    """Key-value storage kept in a single SQLAlchemy table."""

    def __init__(self, database_url: str):
        """Initialize storage.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
        """
        self.database_url = database_url
        self.session_factory = create_session_factory(database_url, LocalBase)
        self._session: Optional[Session] = None

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def get_item(self, key: str) -> Optional[str]:
        session = self._get_session()
        item = session.get(KeyValueItem, key)
        if item is None:
            return None
        return item.value

    def _commit(self, session: Session) -> None:
        """Commit, rolling back so the session stays usable after a failure."""
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise

    def set_item(self, key: str, value: str) -> None:
        session = self._get_session()
        item = session.get(KeyValueItem, key)
        if item is None:
            session.add(KeyValueItem(key=key, value=value))
        else:
            item.value = value
        self._commit(session)

    def remove_item(self, key: str) -> None:
        session = self._get_session()
        item = session.get(KeyValueItem, key)
        if item is not None:
            session.delete(item)
            self._commit(session)
