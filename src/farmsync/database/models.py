"""SQLAlchemy models for farmsync storage.

The local key-value table and the remote document table live on separate
declarative bases because they are created in different databases.
"""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    JSON,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

LocalBase = declarative_base()
RemoteBase = declarative_base()


class KeyValueItem(LocalBase):
    """One key of the local persistent storage."""

    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class RemoteDocument(RemoteBase):
    """Document in the remote store.

    Entity timestamp fields inside ``data`` are stored as epoch milliseconds.
    """

    __tablename__ = "documents"

    id = Column(String, primary_key=True)
    collection = Column(String, nullable=False)
    owner_id = Column(String, nullable=False)
    client_id = Column(String, nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("ix_documents_collection_owner", "collection", "owner_id"),)


def create_session_factory(database_url: str, base=LocalBase) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory with the tables of ``base``."""
    engine = create_engine(database_url, echo=False)
    base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
