"""Remote document store backed by SQLAlchemy.

This is the only module that knows how the remote side encodes timestamps:
``created_at``/``updated_at`` use native DateTime columns (naive UTC) and the
entity timestamp fields inside the JSON document use epoch milliseconds.
"""

import asyncio
import uuid
from datetime import datetime, UTC
from typing import Any, Optional
from sqlalchemy.orm import Session

from farmsync.database.base import RemoteStore
from farmsync.database.models import RemoteBase, RemoteDocument, create_session_factory
from farmsync.domain.entities import RESERVED_FIELDS, TIMESTAMP_FIELDS, Collection, Record
from farmsync.domain.errors import RemoteNotFoundError, remote_document_not_found
from farmsync.utils.date_parser import ensure_aware, from_epoch_ms, to_epoch_ms


def _to_column(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(UTC).replace(tzinfo=None)


def _from_column(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC)


def encode_fields(collection: Collection, fields: dict[str, Any]) -> dict[str, Any]:
    """Translate domain fields into the stored document body."""
    timestamp_fields = TIMESTAMP_FIELDS[collection]
    encoded = {}
    for name, value in fields.items():
        if name in RESERVED_FIELDS:
            continue
        if name in timestamp_fields and isinstance(value, datetime):
            value = to_epoch_ms(value)
        encoded[name] = value
    return encoded


def decode_fields(collection: Collection, data: dict[str, Any]) -> dict[str, Any]:
    """Translate a stored document body back into domain fields."""
    timestamp_fields = TIMESTAMP_FIELDS[collection]
    decoded = {}
    for name, value in data.items():
        if name in timestamp_fields and isinstance(value, (int, float)):
            value = from_epoch_ms(value)
        decoded[name] = value
    return decoded


def document_to_record(document: RemoteDocument) -> Record:
    """Convert a stored document to a domain Record."""
    return Record(
        id=document.id,
        owner_id=document.owner_id,
        client_id=document.client_id,
        created_at=_from_column(document.created_at),
        updated_at=_from_column(document.updated_at),
        fields=decode_fields(Collection(document.collection), document.data or {}),
    )


class SQLAlchemyRemoteStore(RemoteStore):
    """RemoteStore over any SQLAlchemy database URL.

    Blocking session work runs in a worker thread with a fresh session per
    call, so calls can be awaited from the event loop.
    """

    def __init__(self, database_url: str):
        """Initialize the remote store.

        Args:
            database_url: SQLAlchemy database URL of the document database
        """
        self.database_url = database_url
        self.session_factory = create_session_factory(database_url, RemoteBase)

    def _get_document(self, session: Session, collection: Collection, document_id: str) -> RemoteDocument:
        document = session.get(RemoteDocument, document_id)
        if document is None or document.collection != collection.value:
            raise RemoteNotFoundError(remote_document_not_found(collection.value, document_id))
        return document

    def _create(self, collection: Collection, record: Record) -> str:
        document_id = uuid.uuid4().hex
        with self.session_factory() as session:
            session.add(
                RemoteDocument(
                    id=document_id,
                    collection=collection.value,
                    owner_id=record.owner_id,
                    client_id=record.client_id,
                    data=encode_fields(collection, record.fields),
                    created_at=_to_column(record.created_at),
                    updated_at=_to_column(datetime.now(UTC)),
                )
            )
            session.commit()
        return document_id

    def _update(self, collection: Collection, document_id: str, patch: dict[str, Any]) -> None:
        with self.session_factory() as session:
            document = self._get_document(session, collection, document_id)
            # Reassign so the JSON column registers the change
            document.data = {**(document.data or {}), **encode_fields(collection, patch)}
            document.updated_at = _to_column(datetime.now(UTC))
            session.commit()

    def _delete(self, collection: Collection, document_id: str) -> None:
        with self.session_factory() as session:
            document = self._get_document(session, collection, document_id)
            session.delete(document)
            session.commit()

    def _query(
        self,
        collection: Collection,
        owner_id: str,
        filters: Optional[dict[str, Any]],
        limit: Optional[int],
    ) -> list[Record]:
        with self.session_factory() as session:
            query = session.query(RemoteDocument).filter(
                RemoteDocument.collection == collection.value,
                RemoteDocument.owner_id == owner_id,
            )
            query = query.order_by(RemoteDocument.created_at.desc())
            records = [document_to_record(doc) for doc in query.all()]

        if filters:
            records = [
                r for r in records
                if all(r.fields.get(name) == value for name, value in filters.items())
            ]
        if limit is not None:
            records = records[:limit]
        return records

    async def create(self, collection: Collection, record: Record) -> str:
        return await asyncio.to_thread(self._create, Collection(collection), record)

    async def update(self, collection: Collection, document_id: str, patch: dict[str, Any]) -> None:
        await asyncio.to_thread(self._update, Collection(collection), document_id, patch)

    async def delete(self, collection: Collection, document_id: str) -> None:
        await asyncio.to_thread(self._delete, Collection(collection), document_id)

    async def query(
        self,
        collection: Collection,
        owner_id: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        return await asyncio.to_thread(self._query, Collection(collection), owner_id, filters, limit)
