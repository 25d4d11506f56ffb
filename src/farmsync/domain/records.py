"""Record domain service: optimistic local mutations feeding the offline queue."""

import dataclasses
import logging
from datetime import datetime, UTC
from typing import Any, Optional

from farmsync.database.local_store import LocalStore
from farmsync.domain.entities import (
    RESERVED_FIELDS,
    Collection,
    OperationKind,
    QueueEntry,
    Record,
    StoreState,
)
from farmsync.domain.errors import NotFoundError, ValidationError, record_not_found, reserved_field
from farmsync.domain.notifications import NotificationBus
from farmsync.domain.offline_queue import OfflineQueue
from farmsync.domain.sync_engine import SyncEngine
from farmsync.utils.ids import generate_temp_id, is_temp_id, new_client_id

logger = logging.getLogger(__name__)


def _find(records: list[Record], record_id: str) -> Optional[int]:
    for index, record in enumerate(records):
        if record.id == record_id:
            return index
    return None


def _check_field_names(fields: dict[str, Any]) -> None:
    for name in fields:
        if name in RESERVED_FIELDS:
            raise ValidationError(reserved_field(name))


class RecordService:
    """Service for changing cached records while online or offline.

    Every change is applied to the local cache first and queued. When the
    store is online the new queue entry is pushed immediately; otherwise it
    waits for the next sync.
    """

    def __init__(
        self,
        store: LocalStore,
        queue: OfflineQueue,
        engine: Optional[SyncEngine] = None,
        bus: Optional[NotificationBus] = None,
    ):
        """Initialize record service.

        Args:
            store: Local durable store
            queue: Offline mutation queue
            engine: Sync engine used for immediate writes; None keeps everything queued
            bus: Optional notification bus
        """
        self.store = store
        self.queue = queue
        self.engine = engine
        self.bus = bus

    def list_records(self, collection: Collection, owner_id: str) -> list[Record]:
        """List cached records of an owner, newest first."""
        records = self.store.load().records(collection)
        owned = [r for r in records if r.owner_id == owner_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    def get_record(self, collection: Collection, record_id: str) -> Optional[Record]:
        """Get a cached record by id, or None if not cached."""
        for record in self.store.load().records(collection):
            if record.id == record_id:
                return record
        return None

    async def create_record(self, collection: Collection, owner_id: str, fields: dict[str, Any]) -> Record:
        """Create a record with a temporary id and queue its creation.

        Returns:
            The record as cached. Its id is temporary until the remote store
            confirms the create.

        Raises:
            ValidationError: If a field name is reserved for record metadata
        """
        collection = Collection(collection)
        _check_field_names(fields)
        now = datetime.now(UTC)
        record = Record(
            id=generate_temp_id(),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            fields=dict(fields),
            client_id=new_client_id(),
        )
        with self.store.mutate() as state:
            state.records(collection).append(record)
            entry = self.queue.append_to(state, OperationKind.CREATE, collection, record, owner_id)

        await self._push_or_report(entry, collection)
        return self.get_record(collection, record.id) or self._confirmed(collection, record)

    def _confirmed(self, collection: Collection, record: Record) -> Record:
        """Find a record after its temporary id was replaced."""
        for cached in self.store.load().records(collection):
            if cached.client_id == record.client_id:
                return cached
        return record

    async def update_record(
        self, collection: Collection, record_id: str, owner_id: str, changes: dict[str, Any]
    ) -> Record:
        """Apply field changes to a cached record and queue the update.

        Updates to a record that was never confirmed are folded into its
        pending create.

        Raises:
            NotFoundError: If the record is not cached
            ValidationError: If a field name is reserved for record metadata
        """
        collection = Collection(collection)
        _check_field_names(changes)
        entry: Optional[QueueEntry] = None
        with self.store.mutate() as state:
            records = state.records(collection)
            index = _find(records, record_id)
            if index is None:
                raise NotFoundError(record_not_found(collection.value, record_id))
            updated = dataclasses.replace(
                records[index],
                fields={**records[index].fields, **changes},
                updated_at=datetime.now(UTC),
            )
            records[index] = updated

            if is_temp_id(record_id):
                entry, folded = self._fold_into_create(state, record_id, updated)
                if not folded:
                    entry = self.queue.append_to(state, OperationKind.CREATE, collection, updated, owner_id)
            else:
                entry = self.queue.append_to(state, OperationKind.UPDATE, collection, updated, owner_id)

        if entry is not None:
            await self._push_or_report(entry, collection)
        return self.get_record(collection, record_id) or self._confirmed(collection, updated)

    @staticmethod
    def _fold_into_create(
        state: StoreState, record_id: str, updated: Record
    ) -> tuple[Optional[QueueEntry], bool]:
        """Replace the payload of the record's pending or failed create.

        Returns:
            Tuple of (pending create to push or None, whether any create was found)
        """
        pending = None
        folded = False
        for entries in (state.pending_queue, state.failed_operations):
            for i, entry in enumerate(entries):
                if entry.payload.id == record_id and entry.operation_kind is OperationKind.CREATE:
                    entries[i] = dataclasses.replace(entry, payload=updated)
                    folded = True
                    if entries is state.pending_queue:
                        pending = entries[i]
        return pending, folded

    async def delete_record(self, collection: Collection, record_id: str, owner_id: str) -> None:
        """Remove a record from the cache and queue its remote deletion.

        A record that was never confirmed is simply dropped together with its
        pending operations.
        """
        collection = Collection(collection)
        entry: Optional[QueueEntry] = None
        with self.store.mutate() as state:
            records = state.records(collection)
            index = _find(records, record_id)
            if index is not None:
                payload = records.pop(index)
            else:
                now = datetime.now(UTC)
                payload = Record(id=record_id, owner_id=owner_id, created_at=now, updated_at=now)

            if is_temp_id(record_id):
                state.pending_queue = [e for e in state.pending_queue if e.payload.id != record_id]
                state.failed_operations = [
                    e for e in state.failed_operations if e.payload.id != record_id
                ]
            else:
                entry = self.queue.append_to(state, OperationKind.DELETE, collection, payload, owner_id)

        if entry is not None:
            await self._push_or_report(entry, collection)

    async def _push_or_report(self, entry: QueueEntry, collection: Collection) -> None:
        if self.engine is not None and self.store.load().is_online:
            if await self.engine.push_entry(entry):
                return
        elif self.bus is not None:
            self.bus.info_once(
                f"{collection.value}-offline",
                f"Change to {collection.value} saved offline. It will sync when the connection returns.",
                ttl_ms=5000,
            )
        logger.info("%s on %s kept in offline queue", entry.operation_kind.value, collection.value)
