"""Offline mutation queue service."""

import dataclasses
import logging
from datetime import datetime, UTC
from typing import Iterable, Optional

from farmsync.database.local_store import LocalStore
from farmsync.domain.entities import Collection, OperationKind, QueueEntry, Record, StoreState
from farmsync.domain.errors import NotFoundError, queue_entry_not_found
from farmsync.utils.ids import generate_temp_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


class OfflineQueue:
    """Durable, ordered record of mutations not yet confirmed remotely.

    Entries that fail ``max_retries`` times leave the pending queue and are
    kept in the store's failed operations list, where they stay visible until
    re-queued or cleared.
    """

    def __init__(self, store: LocalStore, max_retries: int = DEFAULT_MAX_RETRIES):
        """Initialize queue.

        Args:
            store: Local durable store holding the queue
            max_retries: Failed attempts after which an entry is dropped
        """
        self.store = store
        self.max_retries = max_retries

    def enqueue(
        self,
        kind: OperationKind,
        collection: Collection,
        payload: Record,
        owner_id: str,
    ) -> QueueEntry:
        """Append a mutation and persist it.

        Returns:
            The new queue entry
        """
        with self.store.mutate() as state:
            return self.append_to(state, kind, collection, payload, owner_id)

    def append_to(
        self,
        state: StoreState,
        kind: OperationKind,
        collection: Collection,
        payload: Record,
        owner_id: str,
    ) -> QueueEntry:
        """Append a new entry to an already loaded store state.

        Used inside ``LocalStore.mutate()`` blocks so the cache change and
        its queue entry are saved together.
        """
        entry = QueueEntry(
            id=generate_temp_id(),
            operation_kind=OperationKind(kind),
            target_collection=Collection(collection),
            payload=payload,
            enqueued_at=datetime.now(UTC),
            owner_id=owner_id,
        )
        state.pending_queue.append(entry)
        logger.debug("Queued %s on %s (%s)", entry.operation_kind.value, entry.target_collection.value, entry.id)
        return entry

    def dequeue(self, entry_id: str) -> None:
        """Remove an entry after the remote store confirmed it."""
        with self.store.mutate() as state:
            state.pending_queue = [e for e in state.pending_queue if e.id != entry_id]

    def pending(self) -> list[QueueEntry]:
        """Return pending entries in drain order."""
        return list(self.store.load().pending_queue)

    def failed(self) -> list[QueueEntry]:
        """Return entries dropped after exhausting their retries."""
        return list(self.store.load().failed_operations)

    def get(self, entry_id: str) -> Optional[QueueEntry]:
        """Return a pending entry by id, or None if it is no longer queued."""
        for entry in self.store.load().pending_queue:
            if entry.id == entry_id:
                return entry
        return None

    def record_failure(self, entry_id: str) -> tuple[QueueEntry, bool]:
        """Count one failed attempt for an entry.

        Returns:
            Tuple of (updated entry, dropped). When dropped is True the entry
            has been moved from the pending queue to the failed operations.

        Raises:
            NotFoundError: If the entry is not pending
        """
        with self.store.mutate() as state:
            for index, entry in enumerate(state.pending_queue):
                if entry.id == entry_id:
                    break
            else:
                raise NotFoundError(queue_entry_not_found(entry_id))

            updated = dataclasses.replace(entry, retry_count=entry.retry_count + 1)
            dropped = updated.retry_count >= self.max_retries
            if dropped:
                del state.pending_queue[index]
                state.failed_operations.append(updated)
            else:
                state.pending_queue[index] = updated

        if dropped:
            logger.error(
                "Operation %s failed after %d attempts; moved to failed operations",
                entry_id,
                updated.retry_count,
            )
        return updated, dropped

    def requeue_failed(self, entry_ids: Optional[Iterable[str]] = None) -> int:
        """Move failed operations back to the pending queue with a fresh retry count.

        Args:
            entry_ids: Entries to re-queue; all failed operations when None

        Returns:
            Number of entries re-queued
        """
        wanted = set(entry_ids) if entry_ids is not None else None
        with self.store.mutate() as state:
            keep, requeue = [], []
            for entry in state.failed_operations:
                if wanted is None or entry.id in wanted:
                    requeue.append(dataclasses.replace(entry, retry_count=0))
                else:
                    keep.append(entry)
            state.failed_operations = keep
            state.pending_queue.extend(requeue)
        return len(requeue)

    def clear_failed(self) -> int:
        """Discard all failed operations. Returns how many were removed."""
        with self.store.mutate() as state:
            count = len(state.failed_operations)
            state.failed_operations = []
        return count
