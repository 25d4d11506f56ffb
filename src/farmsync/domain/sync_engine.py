"""Sync engine: pushes the offline queue and pulls remote state."""

import asyncio
import dataclasses
import logging
from contextlib import contextmanager
from datetime import datetime, UTC
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterator, Optional

from farmsync.config import SyncSettings
from farmsync.database.base import RemoteStore
from farmsync.database.local_store import LocalStore
from farmsync.domain.entities import (
    QUERY_LIMITS,
    Collection,
    DrainResult,
    OperationKind,
    PullResult,
    QueueEntry,
    Record,
    StoreState,
    SyncReport,
    SyncStatus,
)
from farmsync.domain.error_classifier import (
    FALLBACK_KINDS,
    ErrorKind,
    classify,
    describe,
    index_url,
)
from farmsync.domain.errors import NotFoundError, RemoteSyncError
from farmsync.domain.notifications import NotificationBus
from farmsync.domain.offline_queue import OfflineQueue
from farmsync.utils.ids import is_temp_id

logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus], None]

_SYNCED, _FAILED, _DROPPED = "synced", "failed", "dropped"


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class SyncEngine:
    """Reconciles the local store with the remote store in both directions.

    ``attempt_sync`` is the entry point for reconnects and manual syncs; it
    never overlaps with itself and always pushes before pulling so queued
    local changes are not overwritten by the pull.
    """

    def __init__(
        self,
        store: LocalStore,
        queue: OfflineQueue,
        remote: RemoteStore,
        bus: NotificationBus,
        settings: Optional[SyncSettings] = None,
    ):
        """Initialize the engine.

        Args:
            store: Local durable store
            queue: Offline mutation queue on the same store
            remote: Remote access facade
            bus: Notification bus for user-facing events
            settings: Timeouts and de-duplication window
        """
        self.store = store
        self.queue = queue
        self.remote = remote
        self.bus = bus
        self.settings = settings or SyncSettings()
        self._lock = asyncio.Lock()
        self._active_runs = 0
        self._in_flight: set[str] = set()
        self._sync_error: Optional[str] = None
        self._listeners: list[StatusListener] = []

    # Status

    def status(self) -> SyncStatus:
        """Compute the current sync status from the store and engine state."""
        state = self.store.load()
        return SyncStatus(
            is_online=state.is_online,
            is_syncing=self._lock.locked() or self._active_runs > 0,
            last_sync=state.last_sync_at,
            pending_operations=len(state.pending_queue),
            failed_operations=len(state.failed_operations),
            sync_error=self._sync_error,
        )

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        """Send the current status to every registered listener."""
        if not self._listeners:
            return
        status = self.status()
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as exc:
                logger.error("Sync status listener failed: %s", exc)

    @contextmanager
    def _running(self) -> Iterator[None]:
        self._active_runs += 1
        self.notify_listeners()
        try:
            yield
        finally:
            self._active_runs -= 1
            self.notify_listeners()

    # Remote calls

    async def _call(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.settings.remote_timeout)

    async def _apply(self, entry: QueueEntry) -> Optional[str]:
        collection = entry.target_collection
        record = entry.payload
        if entry.operation_kind is OperationKind.CREATE:
            return await self._call(self.remote.create(collection, record))
        if entry.operation_kind is OperationKind.UPDATE:
            await self._call(self.remote.update(collection, record.id, dict(record.fields)))
        elif entry.operation_kind is OperationKind.DELETE:
            await self._call(self.remote.delete(collection, record.id))
        return None

    # Queue processing

    async def _process(self, entry: QueueEntry, count_failure: bool = True) -> str:
        """Apply one entry remotely and record the outcome in the queue."""
        self._in_flight.add(entry.id)
        try:
            remote_id = await self._apply(entry)
        except Exception as error:
            kind = classify(error)
            logger.warning(
                "Error syncing %s on %s (%s, %s): %s",
                entry.operation_kind.value,
                entry.target_collection.value,
                entry.id,
                kind.value,
                error,
            )
            if not count_failure:
                self._notify_write_failure(error)
                return _FAILED
            try:
                updated, dropped = self.queue.record_failure(entry.id)
            except NotFoundError:
                return _FAILED
            if dropped:
                self._report_dropped(updated, error)
                return _DROPPED
            self._notify_write_failure(error)
            return _FAILED
        finally:
            self._in_flight.discard(entry.id)

        self._confirm(entry, remote_id)
        logger.info(
            "Synced %s on %s (%s)", entry.operation_kind.value, entry.target_collection.value, entry.id
        )
        return _SYNCED

    def _confirm(self, sent: QueueEntry, remote_id: Optional[str]) -> None:
        """Dequeue a confirmed entry and swap a temporary id for the remote one."""
        with self.store.mutate() as state:
            current = next((e for e in state.pending_queue if e.id == sent.id), None)
            if current is None:
                if sent.operation_kind is OperationKind.CREATE and remote_id is not None:
                    self._delete_if_discarded(state, sent, remote_id)
                return
            index = state.pending_queue.index(current)

            if sent.operation_kind is not OperationKind.CREATE or remote_id is None:
                del state.pending_queue[index]
                return

            temp_id = sent.payload.id
            if current.payload != sent.payload:
                # Edited while the create was in flight: push the newer fields
                state.pending_queue[index] = dataclasses.replace(
                    current,
                    operation_kind=OperationKind.UPDATE,
                    payload=dataclasses.replace(current.payload, id=remote_id),
                    retry_count=0,
                )
            else:
                del state.pending_queue[index]
            self._reconcile_id(state, sent.target_collection, temp_id, remote_id)

    def _delete_if_discarded(self, state: StoreState, sent: QueueEntry, remote_id: str) -> None:
        """Queue removal of a remote document whose local record was deleted mid-create."""
        record = sent.payload
        for cached in state.records(sent.target_collection):
            if cached.id == record.id or (record.client_id and cached.client_id == record.client_id):
                return
        self.queue.append_to(
            state,
            OperationKind.DELETE,
            sent.target_collection,
            dataclasses.replace(record, id=remote_id),
            sent.owner_id,
        )
        logger.info("Record %s was deleted while being created; queued delete of %s", record.id, remote_id)

    @staticmethod
    def _reconcile_id(state: StoreState, collection: Collection, temp_id: str, remote_id: str) -> None:
        records = state.records(collection)
        for i, record in enumerate(records):
            if record.id == temp_id:
                records[i] = dataclasses.replace(record, id=remote_id)
        for entries in (state.pending_queue, state.failed_operations):
            for i, entry in enumerate(entries):
                if entry.payload.id == temp_id:
                    entries[i] = dataclasses.replace(
                        entry, payload=dataclasses.replace(entry.payload, id=remote_id)
                    )
        logger.debug("Reconciled %s -> %s in %s", temp_id, remote_id, collection.value)

    def _notify_write_failure(self, error: Exception) -> None:
        kind = classify(error)
        message = describe(error, self.settings.locale)
        if kind in FALLBACK_KINDS:
            self.bus.warning_once(
                f"sync-{kind.value}",
                f"{message} Changes are saved offline and will sync automatically.",
                ttl_ms=8000,
            )
        else:
            self.bus.error_once(
                f"sync-error-{kind.value}",
                f"Error: {message} Changes are saved offline.",
                ttl_ms=8000,
            )

    def _report_dropped(self, entry: QueueEntry, error: Exception) -> None:
        self.bus.error_once(
            f"sync-dropped-{entry.id}",
            (
                f"A {entry.operation_kind.value.lower()} on {entry.target_collection.value} "
                f"could not be synced after {entry.retry_count} attempts and was moved to "
                f"failed operations: {describe(error, self.settings.locale)}"
            ),
            ttl_ms=60000,
            persistent=True,
        )

    async def push_entry(self, entry: QueueEntry) -> bool:
        """Try to write a freshly queued entry right away.

        A failure leaves the entry queued without using up a retry.

        Returns:
            True if the remote store confirmed the entry
        """
        if not self.store.load().is_online or entry.id in self._in_flight:
            return False
        current = self.queue.get(entry.id)
        if current is None:
            return False
        outcome = await self._process(current, count_failure=False)
        self.notify_listeners()
        return outcome == _SYNCED

    async def drain_queue(self) -> DrainResult:
        """Apply every pending entry to the remote store, in queue order.

        A failing entry does not stop the pass. No-op while offline.
        """
        state = self.store.load()
        if not state.is_online:
            logger.info("Offline; skipping queue drain")
            return DrainResult()
        if not state.pending_queue:
            logger.debug("No pending operations to sync")
            return DrainResult()

        logger.info("Syncing %d pending operations", len(state.pending_queue))
        counts = {_SYNCED: 0, _FAILED: 0, _DROPPED: 0}
        with self._running():
            for snapshot in state.pending_queue:
                if snapshot.id in self._in_flight:
                    continue
                # Earlier confirmations may have rewritten this entry's ids
                entry = self.queue.get(snapshot.id)
                if entry is None:
                    continue
                counts[await self._process(entry)] += 1

            if counts[_SYNCED]:
                with self.store.mutate() as current:
                    current.last_sync_at = datetime.now(UTC)

        result = DrainResult(synced=counts[_SYNCED], failed=counts[_FAILED], dropped=counts[_DROPPED])
        logger.info(
            "Queue drain complete: %d synced, %d failed, %d dropped",
            result.synced,
            result.failed,
            result.dropped,
        )
        if result.synced:
            self.bus.info_once(
                "sync-to-remote-success", f"{result.synced} operations synced to remote", ttl_ms=3000
            )
        return result

    # Pull

    def _same_record(self, remote: Record, local: Record) -> bool:
        """Decide whether a local record is the remote one after a round trip.

        Records carrying a client id match on it. Older records without one
        fall back to equal amount and description within the time window.
        """
        if remote.client_id and local.client_id:
            return remote.client_id == local.client_id
        amount = _as_decimal(remote.fields.get("amount"))
        if amount is None or amount != _as_decimal(local.fields.get("amount")):
            return False
        if remote.fields.get("description") != local.fields.get("description"):
            return False
        remote_time = remote.fields.get("date") or remote.created_at
        local_time = local.fields.get("date") or local.created_at
        if not isinstance(remote_time, datetime) or not isinstance(local_time, datetime):
            return False
        return abs((remote_time - local_time).total_seconds()) <= self.settings.dedup_window_seconds

    def _merge(
        self, state: StoreState, collection: Collection, owner_id: str, remote_records: list[Record]
    ) -> list[Record]:
        local_records = list(state.records(collection))
        others = [r for r in local_records if r.owner_id != owner_id]
        unconfirmed = []
        for local in local_records:
            if local.owner_id != owner_id or not is_temp_id(local.id):
                continue
            match = next((remote for remote in remote_records if self._same_record(remote, local)), None)
            if match is None:
                unconfirmed.append(local)
            elif local.client_id and match.client_id == local.client_id:
                self._adopt(state, collection, local, match)
        merged = sorted(remote_records + unconfirmed, key=lambda r: r.created_at, reverse=True)
        return merged + others

    def _adopt(self, state: StoreState, collection: Collection, local: Record, remote: Record) -> None:
        """Settle the queued create of a record the remote store already holds.

        This happens when a create committed remotely but its reply was lost,
        for example to a timeout. The create is dropped, or turned into an
        update when the local record changed since.
        """

        def settle(entries: list[QueueEntry]) -> list[QueueEntry]:
            kept = []
            for entry in entries:
                if entry.payload.id == local.id and entry.operation_kind is OperationKind.CREATE:
                    if entry.payload.fields == remote.fields:
                        continue
                    entry = dataclasses.replace(entry, operation_kind=OperationKind.UPDATE, retry_count=0)
                kept.append(entry)
            return kept

        state.pending_queue = settle(state.pending_queue)
        state.failed_operations = settle(state.failed_operations)
        self._reconcile_id(state, collection, local.id, remote.id)

    async def pull_from_remote(self, owner_id: str) -> PullResult:
        """Replace the cached collections of owner_id with remote state.

        Local records that are still unconfirmed stay in the cache. When the
        remote store is blocked, unreachable or missing an index, the cached
        data is returned unchanged.

        Raises:
            RemoteSyncError: On backend or unknown errors
        """
        with self._running():
            self._sync_error = None
            try:
                pulled = {}
                for collection in Collection:
                    records = await self._call(
                        self.remote.query(collection, owner_id, limit=QUERY_LIMITS[collection])
                    )
                    pulled[collection] = records
            except Exception as error:
                return self._pull_failed(error)

            with self.store.mutate() as state:
                for collection, records in pulled.items():
                    state.set_records(collection, self._merge(state, collection, owner_id, records))
                state.last_sync_at = datetime.now(UTC)
                result = PullResult(
                    transactions=list(state.transactions),
                    budgets=list(state.budgets),
                    customers=list(state.customers),
                )

        logger.info(
            "Loaded from remote: %d transactions, %d budgets, %d customers",
            len(pulled[Collection.TRANSACTIONS]),
            len(pulled[Collection.BUDGETS]),
            len(pulled[Collection.CUSTOMERS]),
        )
        self.bus.info_once(
            "remote-sync-success",
            (
                f"Synced {len(pulled[Collection.TRANSACTIONS])} transactions, "
                f"{len(pulled[Collection.BUDGETS])} budgets from remote"
            ),
            ttl_ms=3000,
        )
        return result

    def _pull_failed(self, error: Exception) -> PullResult:
        kind = classify(error)
        message = describe(error, self.settings.locale)
        self._sync_error = message
        logger.warning("Error loading data from remote (%s): %s", kind.value, error)

        if kind not in FALLBACK_KINDS:
            self.bus.error_once(f"remote-connection-{kind.value}", message, ttl_ms=10000)
            raise RemoteSyncError(message, kind) from error

        url = index_url(error)
        self.bus.warning_once(
            f"remote-connection-{kind.value}",
            f"{message} Using offline data.",
            ttl_ms=15000 if kind is ErrorKind.MISSING_INDEX else 10000,
            action_url=url,
            action_text="Configure index" if url else None,
        )
        state = self.store.load()
        return PullResult(
            transactions=state.transactions,
            budgets=state.budgets,
            customers=state.customers,
        )

    # Orchestration

    async def attempt_sync(self, owner_id: str) -> Optional[SyncReport]:
        """Drain the queue, then pull remote state.

        Returns:
            SyncReport, or None when offline or another sync is running
        """
        if self._lock.locked():
            logger.debug("Sync already in progress; skipping")
            return None
        if not self.store.load().is_online:
            return None

        async with self._lock:
            drain = await self.drain_queue()
            try:
                pull = await self.pull_from_remote(owner_id)
            except RemoteSyncError as e:
                logger.error("Automatic sync failed: %s", e)
                pull = None
        self.notify_listeners()
        return SyncReport(drain=drain, pull=pull)
