"""Shared pytest fixtures for farmsync tests."""

import asyncio
import dataclasses
import os
import tempfile
from datetime import datetime, UTC
from typing import Any, Optional

import pytest

from farmsync.config import SyncSettings
from farmsync.database.base import RemoteStore
from farmsync.database.factories import create_sqlite_storage
from farmsync.database.local_store import LocalStore
from farmsync.domain.entities import Collection, Record
from farmsync.domain.errors import RemoteNotFoundError
from farmsync.domain.notifications import NotificationBus
from farmsync.domain.offline_queue import OfflineQueue
from farmsync.domain.records import RecordService
from farmsync.domain.sync_engine import SyncEngine


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemoteStore(RemoteStore):
    """In-memory remote store with scripted failures.

    ``fail_next`` queues errors for the next calls of an operation and
    ``fail_always`` makes an operation fail until ``recover`` is called.
    Setting ``gate`` to an unset asyncio.Event holds every call until it is set.
    ``reply_delay`` makes a create commit first and answer that many seconds later.
    """

    def __init__(self):
        self.documents: dict[Collection, dict[str, Record]] = {c: {} for c in Collection}
        self.calls: list[tuple[str, Collection, str]] = []
        self.gate: Optional[asyncio.Event] = None
        self.reply_delay = 0.0
        self._scripted: dict[str, list[Exception]] = {}
        self._always: dict[str, Exception] = {}
        self._next_id = 0

    def fail_next(self, error: Exception, operation: str = "*", times: int = 1) -> None:
        self._scripted.setdefault(operation, []).extend([error] * times)

    def fail_always(self, error: Exception, operation: str = "*") -> None:
        self._always[operation] = error

    def recover(self) -> None:
        self._scripted.clear()
        self._always.clear()

    def seed(self, collection: Collection, record: Record) -> Record:
        self.documents[collection][record.id] = record
        return record

    async def _enter(self, operation: str, collection: Collection, target: str) -> None:
        self.calls.append((operation, collection, target))
        if self.gate is not None:
            await self.gate.wait()
        for key in (operation, "*"):
            if key in self._always:
                raise self._always[key]
            if self._scripted.get(key):
                raise self._scripted[key].pop(0)

    async def create(self, collection: Collection, record: Record) -> str:
        await self._enter("create", collection, record.id)
        self._next_id += 1
        document_id = f"remote-{self._next_id}"
        self.documents[collection][document_id] = dataclasses.replace(record, id=document_id)
        if self.reply_delay:
            await asyncio.sleep(self.reply_delay)
        return document_id

    async def update(self, collection: Collection, document_id: str, patch: dict[str, Any]) -> None:
        await self._enter("update", collection, document_id)
        document = self.documents[collection].get(document_id)
        if document is None:
            raise RemoteNotFoundError(f"Document '{document_id}' not found")
        self.documents[collection][document_id] = dataclasses.replace(
            document, fields={**document.fields, **patch}, updated_at=datetime.now(UTC)
        )

    async def delete(self, collection: Collection, document_id: str) -> None:
        await self._enter("delete", collection, document_id)
        if self.documents[collection].pop(document_id, None) is None:
            raise RemoteNotFoundError(f"Document '{document_id}' not found")

    async def query(
        self,
        collection: Collection,
        owner_id: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        await self._enter("query", collection, owner_id)
        records = [r for r in self.documents[collection].values() if r.owner_id == owner_id]
        if filters:
            records = [r for r in records if all(r.fields.get(k) == v for k, v in filters.items())]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit] if limit is not None else records


@pytest.fixture
def temp_storage():
    """Create a temporary SQLite key-value storage."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    storage = create_sqlite_storage(database_path=db_path)
    # Store the path for tests that need it
    storage.database_path = db_path
    storage.connect()

    yield storage

    # Cleanup
    storage.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def temp_remote_url():
    """Create a temporary SQLite file for the remote document store."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    yield f"sqlite:///{db_path}"

    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def store(temp_storage):
    """Create a LocalStore on temporary storage."""
    return LocalStore(temp_storage)


@pytest.fixture
def offline_store(temp_storage):
    """Create a LocalStore that starts offline."""
    return LocalStore(temp_storage, initially_online=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus(clock):
    """Create a NotificationBus driven by the fake clock."""
    return NotificationBus(clock=clock)


@pytest.fixture
def notifications(bus):
    """Collect every notification delivered by the bus."""
    received = []
    bus.subscribe(received.append)
    return received


@pytest.fixture
def settings():
    return SyncSettings(remote_timeout=2.0)


@pytest.fixture
def offline_queue(store):
    """Create an OfflineQueue on the temporary store."""
    return OfflineQueue(store)


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def engine(store, offline_queue, remote, bus, settings):
    """Create a SyncEngine over the fake remote store."""
    return SyncEngine(store, offline_queue, remote, bus, settings)


@pytest.fixture
def record_service(store, offline_queue, engine, bus):
    """Create a RecordService wired to the sync engine."""
    return RecordService(store, offline_queue, engine, bus)


@pytest.fixture
def go_offline(store):
    """Return a helper that flips the stored connectivity flag to offline."""

    def _go_offline():
        with store.mutate() as state:
            state.is_online = False

    return _go_offline


@pytest.fixture
def make_record():
    """Return a factory for records with sensible defaults."""

    def _make_record(record_id="remote-1", owner_id="user-1", created_at=None, client_id=None, **fields):
        created_at = created_at or datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        return Record(
            id=record_id,
            owner_id=owner_id,
            created_at=created_at,
            updated_at=created_at,
            fields=fields,
            client_id=client_id,
        )

    return _make_record


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
