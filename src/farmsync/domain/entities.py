"""Domain model entities for farmsync.

These are pure data classes describing cached records, queued mutations and
sync bookkeeping, independent of how the local blob or the remote document
store encode them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Collection(str, Enum):
    """Remote collections that take part in offline sync."""

    TRANSACTIONS = "transactions"
    BUDGETS = "budgets"
    CUSTOMERS = "customers"


class OperationKind(str, Enum):
    """Kind of mutation held in the offline queue."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class NotificationKind(str, Enum):
    """Severity of a user-facing notification."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# Entity-specific fields that hold timestamps, per collection.
TIMESTAMP_FIELDS: dict[Collection, tuple[str, ...]] = {
    Collection.TRANSACTIONS: ("date", "dueDate"),
    Collection.BUDGETS: ("startDate", "endDate"),
    Collection.CUSTOMERS: ("lastSaleDate",),
}

# Keys that describe the record itself and cannot be used as field names.
RESERVED_FIELDS = frozenset({"id", "ownerId", "clientId", "createdAt", "updatedAt"})

# Maximum number of documents fetched per collection on pull.
QUERY_LIMITS: dict[Collection, int] = {
    Collection.TRANSACTIONS: 100,
    Collection.BUDGETS: 50,
    Collection.CUSTOMERS: 50,
}


@dataclass(frozen=True)
class Record:
    """Cached domain record (transaction, budget or customer).

    ``fields`` holds the entity-specific payload. Timestamp fields listed in
    ``TIMESTAMP_FIELDS`` are timezone-aware datetimes.
    """

    id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime
    fields: dict[str, Any] = field(default_factory=dict)
    client_id: Optional[str] = None


@dataclass(frozen=True)
class QueueEntry:
    """A mutation not yet confirmed by the remote store."""

    id: str
    operation_kind: OperationKind
    target_collection: Collection
    payload: Record
    enqueued_at: datetime
    owner_id: str
    retry_count: int = 0


@dataclass
class StoreState:
    """Everything persisted in the local offline blob."""

    transactions: list[Record] = field(default_factory=list)
    budgets: list[Record] = field(default_factory=list)
    customers: list[Record] = field(default_factory=list)
    pending_queue: list[QueueEntry] = field(default_factory=list)
    failed_operations: list[QueueEntry] = field(default_factory=list)
    last_sync_at: Optional[datetime] = None
    is_online: bool = True

    def records(self, collection: Collection) -> list[Record]:
        """Return the cached records of a collection."""
        return getattr(self, Collection(collection).value)

    def set_records(self, collection: Collection, records: list[Record]) -> None:
        """Replace the cached records of a collection."""
        setattr(self, Collection(collection).value, list(records))


@dataclass(frozen=True)
class SyncStatus:
    """Projection of the store and engine state; never persisted."""

    is_online: bool
    is_syncing: bool
    last_sync: Optional[datetime]
    pending_operations: int
    failed_operations: int
    sync_error: Optional[str]


@dataclass(frozen=True)
class DrainResult:
    """Outcome counts of one pass over the pending queue."""

    synced: int = 0
    failed: int = 0
    dropped: int = 0


@dataclass(frozen=True)
class PullResult:
    """Records returned by a pull, per collection."""

    transactions: list[Record]
    budgets: list[Record]
    customers: list[Record]

    def for_collection(self, collection: Collection) -> list[Record]:
        return getattr(self, Collection(collection).value)


@dataclass(frozen=True)
class SyncReport:
    """Result of a full drain-then-pull run."""

    drain: DrainResult
    pull: Optional[PullResult]


@dataclass(frozen=True)
class Notification:
    """User-facing event carried by the notification bus."""

    key: str
    message: str
    kind: NotificationKind
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    persistent: bool = False
