"""Schema versioning of the local offline blob.

Version 0 is the unversioned format written by the web dashboard:

- ``lastSync`` as epoch milliseconds (0 meaning never synced)
- queue items with ``type``, ``collection``, ``data``, ``timestamp`` (ms)
  and ``userId``
- records owned through ``userId``

Version 1 adds ``schemaVersion`` and ``failedOperations`` and uses the key
names of ``farmsync.database.mappers``.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Callable

from farmsync.database.mappers import CURRENT_SCHEMA_VERSION
from farmsync.utils.date_parser import coerce_timestamp, to_iso

logger = logging.getLogger(__name__)


def _migrate_record_v0(record: dict[str, Any]) -> dict[str, Any]:
    migrated = dict(record)
    if "ownerId" not in migrated:
        migrated["ownerId"] = migrated.pop("userId", "")
    now = to_iso(datetime.now(UTC))
    for key in ("createdAt", "updatedAt"):
        value = migrated.get(key)
        migrated[key] = to_iso(coerce_timestamp(value)) if value is not None else now
    migrated.setdefault("clientId", None)
    return migrated


def _migrate_queue_item_v0(item: dict[str, Any]) -> dict[str, Any]:
    timestamp = item.get("timestamp")
    enqueued_at = coerce_timestamp(timestamp) if timestamp is not None else datetime.now(UTC)
    return {
        "id": item["id"],
        "operationKind": item["type"],
        "targetCollection": item["collection"],
        "payload": _migrate_record_v0(item.get("data") or {}),
        "enqueuedAt": to_iso(enqueued_at),
        "retryCount": item.get("retryCount", 0),
        "ownerId": item.get("userId", ""),
    }


def migrate_v0_to_v1(data: dict[str, Any]) -> dict[str, Any]:
    """Convert the unversioned web dashboard blob to version 1."""
    last_sync = data.get("lastSync")
    migrated: dict[str, Any] = {
        "schemaVersion": 1,
        "pendingQueue": [_migrate_queue_item_v0(i) for i in data.get("pendingQueue", [])],
        "failedOperations": [],
        "lastSyncAt": to_iso(coerce_timestamp(last_sync)) if last_sync else None,
        "isOnline": data.get("isOnline", True),
    }
    for name in ("transactions", "budgets", "customers"):
        migrated[name] = [_migrate_record_v0(r) for r in data.get(name, [])]
    return migrated


MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    0: migrate_v0_to_v1,
}


def upgrade(data: dict[str, Any]) -> dict[str, Any]:
    """Apply migrations until the blob reaches the current schema version.

    Raises:
        ValueError: If the blob is newer than this code understands
    """
    version = data.get("schemaVersion", 0)
    if not isinstance(version, int) or version > CURRENT_SCHEMA_VERSION:
        raise ValueError(f"unsupported schema version {version!r}")

    while version < CURRENT_SCHEMA_VERSION:
        logger.info("Migrating offline data from schema version %d", version)
        data = MIGRATIONS[version](data)
        version = data["schemaVersion"]
    return data
