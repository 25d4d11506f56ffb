"""Mapper functions between domain entities and the local blob's JSON shape.

The blob keeps camelCase keys so it stays readable by the web dashboard that
shares the same storage format.
"""

from datetime import datetime
from typing import Any

from farmsync.domain import entities as domain
from farmsync.utils.date_parser import from_iso, to_iso

CURRENT_SCHEMA_VERSION = 1


def record_to_dict(record: domain.Record) -> dict[str, Any]:
    """Convert a Record to its blob representation."""
    data: dict[str, Any] = {
        name: to_iso(value) if isinstance(value, datetime) else value
        for name, value in record.fields.items()
        if name not in domain.RESERVED_FIELDS
    }
    data.update(
        {
            "id": record.id,
            "ownerId": record.owner_id,
            "clientId": record.client_id,
            "createdAt": to_iso(record.created_at),
            "updatedAt": to_iso(record.updated_at),
        }
    )
    return data


def record_from_dict(collection: domain.Collection, data: dict[str, Any]) -> domain.Record:
    """Convert a blob record back to a Record, parsing the collection's timestamp fields."""
    timestamp_fields = domain.TIMESTAMP_FIELDS[domain.Collection(collection)]
    fields = {}
    for name, value in data.items():
        if name in domain.RESERVED_FIELDS:
            continue
        if name in timestamp_fields and isinstance(value, str):
            value = from_iso(value)
        fields[name] = value
    return domain.Record(
        id=str(data["id"]),
        owner_id=str(data["ownerId"]),
        client_id=data.get("clientId"),
        created_at=from_iso(data["createdAt"]),
        updated_at=from_iso(data["updatedAt"]),
        fields=fields,
    )


def queue_entry_to_dict(entry: domain.QueueEntry) -> dict[str, Any]:
    """Convert a QueueEntry to its blob representation."""
    return {
        "id": entry.id,
        "operationKind": entry.operation_kind.value,
        "targetCollection": entry.target_collection.value,
        "payload": record_to_dict(entry.payload),
        "enqueuedAt": to_iso(entry.enqueued_at),
        "retryCount": entry.retry_count,
        "ownerId": entry.owner_id,
    }


def queue_entry_from_dict(data: dict[str, Any]) -> domain.QueueEntry:
    """Convert a blob queue entry back to a QueueEntry."""
    collection = domain.Collection(data["targetCollection"])
    return domain.QueueEntry(
        id=str(data["id"]),
        operation_kind=domain.OperationKind(data["operationKind"]),
        target_collection=collection,
        payload=record_from_dict(collection, data["payload"]),
        enqueued_at=from_iso(data["enqueuedAt"]),
        retry_count=int(data.get("retryCount", 0)),
        owner_id=str(data["ownerId"]),
    )


def state_to_dict(state: domain.StoreState) -> dict[str, Any]:
    """Convert the whole store to the versioned blob dictionary."""
    data: dict[str, Any] = {"schemaVersion": CURRENT_SCHEMA_VERSION}
    for collection in domain.Collection:
        data[collection.value] = [record_to_dict(r) for r in state.records(collection)]
    data["pendingQueue"] = [queue_entry_to_dict(e) for e in state.pending_queue]
    data["failedOperations"] = [queue_entry_to_dict(e) for e in state.failed_operations]
    data["lastSyncAt"] = to_iso(state.last_sync_at) if state.last_sync_at else None
    data["isOnline"] = state.is_online
    return data


def state_from_dict(data: dict[str, Any]) -> domain.StoreState:
    """Convert a current-version blob dictionary to a StoreState.

    Raises:
        ValueError: If the dictionary does not have the expected shape
    """
    try:
        state = domain.StoreState(
            pending_queue=[queue_entry_from_dict(e) for e in data.get("pendingQueue", [])],
            failed_operations=[
                queue_entry_from_dict(e) for e in data.get("failedOperations", [])
            ],
            last_sync_at=from_iso(data["lastSyncAt"]) if data.get("lastSyncAt") else None,
            is_online=bool(data.get("isOnline", True)),
        )
        for collection in domain.Collection:
            state.set_records(
                collection,
                [record_from_dict(collection, r) for r in data.get(collection.value, [])],
            )
    except (KeyError, TypeError, AttributeError, OverflowError, OSError) as e:
        raise ValueError(f"malformed store data ({type(e).__name__}: {e})")
    return state
