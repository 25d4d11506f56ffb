"""Local durable store: the offline blob kept in key-value storage."""

import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from farmsync.database.base import KeyValueStorage
from farmsync.database.mappers import state_from_dict, state_to_dict
from farmsync.database.schema import upgrade
from farmsync.domain.entities import StoreState
from farmsync.domain.errors import ValidationError, invalid_offline_data

logger = logging.getLogger(__name__)

STORAGE_KEY = "farmsync_offline_data"


class LocalStore:
    """Single source of truth for cached records and pending operations.

    The whole store is read, modified and written back as one blob, so the
    last writer wins. ``mutate()`` serializes read-modify-write cycles across
    threads; callers on one event loop never interleave because load and save
    do not suspend.
    """

    def __init__(self, storage: KeyValueStorage, initially_online: bool = True):
        """Initialize the store.

        Args:
            storage: Key-value storage holding the blob
            initially_online: Connectivity reported for a fresh, empty store
        """
        self.storage = storage
        self.initially_online = initially_online
        self._lock = threading.RLock()

    def _empty(self) -> StoreState:
        return StoreState(is_online=self.initially_online)

    def load(self) -> StoreState:
        """Read the persisted store, or an empty one if absent or unreadable."""
        with self._lock:
            raw = self.storage.get_item(STORAGE_KEY)
            if raw is None:
                return self._empty()
            try:
                return self._decode(raw)
            except ValueError as e:
                logger.warning("Discarding unreadable offline data: %s", e)
                return self._empty()

    def save(self, state: StoreState) -> None:
        """Serialize and write the whole store."""
        with self._lock:
            self.storage.set_item(STORAGE_KEY, json.dumps(state_to_dict(state)))

    @contextmanager
    def mutate(self) -> Iterator[StoreState]:
        """Load the store, yield it for in-place changes, then save it.

        Nothing is saved if the block raises.
        """
        with self._lock:
            state = self.load()
            yield state
            self.save(state)

    def export(self) -> str:
        """Return the whole store as pretty-printed JSON for backup."""
        return json.dumps(state_to_dict(self.load()), indent=2)

    def import_data(self, text: str) -> StoreState:
        """Overwrite the whole store with a previously exported blob.

        Raises:
            ValidationError: If the text is not a readable offline blob
        """
        try:
            state = self._decode(text)
        except ValueError as e:
            raise ValidationError(invalid_offline_data(str(e)))
        self.save(state)
        logger.info("Imported offline data")
        return state

    def clear(self) -> None:
        """Remove all offline data."""
        with self._lock:
            self.storage.remove_item(STORAGE_KEY)

    @staticmethod
    def _decode(raw: str) -> StoreState:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON ({e})")
        if not isinstance(data, dict):
            raise ValueError("top-level value is not an object")
        try:
            data = upgrade(data)
        except (KeyError, TypeError, AttributeError, OverflowError, OSError) as e:
            raise ValueError(f"cannot migrate ({type(e).__name__}: {e})")
        return state_from_dict(data)
