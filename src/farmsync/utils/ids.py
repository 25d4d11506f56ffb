"""Identifier generation for offline records and queue entries."""

import random
import string
import time
import uuid

TEMP_ID_PREFIX = "offline_"

_BASE36 = string.digits + string.ascii_lowercase


def generate_temp_id() -> str:
    """Return an id of the form ``offline_<epoch-ms>_<9 base36 chars>``.

    Collisions are unlikely but not cryptographically excluded.
    """
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}_{suffix}"


def is_temp_id(record_id: str) -> bool:
    """Check whether an id was assigned locally and is not yet confirmed."""
    return record_id.startswith(TEMP_ID_PREFIX)


def new_client_id() -> str:
    """Return a stable client-side identity for a new record."""
    return uuid.uuid4().hex
