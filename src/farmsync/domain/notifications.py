"""De-duplicating notification bus for sync and connectivity events."""

import logging
import threading
import time
from typing import Callable, Optional

from farmsync.domain.entities import Notification, NotificationKind

logger = logging.getLogger(__name__)

Subscriber = Callable[[Notification], None]

DEFAULT_TTL_MS = {
    NotificationKind.ERROR: 5000,
    NotificationKind.WARNING: 5000,
    NotificationKind.INFO: 3000,
}


class NotificationBus:
    """Broadcasts notifications, suppressing repeats of an active key.

    A key stays active for its TTL after being emitted; further emissions
    with that key are dropped until it expires. Every subscriber receives
    every notification, in subscription order.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize the bus.

        Args:
            clock: Monotonic clock in seconds, injectable for tests
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []
        self._active: dict[str, float] = {}

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    def is_active(self, key: str) -> bool:
        """Check whether key was emitted and has not yet expired."""
        with self._lock:
            self._evict_expired()
            return key in self._active

    def _evict_expired(self) -> None:
        now = self._clock()
        for key in [k for k, expires_at in self._active.items() if expires_at <= now]:
            del self._active[key]

    def emit_once(
        self,
        key: str,
        message: str,
        kind: NotificationKind,
        ttl_ms: int,
        action_url: Optional[str] = None,
        action_text: Optional[str] = None,
        persistent: bool = False,
    ) -> None:
        """Broadcast a notification unless key is still active.

        Args:
            key: De-duplication key
            message: Text shown to the user
            kind: Severity
            ttl_ms: How long the key suppresses repeats
            action_url: Optional link offered with the notification
            action_text: Label for action_url
            persistent: Ask renderers not to auto-dismiss it
        """
        with self._lock:
            self._evict_expired()
            if key in self._active:
                logger.debug("Suppressed duplicate notification '%s'", key)
                return
            self._active[key] = self._clock() + ttl_ms / 1000
            subscribers = list(self._subscribers)

        notification = Notification(
            key=key,
            message=message,
            kind=NotificationKind(kind),
            action_url=action_url,
            action_text=action_text,
            persistent=persistent,
        )
        log = {
            NotificationKind.ERROR: logger.error,
            NotificationKind.WARNING: logger.warning,
            NotificationKind.INFO: logger.info,
        }[notification.kind]
        log("%s", message)

        for subscriber in subscribers:
            try:
                subscriber(notification)
            except Exception as exc:
                logger.error("Notification subscriber failed for '%s': %s", key, exc)

    def error_once(self, key: str, message: str, ttl_ms: Optional[int] = None, **kwargs) -> None:
        self.emit_once(
            key, message, NotificationKind.ERROR,
            DEFAULT_TTL_MS[NotificationKind.ERROR] if ttl_ms is None else ttl_ms, **kwargs
        )

    def warning_once(self, key: str, message: str, ttl_ms: Optional[int] = None, **kwargs) -> None:
        self.emit_once(
            key, message, NotificationKind.WARNING,
            DEFAULT_TTL_MS[NotificationKind.WARNING] if ttl_ms is None else ttl_ms, **kwargs
        )

    def info_once(self, key: str, message: str, ttl_ms: Optional[int] = None, **kwargs) -> None:
        self.emit_once(
            key, message, NotificationKind.INFO,
            DEFAULT_TTL_MS[NotificationKind.INFO] if ttl_ms is None else ttl_ms, **kwargs
        )

    def clear(self) -> None:
        """Forget all active keys."""
        with self._lock:
            self._active.clear()
