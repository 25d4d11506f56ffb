"""Connectivity monitor bridging platform online/offline signals to the store."""

import asyncio
import logging
from typing import Optional

from farmsync.database.local_store import LocalStore
from farmsync.domain.entities import SyncReport
from farmsync.domain.notifications import NotificationBus
from farmsync.domain.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Records connectivity transitions and syncs when the connection returns.

    The host application calls ``set_online`` from its platform signal.
    Repeated signals for the current state are ignored, so a reconnect runs
    exactly one sync. Going offline does not cancel remote calls already in
    flight. ``run_periodic`` additionally syncs on a timer while online.
    """

    def __init__(
        self,
        store: LocalStore,
        engine: SyncEngine,
        owner_id: str,
        bus: Optional[NotificationBus] = None,
    ):
        """Initialize monitor.

        Args:
            store: Local durable store holding the online flag
            engine: Sync engine to run on reconnect
            owner_id: Owning user whose data is synced
            bus: Optional bus for connectivity banners
        """
        self.store = store
        self.engine = engine
        self.owner_id = owner_id
        self.bus = bus

    def is_online(self) -> bool:
        return self.store.load().is_online

    async def set_online(self, online: bool) -> Optional[SyncReport]:
        """Apply a connectivity signal.

        Returns:
            The SyncReport of the reconnect sync, or None when nothing ran
        """
        with self.store.mutate() as state:
            changed = state.is_online != online
            state.is_online = online

        if not changed:
            return None

        self.engine.notify_listeners()
        if not online:
            logger.info("Connection lost; working offline")
            if self.bus is not None:
                self.bus.warning_once(
                    "connectivity-offline",
                    "You are offline. Changes are saved locally and will sync when the connection returns.",
                    ttl_ms=10000,
                    persistent=True,
                )
            return None

        logger.info("Connection restored; syncing pending data")
        if self.bus is not None:
            self.bus.info_once("connectivity-online", "Connection restored. Syncing pending data.")
        return await self.engine.attempt_sync(self.owner_id)

    async def handle_online(self) -> Optional[SyncReport]:
        return await self.set_online(True)

    async def handle_offline(self) -> None:
        await self.set_online(False)

    async def sync_on_start(self) -> Optional[SyncReport]:
        """Sync once at startup if online with changes still queued."""
        state = self.store.load()
        if not state.is_online or not state.pending_queue:
            return None
        logger.info("Syncing %d operations left from the last session", len(state.pending_queue))
        return await self.engine.attempt_sync(self.owner_id)

    async def run_periodic(self, interval: Optional[float] = None, max_runs: Optional[int] = None) -> int:
        """Run ``attempt_sync`` every ``interval`` seconds until cancelled.

        Ticks while offline or while another sync is running are skipped.
        Errors are logged and the loop keeps going.

        Args:
            interval: Seconds between ticks, defaults to the engine's ``sync_interval`` setting
            max_runs: Stop after this many ticks; None runs until cancelled

        Returns:
            Number of syncs that ran
        """
        interval = self.engine.settings.sync_interval if interval is None else interval
        ticks = 0
        synced = 0
        while max_runs is None or ticks < max_runs:
            await asyncio.sleep(interval)
            ticks += 1
            if not self.is_online() or self.engine.status().is_syncing:
                logger.debug("Periodic sync skipped")
                continue
            try:
                report = await self.engine.attempt_sync(self.owner_id)
            except Exception as e:
                logger.error("Periodic sync failed: %s", e)
                continue
            if report is not None:
                synced += 1
        return synced
