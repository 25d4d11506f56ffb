"""Runtime settings for the sync core, read from FARMSYNC_* environment variables."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class SyncSettings:
    """Tunables for queue draining and remote access."""

    max_retries: int = 3
    remote_timeout: float = 10.0
    dedup_window_seconds: float = 60.0
    locale: str = "en"
    sync_interval: float = 300.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SyncSettings":
        """Build settings from environment variables, falling back to defaults.

        Raises:
            ValueError: If a numeric variable is not a valid number
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        try:
            return cls(
                max_retries=int(env.get("FARMSYNC_MAX_RETRIES", defaults.max_retries)),
                remote_timeout=float(env.get("FARMSYNC_REMOTE_TIMEOUT", defaults.remote_timeout)),
                dedup_window_seconds=float(
                    env.get("FARMSYNC_DEDUP_WINDOW", defaults.dedup_window_seconds)
                ),
                locale=env.get("FARMSYNC_LOCALE", defaults.locale),
                sync_interval=float(env.get("FARMSYNC_SYNC_INTERVAL", defaults.sync_interval)),
            )
        except ValueError as e:
            raise ValueError(f"Invalid FARMSYNC setting: {e}")
