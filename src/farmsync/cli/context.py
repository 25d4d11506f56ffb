"""Lazily built services shared by CLI commands."""

import click
from farmsync.database.factories import create_remote_store
from farmsync.domain.records import RecordService
from farmsync.domain.sync_engine import SyncEngine


def get_engine(ctx: click.Context) -> SyncEngine:
    """Build the sync engine on first use so offline-only commands never open the remote store."""
    obj = ctx.find_root().obj
    if "engine" not in obj:
        obj["engine"] = SyncEngine(
            obj["store"],
            obj["queue"],
            create_remote_store(obj["remote_url"]),
            obj["bus"],
            obj["settings"],
        )
    return obj["engine"]


def get_record_service(ctx: click.Context) -> RecordService:
    obj = ctx.find_root().obj
    return RecordService(obj["store"], obj["queue"], get_engine(ctx), obj["bus"])
