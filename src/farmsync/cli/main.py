"""Main CLI entry point."""

import logging

import click
from farmsync.config import SyncSettings
from farmsync.database.factories import create_sqlite_storage
from farmsync.database.local_store import LocalStore
from farmsync.domain.entities import Notification, NotificationKind
from farmsync.domain.notifications import NotificationBus
from farmsync.domain.offline_queue import OfflineQueue
from farmsync.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from farmsync.cli.commands import (
    status,
    sync,
    connectivity,
    data,
    queue,
    record,
)


def echo_notification(notification: Notification) -> None:
    """Render a bus notification on the terminal."""
    line = f"[{notification.kind.value}] {notification.message}"
    if notification.action_url:
        line += f" ({notification.action_text or 'Open'}: {notification.action_url})"
    click.echo(line, err=notification.kind is NotificationKind.ERROR)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to local offline database (overrides FARMSYNC_DB_PATH environment variable)",
    envvar="FARMSYNC_DB_PATH",
)
@click.option(
    "--remote-url",
    help="SQLAlchemy URL of the remote document store (overrides FARMSYNC_REMOTE_URL)",
    envvar="FARMSYNC_REMOTE_URL",
)
@click.option(
    "--owner",
    default="local-user",
    show_default=True,
    help="Owning user id of the synced records",
    envvar="FARMSYNC_OWNER_ID",
)
@click.option("-v", "--verbose", is_flag=True, help="Log sync progress")
@click.pass_context
def cli(ctx, db_path: str | None, remote_url: str | None, owner: str, verbose: bool):
    """farmsync - Offline-first sync for farm records.

    Keeps transactions, budgets and customers usable offline and replays
    queued changes against the remote store when the connection returns.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)

    # Open storage only when actually running a command (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = SyncSettings.from_env()
        except ValueError as e:
            handle_domain_error(ctx, e)

        storage = create_sqlite_storage(database_path=db_path)
        storage.connect()
        ctx.call_on_close(storage.disconnect)

        store = LocalStore(storage)
        bus = NotificationBus()
        bus.subscribe(echo_notification)
        offline_queue = OfflineQueue(store, max_retries=settings.max_retries)

        ctx.obj["settings"] = settings
        ctx.obj["store"] = store
        ctx.obj["bus"] = bus
        ctx.obj["queue"] = offline_queue
        ctx.obj["owner"] = owner
        ctx.obj["remote_url"] = remote_url


# Register all commands
status.register_commands(cli)
sync.register_commands(cli)
connectivity.register_commands(cli)
data.register_commands(cli)
queue.register_commands(cli)
record.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
