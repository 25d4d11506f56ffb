"""Offline queue inspection commands."""

import click
from farmsync.domain.entities import QueueEntry


def _print_entries(entries: list[QueueEntry]) -> None:
    click.echo("-" * 90)
    click.echo(f"{'ID':32s} {'Operation':9s} {'Collection':12s} {'Record':32s} Retries")
    click.echo("-" * 90)
    for entry in entries:
        click.echo(
            f"{entry.id:32s} {entry.operation_kind.value:9s} {entry.target_collection.value:12s} "
            f"{entry.payload.id:32s} {entry.retry_count}"
        )


@click.group()
def queue_group():
    """Inspect the offline queue."""
    pass


@queue_group.command("pending")
@click.pass_context
def list_pending(ctx):
    """List operations waiting to be synced, oldest first."""
    entries = ctx.obj["queue"].pending()
    if not entries:
        click.echo("No pending operations.")
        return
    _print_entries(entries)


@queue_group.command("failed")
@click.pass_context
def list_failed(ctx):
    """List operations that were dropped after repeated failures."""
    entries = ctx.obj["queue"].failed()
    if not entries:
        click.echo("No failed operations.")
        return
    _print_entries(entries)


@queue_group.command("retry")
@click.argument("entry_ids", nargs=-1, metavar="[ENTRY_ID]...")
@click.pass_context
def retry_failed(ctx, entry_ids: tuple[str, ...]):
    """Move failed operations back to the pending queue.

    Without ENTRY_ID every failed operation is requeued.

    Examples:
        farmsync queue retry
        farmsync queue retry offline_1700000000000_k3j9x2a1b
    """
    count = ctx.obj["queue"].requeue_failed(entry_ids or None)
    click.echo(f"Requeued {count} operations")


@queue_group.command("discard")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def discard_failed(ctx, yes: bool):
    """Permanently delete all failed operations."""
    failed = len(ctx.obj["queue"].failed())
    if not failed:
        click.echo("No failed operations.")
        return
    if not yes and not click.confirm(f"Discard {failed} failed operations?"):
        click.echo("Discard cancelled.")
        return
    count = ctx.obj["queue"].clear_failed()
    click.echo(f"Discarded {count} failed operations")


def register_commands(cli):
    """Register queue commands with main CLI."""
    cli.add_command(queue_group, name="queue")
