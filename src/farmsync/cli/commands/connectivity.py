"""Connectivity commands."""

import asyncio

import click
from farmsync.cli.context import get_engine
from farmsync.domain.connectivity import ConnectivityMonitor


def _monitor(ctx) -> ConnectivityMonitor:
    return ConnectivityMonitor(ctx.obj["store"], get_engine(ctx), ctx.obj["owner"], ctx.obj["bus"])


@click.command("online")
@click.pass_context
def go_online(ctx):
    """Mark the connection as restored and sync pending changes."""
    monitor = _monitor(ctx)
    if monitor.is_online():
        click.echo("Already online.")
        return

    report = asyncio.run(monitor.handle_online())
    if report is not None:
        click.echo(f"Back online. Pushed {report.drain.synced} operations.")
    else:
        click.echo("Back online.")


@click.command("offline")
@click.pass_context
def go_offline(ctx):
    """Mark the connection as lost. Changes are queued until 'online'."""
    monitor = _monitor(ctx)
    if not monitor.is_online():
        click.echo("Already offline.")
        return

    asyncio.run(monitor.handle_offline())
    click.echo("Working offline.")


@click.command("watch")
@click.option("--interval", type=float, help="Seconds between syncs (default: FARMSYNC_SYNC_INTERVAL, 300)")
@click.option("--count", type=int, help="Stop after this many timer ticks")
@click.pass_context
def watch(ctx, interval: float | None, count: int | None):
    """Sync leftover changes now, then keep syncing on a timer.

    Runs until interrupted with Ctrl+C.

    Examples:
        farmsync watch
        farmsync watch --interval 60
    """
    monitor = _monitor(ctx)

    async def run() -> int:
        await monitor.sync_on_start()
        return await monitor.run_periodic(interval, max_runs=count)

    try:
        synced = asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("Stopped.")
        return
    click.echo(f"Ran {synced} periodic syncs.")


def register_commands(cli):
    """Register connectivity commands with main CLI."""
    cli.add_command(go_online)
    cli.add_command(go_offline)
    cli.add_command(watch)
