"""Manual sync commands."""

import asyncio

import click
from farmsync.cli.context import get_engine
from farmsync.cli.error_handling import handle_domain_error
from farmsync.domain.errors import RemoteSyncError


@click.command("sync")
@click.option("--push-only", is_flag=True, help="Only replay the offline queue, do not pull")
@click.pass_context
def sync_now(ctx, push_only: bool):
    """Push queued changes to the remote store, then pull remote state.

    Examples:
        farmsync sync
        farmsync sync --push-only
    """
    engine = get_engine(ctx)
    owner = ctx.obj["owner"]

    if not engine.status().is_online:
        click.echo("Offline; nothing to sync. Run 'farmsync online' when the connection returns.")
        return

    if push_only:
        result = asyncio.run(engine.drain_queue())
        click.echo(f"Pushed {result.synced} operations ({result.failed} failed, {result.dropped} dropped)")
        return

    report = asyncio.run(engine.attempt_sync(owner))
    if report is None:
        click.echo("Sync skipped.")
        return

    drain = report.drain
    click.echo(f"Pushed {drain.synced} operations ({drain.failed} failed, {drain.dropped} dropped)")
    if report.pull is None:
        click.echo("Pull failed; cached data kept.", err=True)
        ctx.exit(1)
    click.echo(
        f"Cached {len(report.pull.transactions)} transactions, "
        f"{len(report.pull.budgets)} budgets, {len(report.pull.customers)} customers"
    )


@click.command("pull")
@click.pass_context
def pull_now(ctx):
    """Refresh the local cache from the remote store without pushing."""
    engine = get_engine(ctx)
    try:
        result = asyncio.run(engine.pull_from_remote(ctx.obj["owner"]))
    except RemoteSyncError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Cached {len(result.transactions)} transactions, "
        f"{len(result.budgets)} budgets, {len(result.customers)} customers"
    )


def register_commands(cli):
    """Register sync commands with main CLI."""
    cli.add_command(sync_now)
    cli.add_command(pull_now)
