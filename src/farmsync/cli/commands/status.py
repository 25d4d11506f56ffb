"""Sync status command."""

import click
from farmsync.cli.context import get_engine


@click.command("status")
@click.pass_context
def show_status(ctx):
    """Show connectivity, queue sizes and the last successful sync."""
    status = get_engine(ctx).status()

    last_sync = status.last_sync.strftime("%Y-%m-%d %H:%M:%S UTC") if status.last_sync else "never"
    click.echo(f"Online:             {'yes' if status.is_online else 'no'}")
    click.echo(f"Syncing:            {'yes' if status.is_syncing else 'no'}")
    click.echo(f"Last sync:          {last_sync}")
    click.echo(f"Pending operations: {status.pending_operations}")
    click.echo(f"Failed operations:  {status.failed_operations}")
    if status.sync_error:
        click.echo(f"Last error:         {status.sync_error}")


def register_commands(cli):
    """Register status command with main CLI."""
    cli.add_command(show_status)
