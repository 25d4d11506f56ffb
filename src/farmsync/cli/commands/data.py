"""Offline data backup and reset commands."""

import click
from farmsync.cli.error_handling import handle_domain_error
from farmsync.domain.errors import ValidationError


@click.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write to file instead of stdout")
@click.pass_context
def export_data(ctx, output: str | None):
    """Export all offline data as JSON.

    Examples:
        farmsync export
        farmsync export -o backup.json
    """
    text = ctx.obj["store"].export()
    if output is None:
        click.echo(text)
        return

    with open(output, "w", encoding="utf-8") as f:
        f.write(text)
    click.echo(f"Exported offline data to {output}")


@click.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def import_data(ctx, file: str, yes: bool):
    """Replace all offline data with a previously exported FILE."""
    if not yes and not click.confirm("This replaces all offline data. Continue?"):
        click.echo("Import cancelled.")
        return

    with open(file, encoding="utf-8") as f:
        text = f.read()

    try:
        state = ctx.obj["store"].import_data(text)
    except ValidationError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Imported {len(state.transactions)} transactions, {len(state.budgets)} budgets, "
        f"{len(state.customers)} customers and {len(state.pending_queue)} pending operations"
    )


@click.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear_data(ctx, yes: bool):
    """Delete all offline data, including unsynced changes."""
    pending = len(ctx.obj["queue"].pending())
    prompt = "Delete all offline data?"
    if pending:
        prompt = f"Delete all offline data, including {pending} unsynced operations?"
    if not yes and not click.confirm(prompt):
        click.echo("Clear cancelled.")
        return

    ctx.obj["store"].clear()
    click.echo("Offline data cleared.")


def register_commands(cli):
    """Register data commands with main CLI."""
    cli.add_command(export_data)
    cli.add_command(import_data)
    cli.add_command(clear_data)
