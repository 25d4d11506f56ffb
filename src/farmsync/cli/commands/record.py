"""Record commands: change cached transactions, budgets and customers."""

import asyncio
import json
from typing import Any

import click
from farmsync.cli.context import get_record_service
from farmsync.cli.error_handling import handle_domain_error
from farmsync.domain.entities import RESERVED_FIELDS, TIMESTAMP_FIELDS, Collection, Record
from farmsync.domain.errors import NotFoundError, ValidationError, reserved_field
from farmsync.utils.amount_parser import parse_amount
from farmsync.utils.date_parser import parse_timestamp
from farmsync.utils.ids import is_temp_id

COLLECTION_CHOICE = click.Choice([c.value for c in Collection])


def parse_fields(collection: Collection, assignments: tuple[str, ...]) -> dict[str, Any]:
    """Parse ``name=value`` options into record fields.

    Values are read as JSON when possible and kept as text otherwise.
    Timestamp fields accept the same expressions as ``parse_timestamp`` and
    ``amount`` accepts currency-formatted text.

    Raises:
        ValueError: If an assignment has no ``=``, names a reserved field or a
            value cannot be parsed
    """
    fields: dict[str, Any] = {}
    for assignment in assignments:
        name, sep, raw = assignment.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid field '{assignment}', expected NAME=VALUE")
        if name in RESERVED_FIELDS:
            raise ValidationError(reserved_field(name))

        if name in TIMESTAMP_FIELDS[collection]:
            fields[name] = parse_timestamp(raw)
        elif name == "amount":
            fields[name] = parse_amount(raw)
        else:
            try:
                fields[name] = json.loads(raw)
            except json.JSONDecodeError:
                fields[name] = raw
    return fields


def _format_value(value: Any) -> str:
    if hasattr(value, "isoformat"):
        return value.strftime("%Y-%m-%d %H:%M")
    return str(value)


def _print_record(record: Record) -> None:
    pending = " (pending)" if is_temp_id(record.id) else ""
    click.echo(f"ID: {record.id}{pending}")
    for name, value in sorted(record.fields.items()):
        click.echo(f"  {name}: {_format_value(value)}")


@click.group()
def record_group():
    """Create, change and list cached records."""
    pass


@record_group.command("add")
@click.argument("collection", type=COLLECTION_CHOICE)
@click.option("--field", "-f", "assignments", multiple=True, metavar="NAME=VALUE", help="Field value (repeatable)")
@click.pass_context
def add_record(ctx, collection: str, assignments: tuple[str, ...]):
    """Add a record to COLLECTION.

    Examples:
        farmsync record add transactions -f amount=120.50 -f description="Seed order" -f date=today
        farmsync record add customers -f name="Green Acres" -f lastSaleDate=yesterday
    """
    collection = Collection(collection)
    try:
        fields = parse_fields(collection, assignments)
    except ValueError as e:
        handle_domain_error(ctx, e)

    service = get_record_service(ctx)
    record = asyncio.run(service.create_record(collection, ctx.obj["owner"], fields))
    click.echo(f"Created {collection.value} record {record.id}")


@record_group.command("update")
@click.argument("collection", type=COLLECTION_CHOICE)
@click.argument("record_id", metavar="RECORD_ID")
@click.option("--field", "-f", "assignments", multiple=True, required=True, metavar="NAME=VALUE", help="Field value (repeatable)")
@click.pass_context
def update_record(ctx, collection: str, record_id: str, assignments: tuple[str, ...]):
    """Change fields of a cached record."""
    collection = Collection(collection)
    try:
        changes = parse_fields(collection, assignments)
    except ValueError as e:
        handle_domain_error(ctx, e)

    service = get_record_service(ctx)
    try:
        record = asyncio.run(service.update_record(collection, record_id, ctx.obj["owner"], changes))
    except NotFoundError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated {collection.value} record {record.id}")


@record_group.command("delete")
@click.argument("collection", type=COLLECTION_CHOICE)
@click.argument("record_id", metavar="RECORD_ID")
@click.pass_context
def delete_record(ctx, collection: str, record_id: str):
    """Delete a record locally and remotely."""
    collection = Collection(collection)
    service = get_record_service(ctx)
    if service.get_record(collection, record_id) is None:
        click.echo(f"Error: {collection.value} record {record_id} is not cached", err=True)
        ctx.exit(1)

    asyncio.run(service.delete_record(collection, record_id, ctx.obj["owner"]))
    click.echo(f"Deleted {collection.value} record {record_id}")


@record_group.command("list")
@click.argument("collection", type=COLLECTION_CHOICE)
@click.pass_context
def list_records(ctx, collection: str):
    """List cached records of COLLECTION, newest first."""
    collection = Collection(collection)
    service = get_record_service(ctx)
    records = service.list_records(collection, ctx.obj["owner"])
    if not records:
        click.echo(f"No {collection.value} found.")
        return

    for record in records:
        _print_record(record)


def register_commands(cli):
    """Register record commands with main CLI."""
    cli.add_command(record_group, name="record")
