"""Tests for the command line interface."""

import json
import pytest

from farmsync.cli.main import cli
from farmsync.domain.entities import Collection, OperationKind


@pytest.fixture
def invoke(cli_runner, temp_storage, temp_remote_url):
    """Run the CLI against temporary local and remote databases."""

    def _invoke(*args, **kwargs):
        return cli_runner.invoke(
            cli,
            ["--db-path", temp_storage.database_path, "--remote-url", temp_remote_url, *args],
            **kwargs,
        )

    return _invoke


def created_id(result) -> str:
    """Extract the record id from 'Created <collection> record <id>'."""
    for line in result.output.splitlines():
        if line.startswith("Created "):
            return line.split()[-1]
    raise AssertionError(f"no record created in output: {result.output}")


def test_help_does_not_open_storage(cli_runner):
    """Test that help works without any database."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Offline-first sync" in result.output


def test_status_fresh_store(invoke):
    """Test status of an empty store."""
    result = invoke("status")
    assert result.exit_code == 0
    assert "Online:             yes" in result.output
    assert "Last sync:          never" in result.output
    assert "Pending operations: 0" in result.output


def test_offline_workflow(invoke):
    """Test offline create, queue inspection and reconnect."""
    result = invoke("offline")
    assert result.exit_code == 0
    assert "Working offline." in result.output

    result = invoke(
        "record", "add", "transactions",
        "-f", "amount=$120.50", "-f", "description=Seed order", "-f", "date=2024-05-01",
    )
    assert result.exit_code == 0
    temp_id = created_id(result)
    assert temp_id.startswith("offline_")
    assert "saved offline" in result.output

    result = invoke("queue", "pending")
    assert result.exit_code == 0
    assert "CREATE" in result.output
    assert temp_id in result.output

    result = invoke("status")
    assert "Online:             no" in result.output
    assert "Pending operations: 1" in result.output

    result = invoke("online")
    assert result.exit_code == 0
    assert "Back online. Pushed 1 operations." in result.output

    result = invoke("record", "list", "transactions")
    assert result.exit_code == 0
    assert temp_id not in result.output
    assert "(pending)" not in result.output
    assert "amount: 120.5" in result.output
    assert "date: 2024-05-01 00:00" in result.output

    result = invoke("queue", "pending")
    assert "No pending operations." in result.output


def test_online_create_writes_through(invoke):
    """Test that an online create gets a remote id immediately."""
    result = invoke("record", "add", "customers", "-f", "name=Green Acres", "-f", "lastSaleDate=yesterday")
    assert result.exit_code == 0
    record_id = created_id(result)
    assert not record_id.startswith("offline_")

    result = invoke("record", "update", "customers", record_id, "-f", "name=Green Acres Farm")
    assert result.exit_code == 0
    assert f"Updated customers record {record_id}" in result.output

    result = invoke("record", "delete", "customers", record_id)
    assert result.exit_code == 0

    result = invoke("pull")
    assert result.exit_code == 0
    assert "Cached 0 transactions, 0 budgets, 0 customers" in result.output


def test_record_field_values(invoke):
    """Test JSON and text field values."""
    result = invoke("record", "add", "budgets", "-f", "limit=500", "-f", "tags=[\"feed\"]", "-f", "name=Feed")
    assert result.exit_code == 0

    result = invoke("record", "list", "budgets")
    assert "limit: 500" in result.output
    assert "tags: ['feed']" in result.output
    assert "name: Feed" in result.output


def test_record_invalid_field(invoke):
    """Test a malformed field assignment."""
    result = invoke("record", "add", "transactions", "-f", "amount")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_record_reserved_field(invoke):
    """Test that record metadata cannot be set as a field."""
    result = invoke("record", "add", "transactions", "-f", "amount=5", "-f", "id=abc")
    assert result.exit_code == 1
    assert "Field name 'id' is reserved" in result.output


def test_record_update_missing(invoke):
    """Test updating a record that is not cached."""
    result = invoke("record", "update", "transactions", "remote-404", "-f", "amount=1")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_record_unknown_collection(invoke):
    """Test that only synced collections are accepted."""
    result = invoke("record", "list", "invoices")
    assert result.exit_code != 0


def test_sync_command(invoke):
    """Test a manual sync with nothing queued."""
    result = invoke("sync")
    assert result.exit_code == 0
    assert "Pushed 0 operations" in result.output
    assert "Cached 0 transactions" in result.output

    result = invoke("status")
    assert "Last sync:          never" not in result.output


def test_sync_while_offline(invoke):
    """Test that sync explains it cannot run offline."""
    invoke("offline")
    result = invoke("sync")
    assert result.exit_code == 0
    assert "Offline; nothing to sync." in result.output


def test_export_import(invoke, tmp_path):
    """Test backing up and restoring offline data."""
    invoke("offline")
    invoke("record", "add", "customers", "-f", "name=Green Acres")
    backup = tmp_path / "backup.json"

    result = invoke("export", "-o", str(backup))
    assert result.exit_code == 0
    exported = json.loads(backup.read_text())
    assert exported["schemaVersion"] == 1
    assert len(exported["customers"]) == 1

    result = invoke("clear", "-y")
    assert result.exit_code == 0
    result = invoke("record", "list", "customers")
    assert "No customers found." in result.output

    result = invoke("import", str(backup), "-y")
    assert result.exit_code == 0
    assert "Imported 0 transactions, 0 budgets, 1 customers and 1 pending operations" in result.output

    result = invoke("export")
    assert json.loads(result.output) == exported


def test_import_invalid_file(invoke, tmp_path):
    """Test importing a file that is not an export."""
    bad = tmp_path / "bad.json"
    bad.write_text("not json")
    result = invoke("import", str(bad), "-y")
    assert result.exit_code == 1
    assert "Invalid offline data format" in result.output


def test_clear_cancelled(invoke):
    """Test declining the clear confirmation."""
    invoke("offline")
    invoke("record", "add", "customers", "-f", "name=Green Acres")
    result = invoke("clear", input="n\n")
    assert "1 unsynced operations" in result.output
    assert "Clear cancelled." in result.output


def test_failed_operations(invoke, offline_queue, make_record):
    """Test listing and re-queueing failed operations."""
    entry = offline_queue.enqueue(
        OperationKind.CREATE, Collection.BUDGETS, make_record(record_id="offline_1_a"), "user-1"
    )
    for _ in range(3):
        offline_queue.record_failure(entry.id)

    result = invoke("queue", "failed")
    assert result.exit_code == 0
    assert entry.id in result.output

    result = invoke("queue", "retry")
    assert result.exit_code == 0
    assert "Requeued 1 operations" in result.output

    result = invoke("queue", "failed")
    assert "No failed operations." in result.output


def test_invalid_setting(invoke):
    """Test a malformed environment setting."""
    result = invoke("status", env={"FARMSYNC_MAX_RETRIES": "three"})
    assert result.exit_code == 1
    assert "Invalid FARMSYNC setting" in result.output


def test_watch(invoke):
    """Test a bounded periodic sync run."""
    result = invoke("watch", "--interval", "0", "--count", "2")
    assert result.exit_code == 0
    assert "Ran 2 periodic syncs." in result.output


def test_watch_while_offline(invoke):
    """Test that the timer does not sync while offline."""
    invoke("offline")
    result = invoke("watch", "--interval", "0", "--count", "2")
    assert result.exit_code == 0
    assert "Ran 0 periodic syncs." in result.output
