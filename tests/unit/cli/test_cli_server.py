"""Tests for the `server` CLI command group."""

import json

from click.testing import CliRunner

from redis_tics.cli.main import main
from redis_tics.cli.server import server
from redis_tics.core.servers import ServerStore


def test_main_help_lists_commands():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])

    assert result.exit_code == 0
    for cmd in ["server", "info", "clients", "keys", "exec", "analyze", "monitor"]:
        assert cmd in result.output


def test_server_help_lists_subcommands():
    runner = CliRunner()
    result = runner.invoke(server, ["--help"])

    assert result.exit_code == 0
    for cmd in ["list", "add", "show", "remove"]:
        assert cmd in result.output


def test_list_empty_prints_message():
    runner = CliRunner()
    result = runner.invoke(server, ["list"])

    assert result.exit_code == 0
    assert "No servers saved." in result.output


def test_add_then_list_json_masks_password():
    """Test that a saved password never appears in list output."""
    runner = CliRunner()

    added = runner.invoke(
        server,
        ["add", "--name", "cache", "--port", "6380", "--password", "hunter2", "--id", "c1"],
    )
    assert added.exit_code == 0
    assert "✅ Saved server c1" in added.output
    assert "hunter2" not in added.output

    listed = runner.invoke(server, ["list", "--json"])
    assert listed.exit_code == 0
    items = json.loads(listed.output)
    assert [i["id"] for i in items] == ["c1"]
    assert items[0]["password"] == "***"
    assert items[0]["port"] == 6380
    assert "hunter2" not in listed.output


def test_add_stores_encrypted_password():
    """Test that the profile written to disk round-trips the password."""
    runner = CliRunner()
    runner.invoke(server, ["add", "--name", "db", "--password", "s3cret", "--id", "d1"])

    profile = ServerStore().get("d1")
    assert profile is not None
    assert profile.password.get_secret_value() == "s3cret"
    assert "s3cret" not in ServerStore().path.read_text()


def test_add_json_generates_id():
    runner = CliRunner()
    result = runner.invoke(server, ["add", "--name", "gen", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["status"] == "saved"
    assert ServerStore().get(payload["id"]) is not None


def test_show_and_remove():
    runner = CliRunner()
    runner.invoke(server, ["add", "--name", "tmp", "--tls", "--id", "t1"])

    shown = runner.invoke(server, ["show", "t1", "--json"])
    assert shown.exit_code == 0
    assert json.loads(shown.output)["tls"] is True

    removed = runner.invoke(server, ["remove", "t1", "--json"])
    assert removed.exit_code == 0
    assert json.loads(removed.output) == {"id": "t1", "status": "removed"}
    assert ServerStore().get("t1") is None


def test_show_unknown_server_fails():
    runner = CliRunner()
    result = runner.invoke(server, ["show", "missing"])

    assert result.exit_code == 1
    assert "❌ Error: Server not found: missing" in result.output


def test_remove_unknown_server_json_error():
    runner = CliRunner()
    result = runner.invoke(server, ["remove", "missing", "--json"])

    assert result.exit_code == 1
    assert json.loads(result.output) == {"error": "Server not found: missing"}
