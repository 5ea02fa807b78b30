"""CLI tests for sharing, cloning and origin sync."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from lorebook.cli import cli
from tests.cli.conftest import _extract_id


def _json(runner: CliRunner, *args: str) -> Any:
    result = runner.invoke(cli, [*args, "--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


@pytest.fixture
def shared_setup(cli_in_project: tuple[CliRunner, Path]) -> tuple[CliRunner, dict[str, str]]:
    """A public 'Learn X' playbook (Intro, Setup) in Home plus an empty Away workspace."""
    runner, _ = cli_in_project
    origin = _json(runner, "create", "Learn X", "--public")["id"]
    _json(runner, "add-item", origin, "Intro", "https://x.dev/intro")
    _json(runner, "add-item", origin, "Setup", "https://x.dev/setup")
    away = _extract_id(runner.invoke(cli, ["workspace-create", "Away"]).output)
    code = _json(runner, "show", origin)["share_code"]
    return runner, {"origin": origin, "away": away, "code": code}


class TestPublish:
    def test_publish_prints_share_path(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        pb = _json(runner, "create", "Draft")
        result = runner.invoke(cli, ["publish", pb["id"]])
        assert result.exit_code == 0
        assert f"/shared/playbook/{pb['share_code']}" in result.output

    def test_unpublish_keeps_code(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        result = runner.invoke(cli, ["unpublish", ids["origin"]])
        assert result.exit_code == 0
        assert f"share code {ids['code']} kept" in result.output
        result = runner.invoke(cli, ["publish", ids["origin"]])
        assert ids["code"] in result.output

    def test_publish_note(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        note = _json(runner, "note-create", "Cheatsheet", "-c", "SELECT 1")
        result = runner.invoke(cli, ["publish", note["id"], "--kind", "note"])
        assert result.exit_code == 0
        assert "/shared/note/" in result.output

    def test_publish_missing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["publish", "test-pb-nope"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestShared:
    def test_public_view(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        result = runner.invoke(cli, ["shared", ids["code"]])
        assert result.exit_code == 0
        assert "Learn X  (2 items)" in result.output
        assert "<https://x.dev/setup>" in result.output

    def test_private_and_missing_are_distinct(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        runner.invoke(cli, ["unpublish", ids["origin"]])
        private = runner.invoke(cli, ["shared", ids["code"]])
        missing = runner.invoke(cli, ["shared", "zzzzzzzz"])
        assert private.exit_code == 1
        assert "is private" in private.output
        assert missing.exit_code == 1
        assert "no playbook is shared" in missing.output

    def test_json_state(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        runner.invoke(cli, ["unpublish", ids["origin"]])
        result = runner.invoke(cli, ["shared", ids["code"], "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output) == {"kind": "playbook", "state": "private"}


class TestClone:
    def test_clone_by_share_code(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        result = runner.invoke(cli, ["-w", ids["away"], "clone", ids["code"]])
        assert result.exit_code == 0
        assert f"Cloned {ids['origin']} as" in result.output
        assert "(2 items)" in result.output

    def test_clone_json(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        data = _json(runner, "-w", ids["away"], "clone", ids["origin"])
        assert data["status"] == "cloned"
        clone = data["playbook"]
        assert clone["origin_id"] == ids["origin"]
        assert clone["workspace_id"] == ids["away"]
        assert clone["visibility"] == "private"
        assert clone["sync_baseline"] == 2
        assert clone["share_code"] != ids["code"]

    def test_second_clone_reports_existing(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        first = _json(runner, "-w", ids["away"], "clone", ids["code"])["playbook"]
        again = _json(runner, "-w", ids["away"], "clone", ids["code"])
        assert again["status"] == "already_cloned"
        assert again["playbook"]["id"] == first["id"]
        forced = _json(runner, "-w", ids["away"], "clone", ids["code"], "--force")
        assert forced["status"] == "cloned"
        assert forced["playbook"]["id"] != first["id"]

    def test_clone_private_rejected(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        runner.invoke(cli, ["unpublish", ids["origin"]])
        result = runner.invoke(cli, ["-w", ids["away"], "clone", ids["code"], "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["code"] == "private"

    def test_clone_unknown_source(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        result = runner.invoke(cli, ["-w", ids["away"], "clone", "nothing1"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_clones_lists_copies(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        assert "No clones" in runner.invoke(cli, ["clones", ids["origin"]]).output
        clone = _json(runner, "-w", ids["away"], "clone", ids["code"])["playbook"]
        assert [p["id"] for p in _json(runner, "clones", ids["origin"])] == [clone["id"]]


class TestSync:
    def test_new_content_then_sync(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        clone_id = _json(runner, "-w", ids["away"], "clone", ids["code"])["playbook"]["id"]
        assert "Up to date" in runner.invoke(cli, ["new-content", clone_id]).output

        _json(runner, "add-item", ids["origin"], "Advanced", "https://x.dev/advanced")
        result = runner.invoke(cli, ["new-content", clone_id])
        assert "1 new item(s) in Learn X" in result.output
        assert "+ Advanced" in result.output
        assert "New in origin: 1" in runner.invoke(cli, ["show", clone_id]).output

        result = runner.invoke(cli, ["sync", clone_id])
        assert result.exit_code == 0
        assert f"Synced 1 new item(s) into {clone_id}" in result.output
        assert "Nothing to sync" in runner.invoke(cli, ["sync", clone_id]).output

        data = _json(runner, "show", clone_id)
        assert data["sync_baseline"] == 3
        assert [i["title"] for i in data["items"]] == ["Intro", "Setup", "Advanced"]
        assert data["items"][2]["order"] == 3

    def test_sync_json(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        clone_id = _json(runner, "-w", ids["away"], "clone", ids["code"])["playbook"]["id"]
        _json(runner, "add-item", ids["origin"], "Advanced", "https://x.dev/advanced")
        assert _json(runner, "sync", clone_id) == {"playbook_id": clone_id, "added": 1, "sync_baseline": 3}

    def test_new_content_on_origin(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        result = runner.invoke(cli, ["new-content", ids["origin"]])
        assert "is not a clone" in result.output
        status = _json(runner, "new-content", ids["origin"])
        assert status["is_clone"] is False
        assert status["new_items"] == []

    def test_sync_leaves_origin_alone(self, shared_setup: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = shared_setup
        clone_id = _json(runner, "-w", ids["away"], "clone", ids["code"])["playbook"]["id"]
        _json(runner, "add-item", clone_id, "Mine", "https://x.dev/mine")
        _json(runner, "add-item", ids["origin"], "Advanced", "https://x.dev/advanced")
        before = _json(runner, "show", ids["origin"])["items"]
        runner.invoke(cli, ["sync", clone_id])
        assert _json(runner, "show", ids["origin"])["items"] == before
