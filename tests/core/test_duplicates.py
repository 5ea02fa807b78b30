"""Tests for advisory URL duplicate detection."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from lorebook.db_duplicates import NO_DUPLICATE
from lorebook.errors import StoreError
from tests.conftest import PopulatedDB


class TestCurrentScope:
    def test_url_in_same_playbook(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        result = db.check_duplicate("https://example.com/joins", ids["origin"])
        assert result.found is True
        assert result.scope == "current"
        assert result.other_playbook_id is None

    def test_current_scope_wins_over_other(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        db.append_item(ids["origin"], "Shared too", "https://example.com/shared")
        assert db.check_duplicate("https://example.com/shared", ids["origin"]).scope == "current"

    def test_surrounding_whitespace_ignored(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        assert db.check_duplicate("  https://example.com/intro\n", ids["origin"]).scope == "current"

    def test_loaded_items_used_for_current_scope(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        items = db.list_items(ids["origin"])
        with patch.object(db, "list_items", side_effect=AssertionError("should not refetch")):
            result = db.check_duplicate("https://example.com/indexes", ids["origin"], loaded_items=items)
        assert result.scope == "current"


class TestOtherScope:
    def test_url_in_another_playbook_of_workspace(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        result = db.check_duplicate("https://example.com/shared", ids["origin"])
        assert result.found is True
        assert result.scope == "other"
        assert result.other_playbook_id == ids["private"]
        assert result.other_playbook_title == "Scratch"

    def test_to_dict(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        assert db.check_duplicate("https://example.com/shared", ids["origin"]).to_dict() == {
            "found": True,
            "scope": "other",
            "other_playbook_id": ids["private"],
            "other_playbook_title": "Scratch",
        }

    def test_archived_playbooks_ignored(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        db.archive_playbook(ids["private"])
        assert db.check_duplicate("https://example.com/shared", ids["origin"]) == NO_DUPLICATE

    def test_other_workspaces_ignored(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        elsewhere = db.create_playbook(ids["away"], "Elsewhere")
        db.append_item(elsewhere.id, "Far", "https://example.com/far")
        assert db.check_duplicate("https://example.com/far", ids["origin"]).found is False

    def test_cross_scope_disabled(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        assert db.check_duplicate("https://example.com/shared", ids["origin"], cross_scope=False) == NO_DUPLICATE


class TestExactMatching:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/joins/",
            "http://example.com/joins",
            "https://EXAMPLE.com/joins",
            "https://example.com/joins?utm_source=x",
        ],
    )
    def test_variants_are_not_duplicates(self, populated_db: PopulatedDB, url: str) -> None:
        db, ids = populated_db.db, populated_db.ids
        assert db.check_duplicate(url, ids["origin"]).found is False

    def test_empty_url_is_never_a_duplicate(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        assert db.check_duplicate("   ", ids["origin"]) == NO_DUPLICATE

    def test_check_never_blocks_insert(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        db.append_item(ids["origin"], "Joins again", "https://example.com/joins")
        urls = [i.url for i in db.list_items(ids["origin"])]
        assert urls.count("https://example.com/joins") == 2


class TestDegradation:
    def test_store_failure_on_cross_scope_reports_current_only(
        self, populated_db: PopulatedDB, caplog: pytest.LogCaptureFixture
    ) -> None:
        db, ids = populated_db.db, populated_db.ids
        items = db.list_items(ids["origin"])
        with (
            patch.object(db, "get_playbook", side_effect=StoreError("db locked")),
            caplog.at_level(logging.WARNING, logger="lorebook"),
        ):
            result = db.check_duplicate("https://example.com/shared", ids["origin"], loaded_items=items)
        assert result == NO_DUPLICATE
        assert "duplicate check failed" in caplog.text

    def test_store_failure_still_reports_current_scope(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        items = db.list_items(ids["origin"])
        with patch.object(db, "get_playbook", side_effect=StoreError("db locked")):
            result = db.check_duplicate("https://example.com/intro", ids["origin"], loaded_items=items)
        assert result.scope == "current"
