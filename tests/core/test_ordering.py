"""Tests for item ordering: append, move, delete, reindex, self-heal, import."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import patch

import pytest

from lorebook.core import LorebookDB
from lorebook.errors import NotFoundError, PartialWriteFailure, StoreError


def _orders(db: LorebookDB, playbook_id: str) -> list[int]:
    return [i.order for i in db.list_items(playbook_id)]


def _titles(db: LorebookDB, playbook_id: str) -> list[str]:
    return [i.title for i in db.list_items(playbook_id)]


@pytest.fixture
def playbook_id(db: LorebookDB) -> str:
    ws = db.create_workspace("Main")
    pb = db.create_playbook(ws.id, "Learn X")
    for title in ("One", "Two", "Three"):
        db.append_item(pb.id, title, f"https://example.com/{title.lower()}")
    return pb.id


class TestAppend:
    def test_append_assigns_next_order(self, db: LorebookDB, playbook_id: str) -> None:
        item = db.append_item(playbook_id, "Four", "https://example.com/four")
        assert item.order == 4
        assert _orders(db, playbook_id) == [1, 2, 3, 4]

    def test_append_to_empty_playbook_starts_at_one(self, db: LorebookDB) -> None:
        ws = db.create_workspace("W")
        pb = db.create_playbook(ws.id, "Empty")
        assert db.append_item(pb.id, "First", "https://example.com/1").order == 1

    def test_append_strips_url_whitespace_only(self, db: LorebookDB, playbook_id: str) -> None:
        item = db.append_item(playbook_id, "Padded", "  https://Example.com/Path/?b=2&a=1  ")
        assert item.url == "https://Example.com/Path/?b=2&a=1"

    def test_append_rejects_empty_title(self, db: LorebookDB, playbook_id: str) -> None:
        with pytest.raises(ValueError, match="Title"):
            db.append_item(playbook_id, "  ", "https://example.com/x")

    def test_append_rejects_empty_url(self, db: LorebookDB, playbook_id: str) -> None:
        with pytest.raises(ValueError, match="url"):
            db.append_item(playbook_id, "No url", "   ")

    def test_append_to_missing_playbook(self, db: LorebookDB) -> None:
        with pytest.raises(NotFoundError):
            db.append_item("test-pb-missing", "X", "https://example.com/x")

    def test_append_records_event(self, db: LorebookDB, playbook_id: str) -> None:
        item = db.append_item(playbook_id, "Four", "https://example.com/four", actor="alice")
        latest = db.get_playbook_events(playbook_id, limit=1)[0]
        assert latest["event_type"] == "item_added"
        assert latest["new_value"] == item.id
        assert latest["actor"] == "alice"

    def test_appends_from_two_connections_stay_contiguous(self, db: LorebookDB, playbook_id: str) -> None:
        other = LorebookDB(db.db_path, prefix="test")
        try:
            db.append_item(playbook_id, "Tab A", "https://example.com/a")
            other.append_item(playbook_id, "Tab B", "https://example.com/b")
            db.append_item(playbook_id, "Tab A again", "https://example.com/a2")
        finally:
            other.close()
        assert _orders(db, playbook_id) == [1, 2, 3, 4, 5, 6]


class TestMoveAdjacent:
    def test_move_down_swaps_with_next(self, db: LorebookDB, playbook_id: str) -> None:
        assert db.move_adjacent(playbook_id, 0, "down") is True
        assert _titles(db, playbook_id) == ["Two", "One", "Three"]
        assert _orders(db, playbook_id) == [1, 2, 3]

    def test_move_up_swaps_with_previous(self, db: LorebookDB, playbook_id: str) -> None:
        assert db.move_adjacent(playbook_id, 2, "up") is True
        assert _titles(db, playbook_id) == ["One", "Three", "Two"]

    def test_first_up_is_noop(self, db: LorebookDB, playbook_id: str) -> None:
        before = db.list_items(playbook_id)
        assert db.move_adjacent(playbook_id, 0, "up") is False
        assert db.list_items(playbook_id) == before

    def test_last_down_is_noop(self, db: LorebookDB, playbook_id: str) -> None:
        assert db.move_adjacent(playbook_id, 2, "down") is False
        assert _titles(db, playbook_id) == ["One", "Two", "Three"]

    def test_index_out_of_range(self, db: LorebookDB, playbook_id: str) -> None:
        with pytest.raises(NotFoundError):
            db.move_adjacent(playbook_id, 3, "up")
        with pytest.raises(KeyError):
            db.move_adjacent(playbook_id, -1, "down")

    def test_invalid_direction(self, db: LorebookDB, playbook_id: str) -> None:
        with pytest.raises(ValueError, match="direction"):
            db.move_adjacent(playbook_id, 1, "sideways")  # type: ignore[arg-type]

    def test_move_uses_fresh_order_not_caller_snapshot(self, db: LorebookDB, playbook_id: str) -> None:
        """A second handle reorders first; the move must see that, not the old list."""
        stale = db.list_items(playbook_id)
        other = LorebookDB(db.db_path, prefix="test")
        try:
            other.move_adjacent(playbook_id, 0, "down")  # Two, One, Three
        finally:
            other.close()
        db.move_item(stale[0].id, "down")  # "One" is now at index 1
        assert _titles(db, playbook_id) == ["Two", "Three", "One"]
        assert _orders(db, playbook_id) == [1, 2, 3]

    def test_move_item_by_id(self, db: LorebookDB, playbook_id: str) -> None:
        three = db.list_items(playbook_id)[2]
        assert db.move_item(three.id, "up") is True
        assert db.get_item(three.id).order == 2

    def test_move_item_missing(self, db: LorebookDB) -> None:
        with pytest.raises(NotFoundError):
            db.move_item("test-it-missing", "up")

    def test_move_records_event(self, db: LorebookDB, playbook_id: str) -> None:
        db.move_adjacent(playbook_id, 0, "down", actor="bob")
        latest = db.get_playbook_events(playbook_id, limit=1)[0]
        assert latest["event_type"] == "item_moved"
        assert (latest["old_value"], latest["new_value"]) == ("1", "2")


class TestDeleteAndUpdate:
    def test_delete_closes_gap(self, db: LorebookDB, playbook_id: str) -> None:
        middle = db.list_items(playbook_id)[1]
        db.delete_item(middle.id)
        assert _titles(db, playbook_id) == ["One", "Three"]
        assert _orders(db, playbook_id) == [1, 2]

    def test_delete_missing(self, db: LorebookDB) -> None:
        with pytest.raises(NotFoundError):
            db.delete_item("test-it-missing")

    def test_update_keeps_order_and_provenance(self, db: LorebookDB, playbook_id: str) -> None:
        first = db.list_items(playbook_id)[0]
        updated = db.update_item(first.id, title="Uno", url="https://example.com/uno", description="first")
        assert updated.title == "Uno"
        assert updated.url == "https://example.com/uno"
        assert updated.order == 1
        assert updated.source_item_id is None

    def test_update_rejects_blank_title(self, db: LorebookDB, playbook_id: str) -> None:
        first = db.list_items(playbook_id)[0]
        with pytest.raises(ValueError):
            db.update_item(first.id, title="")

    def test_contiguity_after_mixed_operations(self, db: LorebookDB, playbook_id: str) -> None:
        items = db.list_items(playbook_id)
        db.append_item(playbook_id, "Four", "https://example.com/four")
        db.move_adjacent(playbook_id, 3, "up")
        db.delete_item(items[0].id)
        db.append_item(playbook_id, "Five", "https://example.com/five")
        db.move_item(items[2].id, "down")
        db.delete_item(items[1].id)
        orders = _orders(db, playbook_id)
        assert orders == list(range(1, len(orders) + 1))


class TestReindexAndSelfHeal:
    def _corrupt(self, db: LorebookDB, playbook_id: str, orders: list[int]) -> None:
        for item, order in zip(db.list_items(playbook_id), orders, strict=True):
            db.conn.execute('UPDATE playbook_items SET "order" = ? WHERE id = ?', (order, item.id))
        db.conn.commit()

    def test_reindex_closes_gaps(self, db: LorebookDB, playbook_id: str) -> None:
        self._corrupt(db, playbook_id, [2, 5, 9])
        assert db.reindex(playbook_id) == 3
        rows = db.conn.execute('SELECT "order" FROM playbook_items WHERE playbook_id = ? ORDER BY "order"', (playbook_id,))
        assert [r[0] for r in rows] == [1, 2, 3]

    def test_reindex_on_clean_list_changes_nothing(self, db: LorebookDB, playbook_id: str) -> None:
        assert db.reindex(playbook_id) == 0

    def test_list_items_self_heals_duplicates(
        self, db: LorebookDB, playbook_id: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        self._corrupt(db, playbook_id, [1, 1, 3])
        with caplog.at_level(logging.WARNING, logger="lorebook"):
            items = db.list_items(playbook_id)
        assert [i.order for i in items] == [1, 2, 3]
        assert "Self-healing" in caplog.text

    def test_append_after_gap_heals_first(self, db: LorebookDB, playbook_id: str) -> None:
        self._corrupt(db, playbook_id, [1, 4, 7])
        item = db.append_item(playbook_id, "Four", "https://example.com/four")
        assert item.order == 4
        assert _orders(db, playbook_id) == [1, 2, 3, 4]


class TestImportItems:
    def test_import_with_aliases_and_skips(self, db: LorebookDB, playbook_id: str) -> None:
        rows: list[dict[str, Any]] = [
            {"Title": "Video", "URL": "https://youtube.com/watch?v=1", "Notes": "watch"},
            {"name": "Doc", "link": "https://docs.example.com"},
            {"title": "No link"},
            {"url": "https://example.com/untitled"},
            {"title": "Bad", "url": "https://exa\x00mple.com"},
        ]
        assert db.import_items(playbook_id, rows) == 2
        items = db.list_items(playbook_id)
        assert [i.title for i in items[-2:]] == ["Video", "Doc"]
        assert items[-2].description == "watch"
        assert [i.order for i in items] == [1, 2, 3, 4, 5]

    def test_import_partial_failure(self, db: LorebookDB, playbook_id: str) -> None:
        original = db.append_item
        calls = {"n": 0}

        def flaky(*args: Any, **kwargs: Any) -> Any:
            calls["n"] += 1
            if calls["n"] == 3:
                raise StoreError("disk full")
            return original(*args, **kwargs)

        rows = [{"title": f"Row {n}", "url": f"https://example.com/r{n}"} for n in range(4)]
        with patch.object(db, "append_item", side_effect=flaky), pytest.raises(PartialWriteFailure) as exc_info:
            db.import_items(playbook_id, rows)
        assert exc_info.value.written == 2
        assert exc_info.value.total == 4
        assert len(db.list_items(playbook_id)) == 5


class TestStoreErrors:
    def test_sqlite_errors_surface_as_store_error(self, db: LorebookDB, playbook_id: str) -> None:
        db.conn.execute("DROP TABLE playbook_events")
        db.conn.commit()
        with pytest.raises(StoreError):
            db.append_item(playbook_id, "Four", "https://example.com/four")
        assert _orders(db, playbook_id) == [1, 2, 3]
