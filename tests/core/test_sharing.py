"""Tests for share codes, visibility and shared views."""

from __future__ import annotations

import string

import pytest

from lorebook.core import SHARE_CODE_LENGTH, LorebookDB
from lorebook.db_sharing import NoteShares, PlaybookShares, share_path
from lorebook.errors import NotFoundError
from tests.conftest import PopulatedDB


class TestShareCodes:
    def test_every_playbook_has_a_code(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        for key in ("origin", "private"):
            code = db.get_playbook(ids[key]).share_code
            assert len(code) == SHARE_CODE_LENGTH
            assert set(code) <= set(string.ascii_lowercase + string.digits)

    def test_codes_are_unique(self, db: LorebookDB) -> None:
        ws = db.create_workspace("W")
        codes = {db.create_playbook(ws.id, f"P{n}").share_code for n in range(20)}
        assert len(codes) == 20

    def test_toggle_does_not_rotate_code(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.get_playbook(ids["origin"]).share_code
        assert db.set_visibility(ids["origin"], False) == code
        assert db.get_playbook(ids["origin"]).visibility == "private"
        assert db.set_visibility(ids["origin"], True) == code
        assert db.get_playbook(ids["origin"]).share_code == code

    def test_unpublish_keeps_items(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        before = db.list_items(ids["origin"])
        db.set_visibility(ids["origin"], False)
        db.set_visibility(ids["origin"], True)
        assert db.list_items(ids["origin"]) == before

    def test_visibility_change_recorded(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        db.set_visibility(ids["private"], True)
        latest = db.get_playbook_events(ids["private"], limit=1)[0]
        assert latest["event_type"] == "visibility_changed"
        assert (latest["old_value"], latest["new_value"]) == ("private", "public")

    def test_setting_same_visibility_records_nothing(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        events = db.get_playbook_events(ids["origin"])
        db.set_visibility(ids["origin"], True)
        assert db.get_playbook_events(ids["origin"]) == events

    def test_set_visibility_missing_playbook(self, db: LorebookDB) -> None:
        with pytest.raises(NotFoundError):
            db.set_visibility("test-pb-missing", True)


class TestResolveShareCode:
    def test_resolves_regardless_of_visibility(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.get_playbook(ids["private"]).share_code
        assert db.resolve_share_code(code).id == ids["private"]

    def test_code_is_case_and_whitespace_insensitive(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.get_playbook(ids["origin"]).share_code
        assert db.resolve_share_code(f"  {code.upper()} ").id == ids["origin"]

    def test_unknown_code(self, db: LorebookDB) -> None:
        with pytest.raises(NotFoundError, match="No playbook is shared"):
            db.resolve_share_code("nope1234")


class TestSharedView:
    def test_public_playbook(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.get_playbook(ids["origin"]).share_code
        view = db.resolve_shared_view("playbook", code)
        assert view["state"] == "public"
        assert view["kind"] == "playbook"
        assert view["playbook"]["id"] == ids["origin"]
        assert [i["title"] for i in view["items"]] == ["Intro", "Joins", "Indexes"]

    def test_private_is_distinct_from_not_found(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.get_playbook(ids["private"]).share_code
        private = db.resolve_shared_view("playbook", code)
        missing = db.resolve_shared_view("playbook", "zzzzzzzz")
        assert private == {"kind": "playbook", "state": "private"}
        assert missing == {"kind": "playbook", "state": "not_found"}

    def test_unpublished_playbook_becomes_private(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.set_visibility(ids["origin"], False)
        assert db.resolve_shared_view("playbook", code)["state"] == "private"

    def test_playbook_code_is_not_a_note_code(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        code = db.get_playbook(ids["origin"]).share_code
        assert db.resolve_shared_view("note", code)["state"] == "not_found"

    def test_unknown_kind(self, db: LorebookDB) -> None:
        with pytest.raises(ValueError, match="Unknown share kind"):
            db.resolve_shared_view("prompt", "abcd1234")


class TestNoteShares:
    def test_private_note_has_no_code_until_published(self, db: LorebookDB) -> None:
        ws = db.create_workspace("W")
        note = db.create_note(ws.id, "Cheatsheet", "SELECT 1")
        assert note.share_code is None
        code = db.shares("note").set_visibility(note.id, True)
        assert len(code) == SHARE_CODE_LENGTH
        assert db.get_note(note.id).share_code == code

    def test_note_toggle_keeps_code(self, db: LorebookDB) -> None:
        ws = db.create_workspace("W")
        note = db.create_note(ws.id, "Cheatsheet", visibility="public")
        assert note.share_code is not None
        gateway = db.shares("note")
        assert gateway.set_visibility(note.id, False) == note.share_code
        assert gateway.set_visibility(note.id, True) == note.share_code

    def test_note_views(self, db: LorebookDB) -> None:
        ws = db.create_workspace("W")
        note = db.create_note(ws.id, "Cheatsheet", "SELECT 1", visibility="public")
        assert note.share_code is not None
        view = db.resolve_shared_view("note", note.share_code)
        assert view["state"] == "public"
        assert view["note"]["content"] == "SELECT 1"

        db.shares("note").set_visibility(note.id, False)
        assert db.resolve_shared_view("note", note.share_code) == {"kind": "note", "state": "private"}

    def test_missing_note(self, db: LorebookDB) -> None:
        with pytest.raises(NotFoundError):
            db.shares("note").set_visibility("test-nt-missing", True)


class TestGateway:
    def test_shares_returns_per_kind_gateway(self, db: LorebookDB) -> None:
        assert isinstance(db.shares("playbook"), PlaybookShares)
        assert isinstance(db.shares("note"), NoteShares)

    def test_shares_rejects_unknown_kind(self, db: LorebookDB) -> None:
        with pytest.raises(ValueError):
            db.shares("category")

    def test_share_path(self) -> None:
        assert share_path("playbook", "abcd1234") == "/shared/playbook/abcd1234"
        assert share_path("note", "wxyz0000") == "/shared/note/wxyz0000"
