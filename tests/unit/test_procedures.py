"""Unit tests for session_state_lock.procedures and its in-process twin."""
from __future__ import annotations

import re

import pytest

from session_state_lock import procedures
from session_state_lock.procedures import emulated
from session_state_lock.store.memory import ProcedureRecord


def _locked_record(lock_id: int = 3) -> ProcedureRecord:
    return ProcedureRecord(
        {"Locked": 1, "LockId": lock_id, "LockTime": 500, "SessionTimeout": 60}
    )


class TestModuleSource:
    def test_source_is_bundled(self) -> None:
        assert procedures.load_source().startswith("--")

    @pytest.mark.parametrize("name", procedures.FUNCTION_NAMES)
    def test_every_function_is_defined(self, name: str) -> None:
        assert re.search(rf"^function {name}\(", procedures.load_source(), re.MULTILINE)

    def test_file_name(self) -> None:
        assert procedures.FILE_NAME == "sessionstate.lua"

    def test_emulation_covers_every_function(self) -> None:
        assert set(emulated.FUNCTIONS) == set(procedures.FUNCTION_NAMES)


class TestGetItemExclusive:
    def test_missing_record(self) -> None:
        assert emulated.get_item_exclusive(ProcedureRecord(None), 1000) is None

    def test_locked_record_is_reported_unchanged(self) -> None:
        rec = _locked_record()
        assert emulated.get_item_exclusive(rec, 1000) == [1, 3, 500, 60]
        assert rec["LockTime"] == 500

    def test_acquire_without_items(self) -> None:
        rec = ProcedureRecord({"Locked": 0, "LockId": 3, "LockTime": 500, "SessionTimeout": 60})
        assert emulated.get_item_exclusive(rec, 1000) == [0, 4, 1000, 60]
        assert rec["Locked"] == 1
        assert rec["LockId"] == 4

    def test_acquire_returns_items(self) -> None:
        rec = ProcedureRecord(
            {"Locked": 0, "LockId": 0, "LockTime": 0, "SessionTimeout": 60, "SessionItems": {"a": b"1"}}
        )
        assert emulated.get_item_exclusive(rec, 7)[4] == {"a": b"1"}


class TestOwnershipGatedFunctions:
    def test_merge_by_non_owner_is_rejected(self) -> None:
        rec = _locked_record()
        assert emulated.merge_item_exclusive(rec, 2, 60, [], {"a": b"1"}) == 0
        assert rec["SessionItems"] is None

    def test_merge_applies_deletes_then_modifications(self) -> None:
        rec = _locked_record()
        rec["SessionItems"] = {"a": b"1", "b": b"2"}
        assert emulated.merge_item_exclusive(rec, 3, 90, ["a", "zz"], {"c": b"3"}) == 1
        assert rec["SessionItems"] == {"b": b"2", "c": b"3"}
        assert rec["Locked"] == 0
        assert rec["SessionTimeout"] == 90

    def test_write_replaces_items(self) -> None:
        rec = _locked_record()
        rec["SessionItems"] = {"a": b"1"}
        assert emulated.write_item_exclusive(rec, 3, 60, {"b": b"2"}) == 1
        assert rec["SessionItems"] == {"b": b"2"}

    def test_release_on_missing_record(self) -> None:
        assert emulated.release_item_exclusive(ProcedureRecord(None), 1, 60) == 0

    def test_remove_by_owner(self) -> None:
        rec = _locked_record()
        assert emulated.remove_item(rec, 3) == 1
        assert rec.exists is False

    def test_reset_timeout_on_missing_record(self) -> None:
        rec = ProcedureRecord(None)
        assert emulated.reset_item_timeout(rec, 60) == 0
        assert rec.exists is False


class TestMergeNoneValues:
    def test_none_modified_value_removes_item(self) -> None:
        rec = _locked_record()
        rec["SessionItems"] = {"a": b"1", "b": b"2"}
        assert emulated.merge_item_exclusive(rec, 3, 60, [], {"a": None, "c": b"3"}) == 1
        assert rec["SessionItems"] == {"b": b"2", "c": b"3"}
