"""In-process twin of ``sessionstate.lua``.

``InMemoryStoreClient`` runs these functions under its own record lock,
giving them the same all-or-nothing behaviour the store gives the Lua
module.  Each function receives a ``ProcedureRecord`` followed by the
procedure arguments, and returns what the Lua function returns.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from session_state_lock.procedures import (
    GET_ITEM_EXCLUSIVE,
    MERGE_ITEM_EXCLUSIVE,
    RELEASE_ITEM_EXCLUSIVE,
    REMOVE_ITEM,
    RESET_ITEM_TIMEOUT,
    WRITE_ITEM_EXCLUSIVE,
)
from session_state_lock.record import (
    BIN_LOCK_ID,
    BIN_LOCK_TIME,
    BIN_LOCKED,
    BIN_SESSION_ITEMS,
    BIN_SESSION_TIMEOUT,
    is_locked,
)
from session_state_lock.store.memory import ProcedureRecord


def _owns_lock(rec: ProcedureRecord, lock_id: int) -> bool:
    return rec.exists and rec[BIN_LOCK_ID] == lock_id


def _unlock(rec: ProcedureRecord, ttl: int) -> None:
    rec[BIN_LOCKED] = 0
    rec[BIN_SESSION_TIMEOUT] = ttl
    rec.set_ttl(ttl)
    rec.update()


def get_item_exclusive(rec: ProcedureRecord, now: int) -> list[Any] | None:
    if not rec.exists:
        return None

    timeout = rec[BIN_SESSION_TIMEOUT]

    if is_locked(rec[BIN_LOCKED]):
        return [1, rec[BIN_LOCK_ID], rec[BIN_LOCK_TIME], timeout]

    lock_id = (rec[BIN_LOCK_ID] or 0) + 1
    rec[BIN_LOCKED] = 1
    rec[BIN_LOCK_ID] = lock_id
    rec[BIN_LOCK_TIME] = now
    rec.set_ttl(timeout)
    rec.update()

    result: list[Any] = [0, lock_id, now, timeout]
    items = rec[BIN_SESSION_ITEMS]
    if items is not None:
        result.append(dict(items))
    return result


def merge_item_exclusive(
    rec: ProcedureRecord,
    lock_id: int,
    ttl: int,
    deleted_keys: Sequence[str],
    modified: Mapping[str, Any],
) -> int:
    if not _owns_lock(rec, lock_id):
        return 0

    items = dict(rec[BIN_SESSION_ITEMS] or {})
    for key in deleted_keys:
        items.pop(key, None)
    for key, value in modified.items():
        # The server drops map entries assigned nil.
        if value is None:
            items.pop(key, None)
        else:
            items[key] = value

    rec[BIN_SESSION_ITEMS] = items
    _unlock(rec, ttl)
    return 1


def write_item_exclusive(
    rec: ProcedureRecord, lock_id: int, ttl: int, items: Mapping[str, Any]
) -> int:
    if not _owns_lock(rec, lock_id):
        return 0

    rec[BIN_SESSION_ITEMS] = dict(items)
    _unlock(rec, ttl)
    return 1


def release_item_exclusive(rec: ProcedureRecord, lock_id: int, ttl: int) -> int:
    if not _owns_lock(rec, lock_id):
        return 0

    _unlock(rec, ttl)
    return 1


def reset_item_timeout(rec: ProcedureRecord, ttl: int) -> int:
    if not rec.exists:
        return 0

    rec[BIN_SESSION_TIMEOUT] = ttl
    rec.set_ttl(ttl)
    rec.update()
    return 1


def remove_item(rec: ProcedureRecord, lock_id: int) -> int:
    if not _owns_lock(rec, lock_id):
        return 0

    rec.remove()
    return 1


FUNCTIONS: dict[str, Callable[..., Any]] = {
    GET_ITEM_EXCLUSIVE: get_item_exclusive,
    MERGE_ITEM_EXCLUSIVE: merge_item_exclusive,
    WRITE_ITEM_EXCLUSIVE: write_item_exclusive,
    RELEASE_ITEM_EXCLUSIVE: release_item_exclusive,
    RESET_ITEM_TIMEOUT: reset_item_timeout,
    REMOVE_ITEM: remove_item,
}
