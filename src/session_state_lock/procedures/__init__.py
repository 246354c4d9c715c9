"""Server-side procedure module for the session lock protocol.

The module ships as ``sessionstate.lua`` and is installed on the store
cluster by :class:`~session_state_lock.registrar.ProcedureRegistrar`.
``session_state_lock.procedures.emulated`` holds an equivalent Python
implementation that ``InMemoryStoreClient`` runs in-process.
"""
from __future__ import annotations

from importlib import resources

MODULE_NAME = "sessionstate"
FILE_NAME = MODULE_NAME + ".lua"

GET_ITEM_EXCLUSIVE = "GetItemExclusive"
MERGE_ITEM_EXCLUSIVE = "MergeItemExclusive"
WRITE_ITEM_EXCLUSIVE = "WriteItemExclusive"
RELEASE_ITEM_EXCLUSIVE = "ReleaseItemExclusive"
RESET_ITEM_TIMEOUT = "ResetItemTimeout"
REMOVE_ITEM = "RemoveItem"

FUNCTION_NAMES: tuple[str, ...] = (
    GET_ITEM_EXCLUSIVE,
    MERGE_ITEM_EXCLUSIVE,
    WRITE_ITEM_EXCLUSIVE,
    RELEASE_ITEM_EXCLUSIVE,
    RESET_ITEM_TIMEOUT,
    REMOVE_ITEM,
)


def load_source() -> str:
    """Return the Lua source of the procedure module."""
    return resources.files(__name__).joinpath(FILE_NAME).read_text(encoding="utf-8")


__all__ = [
    "FILE_NAME",
    "FUNCTION_NAMES",
    "GET_ITEM_EXCLUSIVE",
    "MERGE_ITEM_EXCLUSIVE",
    "MODULE_NAME",
    "RELEASE_ITEM_EXCLUSIVE",
    "REMOVE_ITEM",
    "RESET_ITEM_TIMEOUT",
    "WRITE_ITEM_EXCLUSIVE",
    "load_source",
]
