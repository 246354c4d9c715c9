"""In-memory store client.

Keeps records in a plain Python dict with the same generation and TTL
semantics as the real store.  All data is lost when the process exits.
This client is primarily useful for tests, local development, and the
CLI's ``--store memory`` mode.

Classes
-------
- ProcedureRecord      — record handle passed to in-process procedures
- InMemoryStoreClient  — dict-backed, generation-guarded store
"""
from __future__ import annotations

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from session_state_lock.errors import (
    GenerationConflictError,
    ProcedureError,
    RecordNotFoundError,
    SessionStoreError,
)
from session_state_lock.keys import StoreKey
from session_state_lock.store.base import StoreClient, StoredRecord

logger = logging.getLogger(__name__)

_NEVER_EXPIRE = -1
_PROCEDURE_SUFFIX = ".lua"


@dataclass
class _Entry:
    bins: dict[str, Any]
    generation: int
    expires_at: float | None


class ProcedureRecord:
    """Working copy of one record inside a procedure call.

    Changes become visible only if the procedure calls ``update`` (or
    ``remove``) and returns without raising.
    """

    def __init__(self, bins: Mapping[str, Any] | None) -> None:
        self._exists = bins is not None
        self._bins: dict[str, Any] = copy.deepcopy(dict(bins)) if bins is not None else {}
        self._ttl: int | None = None
        self._action: str | None = None

    @property
    def exists(self) -> bool:
        return self._exists

    def __getitem__(self, name: str) -> Any:
        return self._bins.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._bins[name] = value

    def set_ttl(self, ttl: int) -> None:
        self._ttl = ttl

    def update(self) -> None:
        self._action = "update"
        self._exists = True

    def remove(self) -> None:
        self._action = "remove"
        self._exists = False


class InMemoryStoreClient(StoreClient):
    """Ephemeral, in-process store with per-record generations.

    Every operation holds a single internal lock, so each call is atomic
    with respect to every other call, as a single record operation is on
    the real store.

    Parameters
    ----------
    clock:
        Monotonic time source in seconds, used for TTL expiry.
    default_ttl:
        TTL applied when a write passes ``ttl=None`` or ``ttl=0``.
        ``None`` means records never expire by default.
    procedures:
        Mapping of procedure module name to ``{function name: callable}``.
        Defaults to the in-process twin of the session state module.
        A module must still be registered before it can be executed.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        default_ttl: int | None = None,
        procedures: Mapping[str, Mapping[str, Callable[..., Any]]] | None = None,
    ) -> None:
        if procedures is None:
            from session_state_lock.procedures import MODULE_NAME  # noqa: PLC0415
            from session_state_lock.procedures.emulated import FUNCTIONS  # noqa: PLC0415

            procedures = {MODULE_NAME: FUNCTIONS}
        self._clock = clock
        self._default_ttl = default_ttl
        self._procedures = {name: dict(funcs) for name, funcs in procedures.items()}
        self._records: dict[StoreKey, _Entry] = {}
        self._modules: dict[str, str] = {}
        self._lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionStoreError("InMemoryStoreClient is closed.")

    def _expiry(self, ttl: int | None) -> float | None:
        if ttl is None or ttl == 0:
            ttl = self._default_ttl
        if ttl is None or ttl == _NEVER_EXPIRE:
            return None
        return self._clock() + ttl

    def _live(self, key: StoreKey) -> _Entry | None:
        entry = self._records.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._records[key]
            logger.debug("InMemoryStoreClient: %r expired", key)
            return None
        return entry

    def _write(
        self,
        key: StoreKey,
        entry: _Entry | None,
        bins: Mapping[str, Any],
        ttl: int | None,
        replace: bool = False,
    ) -> None:
        if entry is None:
            self._records[key] = _Entry(copy.deepcopy(dict(bins)), 1, self._expiry(ttl))
            return
        if replace:
            entry.bins.clear()
        entry.bins.update(copy.deepcopy(dict(bins)))
        entry.generation += 1
        entry.expires_at = self._expiry(ttl)

    # ------------------------------------------------------------------
    # StoreClient interface
    # ------------------------------------------------------------------

    def get(
        self,
        key: StoreKey,
        bins: Sequence[str] | None = None,
        *,
        timeout_ms: int | None = None,
    ) -> StoredRecord | None:
        with self._lock:
            self._ensure_open()
            entry = self._live(key)
            if entry is None:
                return None
            if bins is None:
                selected = entry.bins
            else:
                selected = {name: entry.bins[name] for name in bins if name in entry.bins}
            return StoredRecord(copy.deepcopy(selected), entry.generation)

    def put(
        self,
        key: StoreKey,
        bins: Mapping[str, Any],
        *,
        generation: int | None = None,
        ttl: int | None = None,
        update_only: bool = False,
        replace: bool = False,
        timeout_ms: int | None = None,
    ) -> None:
        with self._lock:
            self._ensure_open()
            entry = self._live(key)
            if entry is None and update_only:
                raise RecordNotFoundError(key)
            if generation is not None and (entry is None or entry.generation != generation):
                raise GenerationConflictError(key, generation)
            self._write(key, entry, bins, ttl, replace)

    def delete(
        self,
        key: StoreKey,
        *,
        generation: int | None = None,
        timeout_ms: int | None = None,
    ) -> bool:
        with self._lock:
            self._ensure_open()
            entry = self._live(key)
            if entry is None:
                return False
            if generation is not None and entry.generation != generation:
                raise GenerationConflictError(key, generation)
            del self._records[key]
            return True

    def execute(
        self,
        key: StoreKey,
        module: str,
        function: str,
        args: Sequence[Any] = (),
        *,
        timeout_ms: int | None = None,
    ) -> Any:
        with self._lock:
            self._ensure_open()
            if module + _PROCEDURE_SUFFIX not in self._modules:
                raise ProcedureError(f"Procedure module {module!r} is not registered.")
            func = self._procedures.get(module, {}).get(function)
            if func is None:
                raise ProcedureError(f"Function {module}.{function} does not exist.")

            entry = self._live(key)
            rec = ProcedureRecord(entry.bins if entry is not None else None)
            try:
                result = func(rec, *copy.deepcopy(list(args)))
            except Exception as exc:
                raise ProcedureError(f"{module}.{function} failed: {exc}") from exc

            if rec._action == "update":
                self._write(key, entry, rec._bins, rec._ttl, replace=True)
            elif rec._action == "remove" and entry is not None:
                del self._records[key]
            return copy.deepcopy(result)

    def list_procedures(self) -> list[str]:
        with self._lock:
            self._ensure_open()
            return list(self._modules)

    def register_procedure(self, filename: str, source: str) -> None:
        with self._lock:
            self._ensure_open()
            self._modules[filename] = source
        logger.debug("InMemoryStoreClient: registered procedure module %r", filename)

    def close(self) -> None:
        self._closed = True

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def ttl_remaining(self, key: StoreKey) -> float | None:
        """Return seconds until ``key`` expires, or ``None`` if it never does.

        Raises
        ------
        KeyError
            If the record does not exist.
        """
        with self._lock:
            entry = self._live(key)
            if entry is None:
                raise KeyError(f"Record {key!r} not found in InMemoryStoreClient.")
            if entry.expires_at is None:
                return None
            return entry.expires_at - self._clock()

    def clear(self) -> None:
        """Remove all stored records.  Registered modules are kept."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __repr__(self) -> str:
        return f"InMemoryStoreClient(records={len(self._records)}, modules={sorted(self._modules)})"
