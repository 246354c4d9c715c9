"""Abstract base class for the session lock engines.

The two strategies share the store client, the key deriver, the item
codec and the operations that need no lock decision: unconditional
creation, full writes, and non-exclusive reads.

Classes
-------
- SessionLockEngine  — operations every strategy provides
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from session_state_lock.items import ItemCodec, PickleItemCodec
from session_state_lock.keys import KeyDeriver, StoreKey
from session_state_lock.record import SessionRecord, fresh_record_bins, utcnow
from session_state_lock.results import Locked, NotFound, ReadResult, Unlocked
from session_state_lock.store.base import StoreClient

logger = logging.getLogger(__name__)


class SessionLockEngine(ABC):
    """Lock protocol over a generation-guarded store.

    No in-process locks are held: every exclusivity decision rests on the
    store's per-record generation check.  Contention, ownership mismatches
    and missing records are reported through return values; only store or
    transport failures raise.

    Parameters
    ----------
    store:
        Shared store client.
    key_deriver:
        Maps session ids to store keys.
    codec:
        Item codec.  Defaults to ``PickleItemCodec``.
    clock:
        Returns the current aware UTC datetime.
    request_timeout_ms:
        Default per-read timeout passed to the store client.
    """

    strategy: str = ""

    def __init__(
        self,
        store: StoreClient,
        key_deriver: KeyDeriver,
        codec: ItemCodec | None = None,
        clock: Callable[[], datetime] = utcnow,
        request_timeout_ms: int | None = None,
    ) -> None:
        self._store = store
        self._key_deriver = key_deriver
        self._codec = codec or PickleItemCodec()
        self._clock = clock
        self._request_timeout_ms = request_timeout_ms

    @property
    def store(self) -> StoreClient:
        return self._store

    @property
    def key_deriver(self) -> KeyDeriver:
        return self._key_deriver

    @property
    def codec(self) -> ItemCodec:
        return self._codec

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _key(self, session_id: str) -> StoreKey:
        return self._key_deriver.derive(session_id)

    def _timeout(self, timeout_ms: int | None) -> int | None:
        return self._request_timeout_ms if timeout_ms is None else timeout_ms

    def _unlocked(
        self,
        lock_id: int,
        lock_age: timedelta,
        stored_items: Mapping[str, Any] | None,
        timeout: int,
    ) -> Unlocked:
        return Unlocked(
            lock_id=lock_id,
            lock_age=lock_age,
            items=self._codec.decode(stored_items),
            timeout=timeout,
            initialize=stored_items is None,
        )

    # ------------------------------------------------------------------
    # Shared operations
    # ------------------------------------------------------------------

    def create_uninitialized(self, session_id: str, ttl: int) -> None:
        """Write a fresh, unlocked record with no items.

        Overwrites any existing record for ``session_id`` and resets its TTL.
        """
        self._store.put(
            self._key(session_id),
            fresh_record_bins(self._clock(), ttl),
            ttl=ttl,
            replace=True,
        )

    def write(self, session_id: str, ttl: int, items: Mapping[str, Any] | None) -> None:
        """Write a fresh, unlocked record holding ``items``.

        Used for brand-new sessions; no lock is checked.
        """
        encoded = self._codec.encode(items)
        self._store.put(
            self._key(session_id),
            fresh_record_bins(self._clock(), ttl, encoded),
            ttl=ttl,
            replace=True,
        )

    def read_non_exclusive(self, session_id: str, *, timeout_ms: int | None = None) -> ReadResult:
        """Read without taking the lock.

        Items are withheld when the record is locked.
        """
        stored = self._store.get(self._key(session_id), timeout_ms=self._timeout(timeout_ms))
        if stored is None:
            return NotFound()

        record = SessionRecord.from_stored(stored)
        lock_age = record.lock_age(self._clock())
        if record.locked:
            return Locked(lock_id=record.lock_id, lock_age=lock_age)
        return self._unlocked(record.lock_id, lock_age, record.items, record.session_timeout)

    # ------------------------------------------------------------------
    # Strategy operations
    # ------------------------------------------------------------------

    @abstractmethod
    def read_exclusive(self, session_id: str, *, timeout_ms: int | None = None) -> ReadResult:
        """Read and take the lock.

        Returns
        -------
        ReadResult
            ``NotFound`` if there is no record, ``Locked`` if someone else
            holds (or just won) the lock, ``Unlocked`` with the new
            ``lock_id`` if this call acquired it.
        """

    @abstractmethod
    def update_and_release(
        self,
        session_id: str,
        lock_id: int,
        ttl: int,
        items: Mapping[str, Any] | None,
    ) -> bool:
        """Store ``items`` and release the lock held as ``lock_id``.

        Returns
        -------
        bool
            True if the write applied; False if the lock is no longer ours
            or the record changed underneath us.
        """

    @abstractmethod
    def release_only(self, session_id: str, lock_id: int, ttl: int) -> bool:
        """Release the lock held as ``lock_id`` without touching items."""

    @abstractmethod
    def reset_timeout(self, session_id: str, ttl: int) -> bool:
        """Refresh the TTL of an existing record.  Never creates one."""

    @abstractmethod
    def remove(self, session_id: str, lock_id: int) -> bool:
        """Delete the record if ``lock_id`` still matches."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(store={self._store!r}, keys={self._key_deriver!r})"
