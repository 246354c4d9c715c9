"""Direct lock strategy.

Every exclusive operation is a client-side read followed by a write or
delete guarded by the generation observed in that read.  Whoever writes
first for a given generation wins; everyone else gets a generation
conflict and treats the operation as not applied.

Mutations after acquisition check ``LockId`` ownership before trusting
the generation: the generation alone cannot tell "updated by the holder"
from "updated by someone who forced a write".

Classes
-------
- DirectLockEngine  — two round trip read/guarded-write strategy
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping

from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.errors import GenerationConflictError, RecordNotFoundError
from session_state_lock.keys import StoreKey
from session_state_lock.record import (
    BIN_LOCK_ID,
    BIN_LOCK_TIME,
    BIN_LOCKED,
    BIN_SESSION_ITEMS,
    BIN_SESSION_TIMEOUT,
    SessionRecord,
    to_ticks,
)
from session_state_lock.results import Locked, NotFound, ReadResult

logger = logging.getLogger(__name__)


class DirectLockEngine(SessionLockEngine):
    """Lock engine that decides exclusivity in the calling process."""

    strategy = "direct"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _owned_generation(self, key: StoreKey, lock_id: int) -> int | None:
        """Return the record generation if ``lock_id`` still owns it."""
        stored = self._store.get(key, [BIN_LOCK_ID])
        if stored is None:
            logger.debug("DirectLockEngine: %r missing", key)
            return None
        current = int(stored.bins.get(BIN_LOCK_ID, 0))
        if current != lock_id:
            logger.debug(
                "DirectLockEngine: %r lock id is %d, caller holds %d", key, current, lock_id
            )
            return None
        return stored.generation

    def _write_owned(self, key: StoreKey, lock_id: int, ttl: int, bins: Mapping[str, Any]) -> bool:
        generation = self._owned_generation(key, lock_id)
        if generation is None:
            return False
        try:
            self._store.put(key, bins, generation=generation, ttl=ttl)
        except GenerationConflictError:
            logger.debug("DirectLockEngine: %r changed since ownership check", key)
            return False
        return True

    # ------------------------------------------------------------------
    # SessionLockEngine interface
    # ------------------------------------------------------------------

    def read_exclusive(self, session_id: str, *, timeout_ms: int | None = None) -> ReadResult:
        """Read the record and try to take the lock with a guarded write.

        When the guarded write loses, the result is ``Locked`` with a zero
        ``lock_age`` and the lock id this caller attempted, not the actual
        winner's values.
        """
        key = self._key(session_id)
        stored = self._store.get(key, timeout_ms=self._timeout(timeout_ms))
        if stored is None:
            return NotFound()

        record = SessionRecord.from_stored(stored)
        now = self._clock()
        lock_age = record.lock_age(now)
        if record.locked:
            return Locked(lock_id=record.lock_id, lock_age=lock_age)

        lock_id = record.lock_id + 1
        try:
            self._store.put(
                key,
                {BIN_LOCKED: True, BIN_LOCK_ID: lock_id, BIN_LOCK_TIME: to_ticks(now)},
                generation=record.generation,
                ttl=record.session_timeout,
                timeout_ms=self._timeout(timeout_ms),
            )
        except GenerationConflictError:
            logger.debug("DirectLockEngine: lost lock race on %r", key)
            return Locked(lock_id=lock_id, lock_age=timedelta(0))

        return self._unlocked(lock_id, lock_age, record.items, record.session_timeout)

    def update_and_release(
        self,
        session_id: str,
        lock_id: int,
        ttl: int,
        items: Mapping[str, Any] | None,
    ) -> bool:
        bins = {
            BIN_LOCKED: False,
            BIN_SESSION_TIMEOUT: ttl,
            BIN_SESSION_ITEMS: self._codec.encode(items),
        }
        return self._write_owned(self._key(session_id), lock_id, ttl, bins)

    def release_only(self, session_id: str, lock_id: int, ttl: int) -> bool:
        bins = {BIN_LOCKED: False, BIN_SESSION_TIMEOUT: ttl}
        return self._write_owned(self._key(session_id), lock_id, ttl, bins)

    def reset_timeout(self, session_id: str, ttl: int) -> bool:
        key = self._key(session_id)
        try:
            self._store.put(key, {BIN_SESSION_TIMEOUT: ttl}, ttl=ttl, update_only=True)
        except RecordNotFoundError:
            logger.debug("DirectLockEngine: reset_timeout on missing %r", key)
            return False
        return True

    def remove(self, session_id: str, lock_id: int) -> bool:
        key = self._key(session_id)
        generation = self._owned_generation(key, lock_id)
        if generation is None:
            return False
        try:
            return self._store.delete(key, generation=generation)
        except GenerationConflictError:
            logger.debug("DirectLockEngine: %r updated before delete; keeping it", key)
            return False
