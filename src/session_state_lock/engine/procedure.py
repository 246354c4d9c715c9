"""Server-procedure lock strategy.

Each read-decide-write sequence runs as one call to the ``sessionstate``
procedure module inside the store, so there is no window between the
lock check and the write.  The module is installed on first use by a
``ProcedureRegistrar``; construction fails if it cannot be installed.

Classes
-------
- ProcedureLockEngine  — single round trip, store-executed strategy
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

from session_state_lock import procedures
from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.items import ItemCodec, SessionItems
from session_state_lock.keys import KeyDeriver
from session_state_lock.record import from_ticks, is_locked, to_ticks, utcnow
from session_state_lock.registrar import ProcedureRegistrar
from session_state_lock.results import Locked, NotFound, ReadResult
from session_state_lock.store.base import StoreClient

logger = logging.getLogger(__name__)

# Positions in the GetItemExclusive result list.
_LOCKED, _LOCK_ID, _LOCK_TIME, _TIMEOUT, _ITEMS = range(5)


class ProcedureLockEngine(SessionLockEngine):
    """Lock engine that delegates every exclusive step to the store.

    Parameters
    ----------
    registrar:
        Installs the procedure module.  Defaults to a new
        ``ProcedureRegistrar`` over ``store``.
    module:
        Name of the installed procedure module.

    Other parameters are those of :class:`SessionLockEngine`.

    Raises
    ------
    ProcedureRegistrationError
        If the procedure module is missing and cannot be installed.
    """

    strategy = "procedure"

    def __init__(
        self,
        store: StoreClient,
        key_deriver: KeyDeriver,
        codec: ItemCodec | None = None,
        clock: Callable[[], datetime] = utcnow,
        request_timeout_ms: int | None = None,
        registrar: ProcedureRegistrar | None = None,
        module: str = procedures.MODULE_NAME,
    ) -> None:
        super().__init__(store, key_deriver, codec, clock, request_timeout_ms)
        self._module = module
        self._registrar = registrar or ProcedureRegistrar(store)
        self._registrar.ensure_registered()

    @property
    def registrar(self) -> ProcedureRegistrar:
        return self._registrar

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _call(
        self,
        session_id: str,
        function: str,
        args: Sequence[Any],
        timeout_ms: int | None = None,
    ) -> Any:
        return self._store.execute(
            self._key(session_id), self._module, function, args, timeout_ms=timeout_ms
        )

    def _applied(self, session_id: str, function: str, result: Any) -> bool:
        if result:
            return True
        logger.debug("ProcedureLockEngine: %s on %r did not apply", function, session_id)
        return False

    # ------------------------------------------------------------------
    # SessionLockEngine interface
    # ------------------------------------------------------------------

    def read_exclusive(self, session_id: str, *, timeout_ms: int | None = None) -> ReadResult:
        now = self._clock()
        result = self._call(
            session_id,
            procedures.GET_ITEM_EXCLUSIVE,
            [to_ticks(now)],
            self._timeout(timeout_ms),
        )
        if result is None:
            return NotFound()

        lock_id = int(result[_LOCK_ID])
        lock_age = now - from_ticks(result[_LOCK_TIME])
        if is_locked(result[_LOCKED]):
            return Locked(lock_id=lock_id, lock_age=lock_age)

        items = result[_ITEMS] if len(result) > _ITEMS else None
        return self._unlocked(lock_id, lock_age, items, int(result[_TIMEOUT]))

    def update_and_release(
        self,
        session_id: str,
        lock_id: int,
        ttl: int,
        items: Mapping[str, Any] | None,
    ) -> bool:
        """Store ``items`` and release the lock.

        A ``SessionItems`` collection is sent as a differential update of
        its modified and deleted keys.  Any other mapping replaces the
        stored items wholesale; ``None`` stores an empty collection.
        """
        if isinstance(items, SessionItems):
            function = procedures.MERGE_ITEM_EXCLUSIVE
            args: list[Any] = [
                lock_id,
                ttl,
                items.deleted_keys,
                self._codec.encode_keys(items, items.modified_keys),
            ]
        else:
            function = procedures.WRITE_ITEM_EXCLUSIVE
            args = [lock_id, ttl, self._codec.encode(items)]
        return self._applied(session_id, function, self._call(session_id, function, args))

    def release_only(self, session_id: str, lock_id: int, ttl: int) -> bool:
        function = procedures.RELEASE_ITEM_EXCLUSIVE
        return self._applied(session_id, function, self._call(session_id, function, [lock_id, ttl]))

    def reset_timeout(self, session_id: str, ttl: int) -> bool:
        function = procedures.RESET_ITEM_TIMEOUT
        return self._applied(session_id, function, self._call(session_id, function, [ttl]))

    def remove(self, session_id: str, lock_id: int) -> bool:
        function = procedures.REMOVE_ITEM
        return self._applied(session_id, function, self._call(session_id, function, [lock_id]))
