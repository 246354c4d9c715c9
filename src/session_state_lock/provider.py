"""Session state provider facade.

``SessionStateStore`` is what a web framework's session middleware calls
once per request.  It maps the framework's session-state operations onto
the lock engine, opening the shared context on first use, treating a
missing lock id as "nothing to do", and logging every failure before
re-raising it unchanged.

All timeouts are in seconds.

Classes
-------
- SessionStateStore  — request-facing facade over a ``SessionStoreContext``
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from session_state_lock.context import SessionStoreContext
from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.items import SessionItems
from session_state_lock.results import ReadResult

logger = logging.getLogger(__name__)


class SessionStateStore:
    """Framework-facing session state operations.

    Parameters
    ----------
    context:
        Shared store context.  It is opened lazily on the first call.
    """

    def __init__(self, context: SessionStoreContext) -> None:
        self._context = context

    @property
    def context(self) -> SessionStoreContext:
        return self._context

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _engine(self) -> SessionLockEngine:
        return self._context.open()

    @contextmanager
    def _logged(self, operation: str, session_id: str) -> Iterator[None]:
        try:
            yield
        except Exception:
            logger.error("%s failed for session %r", operation, session_id, exc_info=True)
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_item(self, session_id: str) -> ReadResult:
        """Read the session without locking it."""
        with self._logged("get_item", session_id):
            return self._engine.read_non_exclusive(session_id)

    def get_item_exclusive(self, session_id: str) -> ReadResult:
        """Read the session and lock it for this request."""
        with self._logged("get_item_exclusive", session_id):
            return self._engine.read_exclusive(session_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_and_release_item_exclusive(
        self,
        session_id: str,
        items: Mapping[str, Any] | None,
        timeout: int,
        lock_id: int | None,
        new_item: bool = False,
    ) -> bool:
        """Persist ``items`` at the end of a request.

        A new item is written unconditionally.  An existing one is updated
        and unlocked only if ``lock_id`` still owns it.
        """
        with self._logged("set_and_release_item_exclusive", session_id):
            if new_item:
                self._engine.write(session_id, timeout, items)
                return True
            if lock_id is None:
                return False
            return self._engine.update_and_release(session_id, lock_id, timeout, items)

    def release_item_exclusive(
        self, session_id: str, lock_id: int | None, timeout: int | None = None
    ) -> bool:
        """Unlock the session without saving items."""
        if lock_id is None:
            return False
        ttl = timeout if timeout is not None else self._context.config.session_timeout
        with self._logged("release_item_exclusive", session_id):
            return self._engine.release_only(session_id, lock_id, ttl)

    def remove_item(self, session_id: str, lock_id: int | None) -> bool:
        """Delete the session if ``lock_id`` still owns it."""
        if lock_id is None:
            return False
        with self._logged("remove_item", session_id):
            return self._engine.remove(session_id, lock_id)

    def create_uninitialized_item(self, session_id: str, timeout: int | None = None) -> None:
        """Create an empty session record (cookieless session start)."""
        ttl = timeout if timeout is not None else self._context.config.session_timeout
        with self._logged("create_uninitialized_item", session_id):
            self._engine.create_uninitialized(session_id, ttl)

    def reset_item_timeout(self, session_id: str) -> bool:
        """Refresh the session TTL to the configured session timeout."""
        with self._logged("reset_item_timeout", session_id):
            return self._engine.reset_timeout(session_id, self._context.config.session_timeout)

    def create_new_items(self) -> SessionItems:
        """Return an empty item collection for a brand-new session."""
        return SessionItems()

    def close(self) -> None:
        self._context.close()

    def __repr__(self) -> str:
        return f"SessionStateStore(context={self._context!r})"
