"""Procedure module registration.

Classes
-------
- ProcedureRegistrar  — installs the session procedure module at most once
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from session_state_lock import procedures
from session_state_lock.errors import ProcedureRegistrationError, SessionStoreError
from session_state_lock.store.base import StoreClient

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS: float = 0.1


class ProcedureRegistrar:
    """Ensure the procedure module is installed on the store.

    ``ensure_registered`` checks the store's module listing and uploads
    the module only when it is missing.  Once it has succeeded, later
    calls on the same registrar return immediately.  Several processes
    may race to install the module; the store treats a duplicate upload
    as a replacement, so every racer succeeds.

    Parameters
    ----------
    store:
        Store client to register against.
    filename:
        File name the module is installed under.
    source_loader:
        Returns the module source.  Defaults to the bundled
        ``sessionstate.lua``.
    wait_timeout:
        Seconds to wait for an uploaded module to appear in the listing.
    """

    def __init__(
        self,
        store: StoreClient,
        filename: str = procedures.FILE_NAME,
        source_loader: Callable[[], str] = procedures.load_source,
        wait_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._filename = filename
        self._source_loader = source_loader
        self._wait_timeout = wait_timeout
        self._registered = False
        self._lock = threading.Lock()

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def registered(self) -> bool:
        """True once ``ensure_registered`` has succeeded."""
        return self._registered

    def is_installed(self) -> bool:
        """Ask the store whether the module is currently installed."""
        return self._filename in self._store.list_procedures()

    def ensure_registered(self) -> bool:
        """Install the module if the store does not have it.

        Returns
        -------
        bool
            True if this call uploaded the module, False if it was
            already present.

        Raises
        ------
        ProcedureRegistrationError
            If the module cannot be listed, uploaded, or does not appear
            within ``wait_timeout`` seconds.
        """
        if self._registered:
            return False
        with self._lock:
            if self._registered:
                return False
            try:
                uploaded = self._install()
            except ProcedureRegistrationError:
                raise
            except (SessionStoreError, OSError) as exc:
                raise ProcedureRegistrationError(self._filename, str(exc)) from exc
            self._registered = True
            return uploaded

    def _install(self) -> bool:
        if self.is_installed():
            logger.debug("ProcedureRegistrar: %r already installed", self._filename)
            return False

        self._store.register_procedure(self._filename, self._source_loader())
        self._wait_until_visible()
        logger.info("ProcedureRegistrar: installed procedure module %r", self._filename)
        return True

    def _wait_until_visible(self) -> None:
        deadline = time.monotonic() + self._wait_timeout
        while not self.is_installed():
            if time.monotonic() >= deadline:
                raise ProcedureRegistrationError(
                    self._filename,
                    f"module not visible after {self._wait_timeout}s",
                )
            time.sleep(_POLL_INTERVAL_SECONDS)

    def __repr__(self) -> str:
        return f"ProcedureRegistrar(filename={self._filename!r}, registered={self._registered!r})"
