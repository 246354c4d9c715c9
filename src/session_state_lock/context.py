"""Store context: one shared store client and engine per application.

The context is constructed explicitly and handed to whatever needs the
engine, replacing a process-wide singleton.  ``open`` creates the store
client (unless one was injected) and the engine for the configured
strategy; ``close`` tears both down.

Classes
-------
- SessionStoreContext  — lifecycle owner for a store client and its engine
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from session_state_lock.config import StoreConfig
from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.engine.direct import DirectLockEngine
from session_state_lock.engine.procedure import ProcedureLockEngine
from session_state_lock.errors import EngineNotOpenError
from session_state_lock.items import ItemCodec
from session_state_lock.keys import KeyDeriver
from session_state_lock.record import utcnow
from session_state_lock.store.base import StoreClient

logger = logging.getLogger(__name__)


def _default_store_factory(config: StoreConfig) -> StoreClient:
    from session_state_lock.store.aerospike import AerospikeStoreClient  # noqa: PLC0415

    return AerospikeStoreClient.from_config(config)


class SessionStoreContext:
    """Owns the store client and lock engine for one configuration.

    Parameters
    ----------
    config:
        Store and strategy configuration.
    store:
        Pre-built store client.  When given, the context does not create
        one, but it still closes it on ``close``.
    store_factory:
        Builds a store client from ``config`` when ``store`` is not
        given.  Defaults to ``AerospikeStoreClient.from_config``.
    codec:
        Item codec handed to the engine.
    clock:
        Time source handed to the engine.

    Example
    -------
    ::

        with SessionStoreContext(config) as engine:
            result = engine.read_exclusive("session-id")
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        store: StoreClient | None = None,
        store_factory: Callable[[StoreConfig], StoreClient] = _default_store_factory,
        codec: ItemCodec | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config or StoreConfig()
        self._store = store
        self._store_factory = store_factory
        self._codec = codec
        self._clock = clock
        self._engine: SessionLockEngine | None = None
        self._lock = threading.RLock()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> SessionLockEngine:
        """The open engine.

        Raises
        ------
        EngineNotOpenError
            If ``open`` has not been called (or ``close`` has).
        """
        if self._engine is None:
            raise EngineNotOpenError("SessionStoreContext is not open; call open() first.")
        return self._engine

    @property
    def store(self) -> StoreClient:
        if self._store is None:
            raise EngineNotOpenError("SessionStoreContext has no store client yet.")
        return self._store

    def key_deriver(self) -> KeyDeriver:
        return KeyDeriver(
            self._config.namespace,
            self._config.set_name,
            self._config.application_name,
        )

    def connect(self) -> StoreClient:
        """Create the store client without building an engine.  Idempotent."""
        store = self._store
        if store is not None:
            return store
        with self._lock:
            if self._store is None:
                self._store = self._store_factory(self._config)
            return self._store

    def open(self) -> SessionLockEngine:
        """Create the store client and engine.  Idempotent.

        Concurrent first callers share one store client and one engine.
        If the engine cannot be built (e.g. the procedure module fails to
        register) the store client is closed and the error propagates.
        """
        engine = self._engine
        if engine is not None:
            return engine
        with self._lock:
            if self._engine is None:
                self._engine = self._open_locked()
            return self._engine

    def _open_locked(self) -> SessionLockEngine:
        store = self.connect()
        try:
            engine = self._build_engine(store)
        except Exception:
            store.close()
            self._store = None
            raise

        logger.info(
            "SessionStoreContext: opened %s engine for namespace=%r set=%r",
            engine.strategy,
            self._config.namespace,
            self._config.set_name,
        )
        return engine

    def _build_engine(self, store: StoreClient) -> SessionLockEngine:
        engine_cls = ProcedureLockEngine if self._config.use_procedures else DirectLockEngine
        return engine_cls(
            store,
            self.key_deriver(),
            codec=self._codec,
            clock=self._clock,
            request_timeout_ms=self._config.request_timeout_ms,
        )

    def close(self) -> None:
        """Close the store client.  Safe to call more than once."""
        with self._lock:
            store, self._store, self._engine = self._store, None, None
        if store is not None:
            store.close()

    def __enter__(self) -> SessionLockEngine:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        strategy = "procedure" if self._config.use_procedures else "direct"
        return f"SessionStoreContext(strategy={strategy!r}, open={self.is_open!r})"
