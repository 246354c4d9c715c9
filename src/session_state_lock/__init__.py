"""session-state-lock — Distributed session locking over a key-value store.

Arbitrates concurrent access to one logical session (for example many
simultaneous requests carrying the same session cookie) using nothing but
the store's per-record generation check.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import session_state_lock
>>> session_state_lock.__version__
'0.1.0'
"""
from __future__ import annotations

# Keys, records, items
from session_state_lock.keys import KeyDeriver, StoreKey
from session_state_lock.record import SessionRecord, from_ticks, to_ticks
from session_state_lock.items import (
    ItemCodec,
    JsonItemCodec,
    PickleItemCodec,
    SessionItems,
)
from session_state_lock.results import Locked, NotFound, ReadResult, Unlocked

# Errors
from session_state_lock.errors import (
    EngineNotOpenError,
    GenerationConflictError,
    ProcedureError,
    ProcedureRegistrationError,
    RecordNotFoundError,
    SessionStoreError,
)

# Store clients
from session_state_lock.store.base import StoreClient, StoredRecord
from session_state_lock.store.memory import InMemoryStoreClient
from session_state_lock.store.aerospike import AerospikeStoreClient

# Engines
from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.engine.direct import DirectLockEngine
from session_state_lock.engine.procedure import ProcedureLockEngine
from session_state_lock.registrar import ProcedureRegistrar

# Configuration and lifecycle
from session_state_lock.config import StoreConfig, load_config
from session_state_lock.context import SessionStoreContext
from session_state_lock.provider import SessionStateStore

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Keys, records, items
    "ItemCodec",
    "JsonItemCodec",
    "KeyDeriver",
    "Locked",
    "NotFound",
    "PickleItemCodec",
    "ReadResult",
    "SessionItems",
    "SessionRecord",
    "StoreKey",
    "Unlocked",
    "from_ticks",
    "to_ticks",
    # Errors
    "EngineNotOpenError",
    "GenerationConflictError",
    "ProcedureError",
    "ProcedureRegistrationError",
    "RecordNotFoundError",
    "SessionStoreError",
    # Store clients
    "AerospikeStoreClient",
    "InMemoryStoreClient",
    "StoreClient",
    "StoredRecord",
    # Engines
    "DirectLockEngine",
    "ProcedureLockEngine",
    "ProcedureRegistrar",
    "SessionLockEngine",
    # Configuration and lifecycle
    "SessionStateStore",
    "SessionStoreContext",
    "StoreConfig",
    "load_config",
]
