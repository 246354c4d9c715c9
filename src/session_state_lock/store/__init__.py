"""Store client subpackage.

All store adapters implement the ``StoreClient`` ABC.  Optional adapters
guard their third-party imports so that the package remains installable
without those extras.

Public surface
--------------
- StoreClient           — abstract base class
- StoredRecord          — bins plus generation returned by ``get``
- InMemoryStoreClient   — in-process dict store (useful for testing)
- AerospikeStoreClient  — Aerospike cluster (requires ``aerospike`` package)
"""
from __future__ import annotations

from session_state_lock.store.aerospike import AerospikeStoreClient
from session_state_lock.store.base import StoreClient, StoredRecord
from session_state_lock.store.memory import InMemoryStoreClient

__all__ = [
    "AerospikeStoreClient",
    "InMemoryStoreClient",
    "StoreClient",
    "StoredRecord",
]
