"""Aerospike store client.

Import-guarded: ``aerospike`` is an optional dependency.  Attempting to
instantiate ``AerospikeStoreClient`` without the ``aerospike`` package
installed will raise ``ImportError`` with a helpful message.

Classes
-------
- AerospikeStoreClient  — ``StoreClient`` over the Aerospike Python client
"""
from __future__ import annotations

import logging
import os
import tempfile
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from session_state_lock.errors import (
    GenerationConflictError,
    ProcedureError,
    RecordNotFoundError,
    SessionStoreError,
)
from session_state_lock.keys import StoreKey
from session_state_lock.store.base import StoreClient, StoredRecord

if TYPE_CHECKING:
    from session_state_lock.config import StoreConfig

logger = logging.getLogger(__name__)

_AEROSPIKE_IMPORT_ERROR = (
    "The 'aerospike' package is required for AerospikeStoreClient. "
    "Install it with: pip install aerospike"
)


class AerospikeStoreClient(StoreClient):
    """Runs store operations against an Aerospike cluster.

    One instance owns one cluster connection pool and is safe to share
    between threads.

    Parameters
    ----------
    hosts:
        Seed nodes as ``(host, port)`` pairs.
    user, password:
        Optional credentials for secured clusters.
    connection_timeout:
        Initial connection timeout in milliseconds.
    operation_timeout:
        Default total timeout for reads and writes in milliseconds.
    max_retries:
        Retries for a failed read or write.
    sleep_between_retries:
        Milliseconds to sleep between retries.
    max_conns_per_node:
        Connection pool size per cluster node.
    max_socket_idle:
        Seconds an idle pooled socket is kept.
    tend_interval:
        Milliseconds between cluster tend passes.
    """

    def __init__(
        self,
        hosts: Sequence[tuple[str, int]],
        user: str | None = None,
        password: str | None = None,
        connection_timeout: int = 1000,
        operation_timeout: int = 100,
        max_retries: int = 1,
        sleep_between_retries: int = 10,
        max_conns_per_node: int = 300,
        max_socket_idle: int = 55,
        tend_interval: int = 1000,
    ) -> None:
        try:
            import aerospike as aerospike_module  # noqa: PLC0415
        except ImportError as exc:
            raise ImportError(_AEROSPIKE_IMPORT_ERROR) from exc

        self._as = aerospike_module
        self._ex = aerospike_module.exception

        retry_policy = {
            "total_timeout": operation_timeout,
            "max_retries": max_retries,
            "sleep_between_retries": sleep_between_retries,
        }
        config: dict[str, Any] = {
            "hosts": [tuple(host) for host in hosts],
            "connect_timeout": connection_timeout,
            "max_conns_per_node": max_conns_per_node,
            "max_socket_idle": max_socket_idle,
            "tend_interval": tend_interval,
            "policies": {
                "read": dict(retry_policy),
                "write": dict(retry_policy),
                "apply": dict(retry_policy),
                "remove": dict(retry_policy),
            },
        }
        if user:
            config["user"] = user
            config["password"] = password or ""

        try:
            self._client = aerospike_module.client(config).connect()
        except self._ex.AerospikeError as exc:
            raise SessionStoreError(f"Could not connect to Aerospike at {hosts!r}: {exc}") from exc
        self._hosts = list(hosts)

    @classmethod
    def from_config(cls, config: StoreConfig) -> AerospikeStoreClient:
        """Build a client from a :class:`~session_state_lock.config.StoreConfig`."""
        return cls(
            hosts=config.host_list(),
            user=config.user,
            password=config.password,
            connection_timeout=config.connection_timeout,
            operation_timeout=config.operation_timeout,
            max_retries=config.max_retries,
            sleep_between_retries=config.sleep_between_retries,
            max_conns_per_node=config.max_conns_per_node,
            max_socket_idle=config.max_socket_idle,
            tend_interval=config.tend_interval,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _policy(timeout_ms: int | None, **extra: Any) -> dict[str, Any] | None:
        policy = dict(extra)
        if timeout_ms is not None:
            policy["total_timeout"] = timeout_ms
        return policy or None

    def _wrap(self, exc: Exception, key: StoreKey, expected: int | None = None) -> SessionStoreError:
        """Translate a client exception into this package's hierarchy."""
        if isinstance(exc, self._ex.RecordGenerationError):
            return GenerationConflictError(key, expected)
        if isinstance(exc, self._ex.RecordNotFound):
            return RecordNotFoundError(key)
        return SessionStoreError(f"Aerospike operation on {key!r} failed: {exc}")

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
        policy = self._policy(timeout_ms)
        try:
            if bins is None:
                _, meta, record = self._client.get(tuple(key), policy)
            else:
                _, meta, record = self._client.select(tuple(key), list(bins), policy)
        except self._ex.RecordNotFound:
            return None
        except self._ex.AerospikeError as exc:
            raise self._wrap(exc, key) from exc
        if meta is None:
            return None
        return StoredRecord(dict(record or {}), int(meta["gen"]))

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
        meta: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        if generation is not None:
            meta["gen"] = generation
            extra["gen"] = self._as.POLICY_GEN_EQ
        if ttl is not None:
            meta["ttl"] = ttl
        if update_only:
            extra["exists"] = self._as.POLICY_EXISTS_UPDATE
        elif replace:
            extra["exists"] = self._as.POLICY_EXISTS_REPLACE
        try:
            self._client.put(tuple(key), dict(bins), meta or None, self._policy(timeout_ms, **extra))
        except self._ex.AerospikeError as exc:
            raise self._wrap(exc, key, generation) from exc

    def delete(
        self,
        key: StoreKey,
        *,
        generation: int | None = None,
        timeout_ms: int | None = None,
    ) -> bool:
        meta: dict[str, Any] | None = None
        extra: dict[str, Any] = {}
        if generation is not None:
            meta = {"gen": generation}
            extra["gen"] = self._as.POLICY_GEN_EQ
        try:
            self._client.remove(tuple(key), meta, self._policy(timeout_ms, **extra))
        except self._ex.RecordNotFound:
            return False
        except self._ex.AerospikeError as exc:
            raise self._wrap(exc, key, generation) from exc
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
        try:
            return self._client.apply(tuple(key), module, function, list(args), self._policy(timeout_ms))
        except self._ex.UDFError as exc:
            raise ProcedureError(f"{module}.{function} failed on {key!r}: {exc}") from exc
        except self._ex.AerospikeError as exc:
            raise self._wrap(exc, key) from exc

    def list_procedures(self) -> list[str]:
        try:
            modules = self._client.udf_list()
        except self._ex.AerospikeError as exc:
            raise SessionStoreError(f"Could not list procedure modules: {exc}") from exc
        return [str(module["name"]) for module in modules or []]

    def register_procedure(self, filename: str, source: str) -> None:
        # udf_put uploads a local file and registers it under its base name.
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, filename)
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(source)
            try:
                self._client.udf_put(path, self._as.UDF_TYPE_LUA)
            except self._ex.AerospikeError as exc:
                raise ProcedureError(f"Could not upload {filename!r}: {exc}") from exc
        logger.debug("AerospikeStoreClient: uploaded procedure module %r", filename)

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"AerospikeStoreClient(hosts={self._hosts!r})"
