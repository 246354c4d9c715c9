"""Abstract base class for store clients.

A store client exposes single-record operations on a key-value store
whose records carry a server-maintained *generation* counter.  The lock
engines build mutual exclusion entirely from these primitives.

Classes
-------
- StoredRecord  — bins plus generation returned by ``get``
- StoreClient   — abstract base for all store adapters
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from session_state_lock.keys import StoreKey


@dataclass(frozen=True)
class StoredRecord:
    """A record as read from the store.

    Attributes
    ----------
    bins:
        Field name to value mapping.  Only the requested bins are present
        when ``get`` was called with a bin list.
    generation:
        Store-maintained version counter, incremented on every write.
    """

    bins: Mapping[str, Any] = field(default_factory=dict)
    generation: int = 0


class StoreClient(ABC):
    """Protocol for generation-guarded single-record operations.

    Implementations must be safe for concurrent use from many threads:
    one client instance is shared by every caller in a process.
    """

    @abstractmethod
    def get(
        self,
        key: StoreKey,
        bins: Sequence[str] | None = None,
        *,
        timeout_ms: int | None = None,
    ) -> StoredRecord | None:
        """Read a record.

        Parameters
        ----------
        key:
            Record address.
        bins:
            Restrict the read to these bins.  ``None`` reads every bin.
        timeout_ms:
            Per-call timeout override in milliseconds.

        Returns
        -------
        StoredRecord | None
            The record, or ``None`` if it does not exist.
        """

    @abstractmethod
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
        """Write ``bins`` into the record, creating it if needed.

        Bins not named in ``bins`` keep their stored values unless
        ``replace`` is set.

        Parameters
        ----------
        key:
            Record address.
        bins:
            Bins to write.
        generation:
            When given, the write succeeds only if the stored generation
            equals this value.
        ttl:
            Time-to-live in seconds applied to the record.  ``None`` uses
            the store default.
        update_only:
            When True, fail instead of creating a missing record.
        replace:
            When True, drop every bin not named in ``bins``.
        timeout_ms:
            Per-call timeout override in milliseconds.

        Raises
        ------
        GenerationConflictError
            If ``generation`` was given and does not match.
        RecordNotFoundError
            If ``update_only`` is set and the record does not exist.
        """

    @abstractmethod
    def delete(
        self,
        key: StoreKey,
        *,
        generation: int | None = None,
        timeout_ms: int | None = None,
    ) -> bool:
        """Delete a record.

        Returns
        -------
        bool
            True if a record was deleted, False if none existed.

        Raises
        ------
        GenerationConflictError
            If ``generation`` was given and does not match.
        """

    @abstractmethod
    def execute(
        self,
        key: StoreKey,
        module: str,
        function: str,
        args: Sequence[Any] = (),
        *,
        timeout_ms: int | None = None,
    ) -> Any:
        """Run a registered server-side procedure atomically on one record.

        Raises
        ------
        ProcedureError
            If the module or function is unknown or the procedure fails.
        """

    @abstractmethod
    def list_procedures(self) -> list[str]:
        """Return the file names of every procedure module installed."""

    @abstractmethod
    def register_procedure(self, filename: str, source: str) -> None:
        """Install (or replace) a procedure module under ``filename``.

        Registering the same module twice must not fail.
        """

    def close(self) -> None:
        """Release client resources.  The default does nothing."""

    def __enter__(self) -> StoreClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()
