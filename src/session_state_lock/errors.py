"""Exception hierarchy for session-state-lock.

Only genuine infrastructure failures are raised to callers.  Contention
(``GenerationConflictError``) and missing records (``RecordNotFoundError``)
are raised by store clients but absorbed by the lock engines, which report
them as ordinary results.

Classes
-------
- SessionStoreError           — base class for every error raised here
- GenerationConflictError     — a generation-guarded write or delete lost
- RecordNotFoundError         — an update-only write found no record
- ProcedureError              — a server-side procedure failed or is missing
- ProcedureRegistrationError  — the procedure module could not be installed
- EngineNotOpenError          — the store context was used before ``open()``
"""
from __future__ import annotations


class SessionStoreError(RuntimeError):
    """Base class for all session store failures."""


class GenerationConflictError(SessionStoreError):
    """Raised when the stored generation differs from the expected guard."""

    def __init__(self, key: object, expected: int | None = None) -> None:
        self.key = key
        self.expected = expected
        super().__init__(
            f"Generation conflict on {key!r} (expected generation {expected!r})."
        )


class RecordNotFoundError(SessionStoreError):
    """Raised when an operation requires an existing record."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"Record {key!r} not found.")


class ProcedureError(SessionStoreError):
    """Raised when a server-side procedure call fails."""


class ProcedureRegistrationError(SessionStoreError):
    """Raised when the procedure module cannot be installed on the store."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        super().__init__(f"Could not register procedure module {filename!r}: {reason}")


class EngineNotOpenError(SessionStoreError):
    """Raised when a ``SessionStoreContext`` is used before it was opened."""
