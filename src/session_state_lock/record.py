"""Session record layout.

The bin names and value encodings below are shared with every other
reader of the same records (including the server-side procedure module),
so they must not change.

=================  ========================================================
Bin                Meaning
=================  ========================================================
``Locked``         True while a caller holds exclusive access
``LockId``         Monotonic lock counter; 0 means never locked
``LockTime``       UTC acquisition time in .NET ticks (100 ns since 0001-01-01)
``SessionTimeout`` TTL in seconds applied to the record
``SessionItems``   Map of item name to encoded bytes; absent until written
=================  ========================================================
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from session_state_lock.store.base import StoredRecord

BIN_LOCKED = "Locked"
BIN_LOCK_ID = "LockId"
BIN_LOCK_TIME = "LockTime"
BIN_SESSION_TIMEOUT = "SessionTimeout"
BIN_SESSION_ITEMS = "SessionItems"

ALL_BINS: tuple[str, ...] = (
    BIN_LOCKED,
    BIN_LOCK_ID,
    BIN_LOCK_TIME,
    BIN_SESSION_TIMEOUT,
    BIN_SESSION_ITEMS,
)

_TICKS_EPOCH = datetime(1, 1, 1, tzinfo=timezone.utc)
_TICKS_PER_MICROSECOND = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_ticks(moment: datetime) -> int:
    """Convert an aware datetime to .NET ticks."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    micros = (moment - _TICKS_EPOCH) // timedelta(microseconds=1)
    return micros * _TICKS_PER_MICROSECOND


def from_ticks(ticks: int) -> datetime:
    """Convert .NET ticks to an aware UTC datetime."""
    return _TICKS_EPOCH + timedelta(microseconds=int(ticks) // _TICKS_PER_MICROSECOND)


def is_locked(value: Any) -> bool:
    """Interpret a stored ``Locked`` value.

    Older writers store the flag as the integer 1/0 rather than a boolean.
    """
    return bool(value)


@dataclass(frozen=True)
class SessionRecord:
    """Decoded view of a stored session record."""

    locked: bool
    lock_id: int
    lock_time: datetime
    session_timeout: int
    items: Mapping[str, bytes] | None
    generation: int

    @classmethod
    def from_stored(cls, stored: StoredRecord) -> SessionRecord:
        bins = stored.bins
        return cls(
            locked=is_locked(bins.get(BIN_LOCKED, False)),
            lock_id=int(bins.get(BIN_LOCK_ID, 0)),
            lock_time=from_ticks(bins.get(BIN_LOCK_TIME, 0)),
            session_timeout=int(bins.get(BIN_SESSION_TIMEOUT, 0)),
            items=bins.get(BIN_SESSION_ITEMS),
            generation=stored.generation,
        )

    def lock_age(self, now: datetime) -> timedelta:
        return now - self.lock_time


def fresh_record_bins(
    now: datetime,
    session_timeout: int,
    items: Mapping[str, bytes] | None = None,
) -> dict[str, Any]:
    """Return the bins of a new, unlocked record with ``LockId`` 0."""
    bins: dict[str, Any] = {
        BIN_LOCKED: False,
        BIN_LOCK_ID: 0,
        BIN_LOCK_TIME: to_ticks(now),
        BIN_SESSION_TIMEOUT: session_timeout,
    }
    if items is not None:
        bins[BIN_SESSION_ITEMS] = dict(items)
    return bins
