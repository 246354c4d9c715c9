"""Read results returned by the lock engines.

A read yields exactly one of three shapes:

- ``NotFound``  — no record exists for the session
- ``Locked``    — another caller holds the lock; no items are exposed
- ``Unlocked``  — items are available; after an exclusive read the caller
  now holds the lock identified by ``lock_id``
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Union

from session_state_lock.items import SessionItems


@dataclass(frozen=True)
class NotFound:
    """No record exists for the session."""

    locked: bool = field(default=False, init=False)


@dataclass(frozen=True)
class Locked:
    """The record is locked by someone else.

    Attributes
    ----------
    lock_id:
        Lock id reported for the current holder.
    lock_age:
        Time since the lock was taken.  Callers use this to decide whether
        a lock was abandoned.
    """

    lock_id: int
    lock_age: timedelta
    locked: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Unlocked:
    """Items were read.

    Attributes
    ----------
    lock_id:
        For an exclusive read, the id of the lock the caller now holds.
        For a non-exclusive read, the record's current lock id.
    lock_age:
        Age of the most recent lock as observed by the read.
    items:
        Decoded session items.
    timeout:
        The record's ``SessionTimeout`` in seconds.
    initialize:
        True when the record carries no ``SessionItems`` bin, i.e. it was
        created uninitialized and the host still has to populate it.
    """

    lock_id: int
    lock_age: timedelta
    items: SessionItems
    timeout: int
    initialize: bool = False
    locked: bool = field(default=False, init=False)


ReadResult = Union[NotFound, Locked, Unlocked]
