"""Lock engine subpackage.

Public surface
--------------
- SessionLockEngine    — abstract base shared by both strategies
- DirectLockEngine     — client-side read plus generation-guarded write
- ProcedureLockEngine  — atomic server-side procedure calls
"""
from __future__ import annotations

from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.engine.direct import DirectLockEngine
from session_state_lock.engine.procedure import ProcedureLockEngine

__all__ = [
    "DirectLockEngine",
    "ProcedureLockEngine",
    "SessionLockEngine",
]
