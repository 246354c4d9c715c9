"""Store key derivation.

A session is addressed by ``(namespace, set, "<application>_<session_id>")``.

Classes
-------
- StoreKey    — the store's three-part record address
- KeyDeriver  — maps session identifiers to ``StoreKey`` values
"""
from __future__ import annotations

from typing import NamedTuple

_SEPARATOR = "_"


class StoreKey(NamedTuple):
    """Record address inside the store.

    The field order matches the ``(namespace, set, primary_key)`` tuple the
    Aerospike client accepts, so a ``StoreKey`` can be handed to it as-is.
    """

    namespace: str
    set_name: str
    user_key: str


class KeyDeriver:
    """Derive store keys for one application scope.

    Parameters
    ----------
    namespace:
        Store namespace holding the session records.
    set_name:
        Set (table) inside the namespace.
    application_name:
        Prefix that isolates this application's sessions from others
        sharing the same namespace and set.
    """

    def __init__(self, namespace: str, set_name: str, application_name: str = "") -> None:
        self._namespace = namespace
        self._set_name = set_name
        self._prefix = application_name + _SEPARATOR

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def set_name(self) -> str:
        return self._set_name

    def derive(self, session_id: str) -> StoreKey:
        """Return the ``StoreKey`` for ``session_id``."""
        return StoreKey(self._namespace, self._set_name, self._prefix + session_id)

    def __call__(self, session_id: str) -> StoreKey:
        return self.derive(session_id)

    def __repr__(self) -> str:
        return (
            f"KeyDeriver(namespace={self._namespace!r}, set_name={self._set_name!r}, "
            f"prefix={self._prefix!r})"
        )
