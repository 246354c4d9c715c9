"""Session item collection and item codecs.

Session payloads are opaque to the lock engines: a codec turns each item
value into a byte blob and back, and the record stores the resulting
``{name: bytes}`` map in the ``SessionItems`` bin.

Classes
-------
- SessionItems     — mutable mapping that tracks modified and deleted keys
- ItemCodec        — abstract value <-> bytes codec
- PickleItemCodec  — arbitrary Python objects via ``pickle`` (default)
- JsonItemCodec    — JSON-compatible values only, UTF-8 encoded
"""
from __future__ import annotations

import json
import pickle
from abc import ABC, abstractmethod
from typing import Any, Iterator, Mapping, MutableMapping


class SessionItems(MutableMapping[str, Any]):
    """Item collection that remembers what changed since it was loaded.

    The server-procedure strategy uses ``modified_keys`` and
    ``deleted_keys`` to send a differential update instead of the whole
    payload.

    Parameters
    ----------
    initial:
        Items to start with.  They are not considered modified.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._modified: dict[str, None] = {}
        self._deleted: dict[str, None] = {}
        self.dirty = False

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._modified[key] = None
        self._deleted.pop(key, None)
        self.dirty = True

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._modified.pop(key, None)
        self._deleted[key] = None
        self.dirty = True

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    @property
    def modified_keys(self) -> list[str]:
        """Keys set since load (or the last ``mark_clean``), in write order."""
        return list(self._modified)

    @property
    def deleted_keys(self) -> list[str]:
        """Keys removed since load (or the last ``mark_clean``)."""
        return list(self._deleted)

    def mark_clean(self) -> None:
        """Forget all tracked changes."""
        self._modified.clear()
        self._deleted.clear()
        self.dirty = False

    def __repr__(self) -> str:
        return f"SessionItems({self._data!r}, dirty={self.dirty!r})"


class ItemCodec(ABC):
    """Encode single item values to bytes and back.

    ``None`` values pass through unchanged in both directions.
    """

    @abstractmethod
    def dumps(self, value: Any) -> bytes:
        """Encode a non-``None`` value."""

    @abstractmethod
    def loads(self, data: bytes) -> Any:
        """Decode bytes produced by ``dumps``."""

    def encode_value(self, value: Any) -> bytes | None:
        if value is None:
            return None
        return self.dumps(value)

    def decode_value(self, data: bytes | None) -> Any:
        if data is None:
            return None
        return self.loads(bytes(data))

    def encode(self, items: Mapping[str, Any] | None) -> dict[str, bytes | None]:
        """Encode a whole collection into the stored map form."""
        if items is None:
            return {}
        return {name: self.encode_value(value) for name, value in items.items()}

    def encode_keys(self, items: Mapping[str, Any], keys: list[str]) -> dict[str, bytes | None]:
        """Encode only ``keys`` from ``items``."""
        return {name: self.encode_value(items[name]) for name in keys}

    def decode(self, stored: Mapping[str, bytes | None] | None) -> SessionItems:
        """Decode a stored map into a clean ``SessionItems``."""
        if not stored:
            return SessionItems()
        return SessionItems(
            {str(name): self.decode_value(data) for name, data in stored.items() if name is not None}
        )


class PickleItemCodec(ItemCodec):
    """Serialize arbitrary Python objects with :mod:`pickle`.

    Only use this codec when every writer of the store is trusted.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self._protocol = protocol

    def dumps(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self._protocol)

    def loads(self, data: bytes) -> Any:
        return pickle.loads(data)  # noqa: S301


class JsonItemCodec(ItemCodec):
    """Serialize JSON-compatible values as UTF-8 encoded JSON."""

    def dumps(self, value: Any) -> bytes:
        return json.dumps(value, separators=(",", ":")).encode("utf-8")

    def loads(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))
