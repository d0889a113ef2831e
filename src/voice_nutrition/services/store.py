"""Key-value persistence abstractions."""

import copy
from dataclasses import dataclass
from typing import Protocol


class KeyValueStore(Protocol):
    """Persistence interface for JSON-compatible values."""

    def get(self, key: str) -> object | None:
        """Return a stored value if present."""

    def set(self, key: str, value: object) -> None:
        """Store a value, replacing any previous one."""

    def delete(self, key: str) -> None:
        """Remove a value if present."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """In-memory store used for local runs and tests."""

    _values: dict[str, object]

    def __init__(self) -> None:
        self._values = {}

    def get(self, key: str) -> object | None:
        """Return a copy of the stored value."""
        value = self._values.get(key)
        if value is None:
            return None
        return copy.deepcopy(value)

    def set(self, key: str, value: object) -> None:
        """Store a copy of the value."""
        self._values[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        """Remove a stored value."""
        self._values.pop(key, None)
