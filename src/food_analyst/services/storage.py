"""Key-value persistence abstractions."""

import json
from dataclasses import dataclass, field
from typing import Protocol


class KeyValueStore(Protocol):
    """Async key-value store holding JSON-serializable blobs."""

    async def get(self, key: str) -> object | None:
        """Return the stored value, or None when the key is missing."""

    async def set(self, key: str, value: object) -> None:
        """Store a value under a key, replacing any previous one."""

    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store used for tests and local runs."""

    values: dict[str, str] = field(default_factory=dict)

    async def get(self, key: str) -> object | None:
        """Return a deep copy of the stored value."""
        raw = self.values.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: object) -> None:
        """Store the value serialized, so later mutation of it has no effect."""
        self.values[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        """Remove a key if present."""
        self.values.pop(key, None)
