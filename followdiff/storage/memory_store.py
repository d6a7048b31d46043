"""In-process key-value store."""

import copy
from typing import Any

from followdiff.storage.base import KeyValueStore


class MemoryStore(KeyValueStore):
    """Dict-backed store; values are deep-copied so callers cannot alias stored state."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.write_count = 0

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self.write_count += 1

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        pass
