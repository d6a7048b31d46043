"""Abstract key-value store interface."""

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """JSON-valued key-value store with get/set primitives."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """
        Read the value stored under key.

        Args:
            key: Storage key

        Returns:
            Decoded JSON value, or None if the key was never set
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        Replace the value stored under key.

        Args:
            key: Storage key
            value: JSON-serializable value
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Cleanup connections and resources."""
        ...

    async def __aenter__(self) -> "KeyValueStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
