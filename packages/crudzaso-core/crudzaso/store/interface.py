"""
Abstract key-value store interface.

The browser version kept everything in localStorage: one JSON blob per key.
Adapters reproduce that contract over memory, SQLite or PostgreSQL.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from crudzaso.errors import ConflictError, StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    Abstract base class for key-value stores.

    Implementations must support:
    - Raw string access (get, set, delete, keys)
    - Connection lifecycle (connect, close)
    - An atomic revision-checked write (compare_and_set)

    JSON helpers are built on top of the raw operations.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection/pool."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection/pool."""
        pass

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """
        Read the raw value stored under a key.

        Returns:
            The stored string or None if the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a raw string under a key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix, sorted."""
        pass

    @abstractmethod
    async def compare_and_set(self, key: str, value: str, revision_key: str, expected: int) -> int:
        """
        Store a value and bump the revision stored under revision_key, as one
        atomic step, only if that revision still equals expected.

        Returns:
            The new revision (expected + 1)

        Raises:
            ConflictError: if the stored revision is not expected
        """
        pass

    @property
    @abstractmethod
    def backend(self) -> str:
        """Short backend name ("memory", "sqlite", "postgres")."""
        pass

    async def read_json(self, key: str, default: Any = None) -> Any:
        """
        Read and decode a JSON value.

        A corrupt value is treated as absent: it is logged, removed from the
        store and the default is returned.
        """
        raw = await self.get(key)
        if raw is None:
            return default

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            error = StorageError(key, f"corrupt JSON ({e})")
            logger.warning(f"{error.message}; clearing key")
            await self.delete(key)
            return default

    async def write_json(self, key: str, value: Any) -> None:
        """Encode a value as JSON and store it."""
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(key, f"value is not JSON serializable ({e})") from e
        await self.set(key, raw)

    async def ping(self) -> bool:
        """Check the store answers a read."""
        await self.get("__ping__")
        return True

    async def write_json_if_revision(self, key: str, value: Any, revision_key: str, expected: int) -> int:
        """JSON counterpart of compare_and_set."""
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(key, f"value is not JSON serializable ({e})") from e
        return await self.compare_and_set(key, raw, revision_key, expected)


def parse_revision(raw: str | None) -> int:
    """Decode a stored revision counter; absent or unreadable counts as 0."""
    if raw is None:
        return 0
    try:
        return int(json.loads(raw))
    except (TypeError, ValueError):
        return 0


def check_revision(key: str, raw: str | None, expected: int) -> int:
    """Return the stored revision, or raise ConflictError if it moved."""
    found = parse_revision(raw)
    if found != expected:
        raise ConflictError(key, expected, found)
    return found
