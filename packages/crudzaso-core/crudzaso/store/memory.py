"""
In-memory store.

Behaves like a single browser tab's localStorage. Two MemoryStore handles
created with the same backing dict behave like two tabs sharing storage.
"""

import logging

from crudzaso.store.interface import KeyValueStore, check_revision

logger = logging.getLogger(__name__)


class MemoryStore(KeyValueStore):
    """Dict-backed store, used for tests and the `memory` storage type."""

    def __init__(self, data: dict[str, str] | None = None):
        self._data = data if data is not None else {}

    async def connect(self) -> None:
        logger.debug("Memory store ready")

    async def close(self) -> None:
        pass

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    async def compare_and_set(self, key: str, value: str, revision_key: str, expected: int) -> int:
        # No await between the check and the writes
        found = check_revision(key, self._data.get(revision_key), expected)
        self._data[key] = value
        self._data[revision_key] = str(found + 1)
        return found + 1

    @property
    def backend(self) -> str:
        return "memory"

    def share(self) -> "MemoryStore":
        """Return another handle over the same data (a second tab)."""
        return MemoryStore(self._data)
