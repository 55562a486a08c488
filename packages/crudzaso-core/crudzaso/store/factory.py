"""
Store factory.

Creates the appropriate key-value store based on configuration.
"""

import logging

from crudzaso.config import STORAGE_TYPES
from crudzaso.store.interface import KeyValueStore

logger = logging.getLogger(__name__)

# Global store instance (singleton pattern)
_store: KeyValueStore | None = None


def create_store(config) -> KeyValueStore:
    """
    Build a new store for the configured backend.

    Raises:
        ValueError: If storage configuration is invalid
    """
    store_type = config.storage.type.lower()

    if store_type in ("postgres", "postgresql"):
        from crudzaso.store.postgres import PostgresStore

        url = config.storage.postgres_url
        if not url:
            raise ValueError(
                "PostgreSQL URL not configured. "
                "Set storage.postgres.url in config or CRUDZASO_DATABASE_URL env var."
            )

        logger.info("Using PostgreSQL store")
        return PostgresStore(url)

    if store_type == "sqlite":
        from crudzaso.store.sqlite import SQLiteStore

        path = config.storage.sqlite_path
        logger.info(f"Using SQLite store: {path}")
        return SQLiteStore(path)

    if store_type == "memory":
        from crudzaso.store.memory import MemoryStore

        logger.info("Using in-memory store")
        return MemoryStore()

    raise ValueError(
        f"Unknown storage type: {store_type}. "
        f"Use one of: {', '.join(STORAGE_TYPES)}."
    )


def get_store(config=None) -> KeyValueStore:
    """
    Get or create the store based on configuration.

    Uses singleton pattern - returns same store instance on subsequent calls.

    Args:
        config: Optional CrudzasoConfig. If not provided, loads from default location.
    """
    global _store

    if _store is not None:
        return _store

    if config is None:
        from crudzaso.config import load_config
        config = load_config()

    _store = create_store(config)
    return _store


async def init_store(config=None) -> KeyValueStore:
    """Get the store and connect it."""
    store = get_store(config)
    await store.connect()
    return store


async def close_store() -> None:
    """Close the global store connection."""
    global _store

    if _store is not None:
        await _store.close()
        _store = None


def reset_store() -> None:
    """
    Reset the global store instance.

    Useful for testing or when configuration changes.
    """
    global _store
    _store = None
