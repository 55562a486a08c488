"""
Key-value storage layer supporting memory, SQLite and PostgreSQL.
"""

from crudzaso.store.factory import close_store, create_store, get_store, init_store, reset_store
from crudzaso.store.interface import KeyValueStore
from crudzaso.store.memory import MemoryStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "create_store",
    "get_store",
    "init_store",
    "close_store",
    "reset_store",
]
