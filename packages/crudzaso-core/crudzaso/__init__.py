"""
Crudzaso Core Library

Academic task management: tasks, search and statistics over a key-value
store backed by memory, SQLite or PostgreSQL.
"""

__version__ = "0.1.0"

from crudzaso.app import AppContext, create_context
from crudzaso.config import CrudzasoConfig, load_config
from crudzaso.store import KeyValueStore, get_store

__all__ = [
    "load_config",
    "CrudzasoConfig",
    "get_store",
    "KeyValueStore",
    "AppContext",
    "create_context",
]
