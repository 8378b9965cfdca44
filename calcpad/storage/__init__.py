"""Durable key-value storage for calculator state.

Values are opaque strings (JSON blobs) stored under fixed namespace keys.
SQLite is the default backend; any SQLAlchemy URL works.
"""

from .kv import PERSISTENCE_ERRORS, KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore

__all__ = ["PERSISTENCE_ERRORS", "KeyValueStore", "MemoryKeyValueStore", "SqlKeyValueStore"]
