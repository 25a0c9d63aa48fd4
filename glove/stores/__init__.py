"""Store implementations.

This module provides the bundled persistence backends:
- In-memory store for tests and short-lived sessions
- SQLAlchemy store (SQLite by default) and its engine
"""

from glove.stores.engine import DbEngine
from glove.stores.memory import MemoryStore
from glove.stores.sql import SqlStore

__all__ = [
    "DbEngine",
    "MemoryStore",
    "SqlStore",
]
