"""Durable storage for localsense.

This module provides storage backends for the index and search history:
- StorageBackend: Abstract interface
- SQLiteStorageBackend: Persistent SQLite storage
- MemoryStorageBackend: In-memory storage for tests and ephemeral use
"""

from .backend import StorageBackend
from .memory_backend import MemoryStorageBackend
from .sqlite_backend import SQLiteStorageBackend

__all__ = [
    "StorageBackend",
    "MemoryStorageBackend",
    "SQLiteStorageBackend",
]
