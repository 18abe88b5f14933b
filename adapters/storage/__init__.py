"""
Key-value store backends.

Each class implements ``journal.services.gateway.KeyValueStore``.
"""

from .json_file import JsonFileKeyValueStore
from .memory import InMemoryKeyValueStore

__all__ = ["InMemoryKeyValueStore", "JsonFileKeyValueStore"]
