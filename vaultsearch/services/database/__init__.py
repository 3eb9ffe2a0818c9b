"""
Database abstraction layer.

Adapters store plain dicts; repositories in vaultsearch.repositories map
them to domain entities.
"""
from .base import DatabaseInterface
from .factory import DatabaseFactory
from .json_adapter import JSONAdapter
from .memory_adapter import MemoryAdapter

__all__ = ["DatabaseInterface", "DatabaseFactory", "JSONAdapter", "MemoryAdapter"]
