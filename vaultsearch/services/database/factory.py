"""
Picks the storage adapter named by DATABASE_TYPE.
"""
from pathlib import Path
from typing import Optional, Union

from .base import DatabaseInterface
from .json_adapter import JSONAdapter
from .memory_adapter import MemoryAdapter
from ...core.config import DATABASE_TYPE, JSON_DB_PATH
from ...core.logging_config import get_logger

logger = get_logger(__name__)

SUPPORTED_DATABASES = ("memory", "json")


class DatabaseFactory:

    @staticmethod
    def create(
        database_type: Optional[str] = None,
        data_dir: Optional[Union[str, Path]] = None
    ) -> DatabaseInterface:
        """
        Build an adapter. Nothing is read from disk until initialize().

        Args:
            database_type: "memory" or "json" (DATABASE_TYPE when omitted)
            data_dir: Directory for the JSON collections (JSON_DB_PATH when omitted)

        Raises:
            ValueError: For an unknown database type
        """
        kind = (database_type or DATABASE_TYPE).strip().lower()
        if kind not in SUPPORTED_DATABASES:
            raise ValueError(f"Unsupported database type '{kind}' (expected one of {', '.join(SUPPORTED_DATABASES)})")

        if kind == "memory":
            logger.info("Document store: in-memory (nothing is persisted)")
            return MemoryAdapter()

        directory = Path(data_dir or JSON_DB_PATH)
        logger.info(f"Document store: JSON collections under {directory}")
        return JSONAdapter(data_dir=directory)
