"""
Persistent adapter: one JSON file per collection.
Keeps the working set in memory and writes each collection to its own JSON
file after every mutation, so data persists between restarts.
"""
import asyncio
import json
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from .memory_adapter import MemoryAdapter
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class JSONAdapter(MemoryAdapter):
    """
    MemoryAdapter that mirrors every mutation to disk.

    Files: documents.json and embeddings.json (objects keyed by id) and
    audit.json (list in append order).
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize JSON adapter.

        Args:
            data_dir: Directory to store JSON files (defaults to ./data/json_db)
        """
        super().__init__()
        self.data_dir = Path(data_dir) if data_dir else Path("data") / "json_db"

        self.documents_file = self.data_dir / "documents.json"
        self.embeddings_file = self.data_dir / "embeddings.json"
        self.audit_file = self.data_dir / "audit.json"

        # serializes file writes across executor threads
        self._lock = Lock()

    async def initialize(self):
        """Initialize database - load data from JSON files."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._documents = self._load(self.documents_file, {})
        self._embeddings = self._load(self.embeddings_file, {})
        self._audit = self._load(self.audit_file, [])
        logger.info(
            f"JSON database loaded from {self.data_dir}: {len(self._documents)} documents, "
            f"{len(self._embeddings)} embeddings, {len(self._audit)} audit entries"
        )

    async def close(self):
        """Close database - save data to JSON files."""
        await self._save(self.documents_file, self._documents)
        await self._save(self.embeddings_file, self._embeddings)
        await self._save(self.audit_file, self._audit)

    def _load(self, path: Path, default):
        if not path.exists():
            return default
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    async def _save(self, path: Path, data):
        """Write a collection through a temp file and os.replace."""
        snapshot = json.dumps(data, indent=2, ensure_ascii=False)

        def _write():
            with self._lock:
                fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.name}.")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(snapshot)
                    os.replace(tmp_path, path)
                except OSError:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _write)

    # Document operations
    async def create_document(self, doc_data: Dict) -> Dict:
        result = await super().create_document(doc_data)
        await self._save(self.documents_file, self._documents)
        return result

    async def update_document(self, doc_id: str, updates: Dict) -> Optional[Dict]:
        result = await super().update_document(doc_id, updates)
        if result is not None:
            await self._save(self.documents_file, self._documents)
        return result

    async def delete_document(self, doc_id: str) -> bool:
        deleted = await super().delete_document(doc_id)
        if deleted:
            await self._save(self.documents_file, self._documents)
            await self._save(self.embeddings_file, self._embeddings)
        return deleted

    # Embedding operations
    async def upsert_embedding(self, embedding_data: Dict) -> Dict:
        result = await super().upsert_embedding(embedding_data)
        await self._save(self.embeddings_file, self._embeddings)
        return result

    async def delete_embedding(self, doc_id: str) -> bool:
        deleted = await super().delete_embedding(doc_id)
        if deleted:
            await self._save(self.embeddings_file, self._embeddings)
        return deleted

    # Audit operations
    async def insert_audit_entry(self, entry_data: Dict) -> Dict:
        result = await super().insert_audit_entry(entry_data)
        await self._save(self.audit_file, self._audit)
        return result
