"""
In-memory adapter implementing DatabaseInterface.
Stores everything in Python dicts and lists; data is lost on restart.
"""
import copy
from datetime import datetime
from typing import Dict, List, Optional

from .base import DatabaseInterface
from .filtering import filter_documents
from ...domain.value_objects import StructuredFilter
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class MemoryAdapter(DatabaseInterface):
    """
    Dict-backed storage. Rows are deep-copied in and out so callers never
    share state with storage.
    """

    def __init__(self):
        self._documents: Dict[str, Dict] = {}
        self._embeddings: Dict[str, Dict] = {}
        self._audit: List[Dict] = []

    async def initialize(self):
        """Initialize database (clears any existing data)."""
        self._documents.clear()
        self._embeddings.clear()
        self._audit.clear()

    async def close(self):
        """Nothing to release."""
        pass

    # Document operations
    async def create_document(self, doc_data: Dict) -> Dict:
        """Insert a document row; the id must be new."""
        doc_id = doc_data.get("id")
        if not doc_id:
            raise ValueError("Document must have an 'id' field")
        if doc_id in self._documents:
            raise ValueError(f"Document already exists: {doc_id}")

        now = datetime.now().isoformat()
        record = copy.deepcopy(doc_data)
        record.setdefault("created_at", now)
        record.setdefault("updated_at", record["created_at"])

        self._documents[doc_id] = record
        return copy.deepcopy(record)

    async def get_document(self, doc_id: str) -> Optional[Dict]:
        """Document row by id, or None."""
        doc = self._documents.get(doc_id)
        return copy.deepcopy(doc) if doc else None

    async def get_all_documents(self) -> List[Dict]:
        """Get all documents in creation order (insertion order breaks ties)."""
        docs = sorted(self._documents.values(), key=lambda d: d.get("created_at") or "")
        return [copy.deepcopy(doc) for doc in docs]

    async def query_documents(self, criteria: StructuredFilter) -> List[Dict]:
        """Get documents matching a typed filter."""
        return [copy.deepcopy(doc) for doc in filter_documents(list(self._documents.values()), criteria)]

    async def update_document(self, doc_id: str, updates: Dict) -> Optional[Dict]:
        """Update a document."""
        if doc_id not in self._documents:
            return None

        doc = copy.deepcopy(self._documents[doc_id])
        doc.update(copy.deepcopy(updates))
        doc["updated_at"] = datetime.now().isoformat()
        self._documents[doc_id] = doc
        return copy.deepcopy(doc)

    async def delete_document(self, doc_id: str) -> bool:
        """Delete a document and its embedding."""
        if doc_id not in self._documents:
            return False
        del self._documents[doc_id]
        self._embeddings.pop(doc_id, None)
        return True

    # Embedding operations
    async def get_embedding(self, doc_id: str) -> Optional[Dict]:
        row = self._embeddings.get(doc_id)
        return copy.deepcopy(row) if row else None

    async def upsert_embedding(self, embedding_data: Dict) -> Dict:
        """Replace the whole row in a single assignment."""
        doc_id = embedding_data.get("document_id")
        if not doc_id:
            raise ValueError("Embedding must have a 'document_id' field")
        self._embeddings[doc_id] = copy.deepcopy(embedding_data)
        return copy.deepcopy(embedding_data)

    async def delete_embedding(self, doc_id: str) -> bool:
        return self._embeddings.pop(doc_id, None) is not None

    async def list_embeddings(self) -> List[Dict]:
        return [copy.deepcopy(row) for row in self._embeddings.values()]

    # Audit operations
    async def insert_audit_entry(self, entry_data: Dict) -> Dict:
        if not entry_data.get("id"):
            raise ValueError("Audit entry must have an 'id' field")
        self._audit.append(copy.deepcopy(entry_data))
        return copy.deepcopy(entry_data)

    async def get_last_audit_entry(self) -> Optional[Dict]:
        return copy.deepcopy(self._audit[-1]) if self._audit else None

    async def list_audit_entries(self, limit: Optional[int] = None) -> List[Dict]:
        newest_first = list(reversed(self._audit))
        if limit is not None:
            newest_first = newest_first[:limit]
        return [copy.deepcopy(row) for row in newest_first]

    async def list_audit_chain(self) -> List[Dict]:
        return [copy.deepcopy(row) for row in self._audit]
