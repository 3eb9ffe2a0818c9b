"""
Storage contract shared by the in-memory and JSON adapters.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ...domain.value_objects import StructuredFilter


class DatabaseInterface(ABC):
    """
    Abstract interface for document, embedding and audit storage.

    Audit rows can only be inserted and read: the interface has no way to
    change or remove one.
    """

    @abstractmethod
    async def initialize(self):
        """Initialize storage (load files, create collections)."""
        pass

    @abstractmethod
    async def close(self):
        """Flush and release storage."""
        pass

    # Document operations
    @abstractmethod
    async def create_document(self, doc_data: Dict) -> Dict:
        """Insert a document row; the id must be new."""
        pass

    @abstractmethod
    async def get_document(self, doc_id: str) -> Optional[Dict]:
        """Document row by id, or None."""
        pass

    @abstractmethod
    async def get_all_documents(self) -> List[Dict]:
        """Get all documents in creation order."""
        pass

    @abstractmethod
    async def query_documents(self, criteria: StructuredFilter) -> List[Dict]:
        """
        Get documents matching a typed filter, newest transaction first,
        bounded by criteria.limit.
        """
        pass

    @abstractmethod
    async def update_document(self, doc_id: str, updates: Dict) -> Optional[Dict]:
        """Update a document."""
        pass

    @abstractmethod
    async def delete_document(self, doc_id: str) -> bool:
        """Delete a document and its embedding."""
        pass

    # Embedding operations
    @abstractmethod
    async def get_embedding(self, doc_id: str) -> Optional[Dict]:
        """Get the embedding row of a document."""
        pass

    @abstractmethod
    async def upsert_embedding(self, embedding_data: Dict) -> Dict:
        """Replace a document's embedding row in full."""
        pass

    @abstractmethod
    async def delete_embedding(self, doc_id: str) -> bool:
        """Delete a document's embedding row."""
        pass

    @abstractmethod
    async def list_embeddings(self) -> List[Dict]:
        """Get every embedding row."""
        pass

    # Audit operations
    @abstractmethod
    async def insert_audit_entry(self, entry_data: Dict) -> Dict:
        """Append an audit row."""
        pass

    @abstractmethod
    async def get_last_audit_entry(self) -> Optional[Dict]:
        """Get the most recently appended audit row."""
        pass

    @abstractmethod
    async def list_audit_entries(self, limit: Optional[int] = None) -> List[Dict]:
        """Get audit rows, most recent first."""
        pass

    @abstractmethod
    async def list_audit_chain(self) -> List[Dict]:
        """Get every audit row in append order."""
        pass
