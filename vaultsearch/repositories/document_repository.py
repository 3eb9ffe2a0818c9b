"""
Document Repository - maps between Document entities and database adapters.
"""
from datetime import date, datetime
from typing import List, Optional

from ..core.exceptions import DocumentNotFoundError
from ..domain.entities import Document, DocumentEntity
from ..domain.value_objects import EntityCategory, StructuredFilter
from ..services.database.base import DatabaseInterface


class DocumentRepository:
    """
    Repository for document data access.

    The search core only writes entity fields; text changes come from the
    capture pipeline through update_text().
    """

    def __init__(self, db_service: DatabaseInterface):
        """
        Initialize repository with database service.

        Args:
            db_service: Database adapter (dependency injection)
        """
        self._db = db_service

    def _to_entity(self, data: dict) -> Document:
        """Convert database record to domain entity."""
        return Document(
            id=data["id"],
            title=data.get("title", ""),
            extracted_text=data.get("extracted_text", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
            vendor=data.get("vendor"),
            amount=data.get("amount"),
            transaction_date=date.fromisoformat(data["transaction_date"]) if data.get("transaction_date") else None,
            category=EntityCategory.parse(data.get("category")),
            entity_confidence=data.get("entity_confidence"),
            entities_extracted_at=(
                datetime.fromisoformat(data["entities_extracted_at"]) if data.get("entities_extracted_at") else None
            ),
        )

    def _to_dict(self, document: Document) -> dict:
        """Convert domain entity to database record."""
        return {
            "id": document.id,
            "title": document.title,
            "extracted_text": document.extracted_text,
            "created_at": document.created_at.isoformat(),
            "updated_at": document.updated_at.isoformat() if document.updated_at else None,
            "vendor": document.vendor,
            "amount": document.amount,
            "transaction_date": document.transaction_date.isoformat() if document.transaction_date else None,
            "category": document.category.value if document.category else None,
            "entity_confidence": document.entity_confidence,
            "entities_extracted_at": (
                document.entities_extracted_at.isoformat() if document.entities_extracted_at else None
            ),
        }

    async def create(self, document: Document) -> Document:
        """Create a new document."""
        data = self._to_dict(document)
        if data["updated_at"] is None:
            del data["updated_at"]
        result = await self._db.create_document(data)
        return self._to_entity(result)

    async def get_by_id(self, doc_id: str) -> Optional[Document]:
        """Get document by ID."""
        data = await self._db.get_document(doc_id)
        return self._to_entity(data) if data else None

    async def get_all(self) -> List[Document]:
        """Get all documents in creation order."""
        return [self._to_entity(data) for data in await self._db.get_all_documents()]

    async def query(self, criteria: StructuredFilter) -> List[Document]:
        """Run a typed filter against the store."""
        return [self._to_entity(data) for data in await self._db.query_documents(criteria)]

    async def get_text(self, doc_id: str) -> str:
        """
        Get a document's extracted text.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
        """
        data = await self._db.get_document(doc_id)
        if data is None:
            raise DocumentNotFoundError(doc_id)
        return data.get("extracted_text") or ""

    async def update_entities(
        self,
        doc_id: str,
        entity: DocumentEntity,
        extracted_at: Optional[datetime] = None
    ) -> Document:
        """
        Persist extracted entity fields and stamp the extraction time.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
        """
        updates = {
            "vendor": entity.vendor,
            "amount": entity.amount,
            "transaction_date": entity.transaction_date.isoformat() if entity.transaction_date else None,
            "category": entity.category.value if entity.category else None,
            "entity_confidence": entity.confidence,
            "entities_extracted_at": (extracted_at or datetime.now()).isoformat(),
        }
        result = await self._db.update_document(doc_id, updates)
        if result is None:
            raise DocumentNotFoundError(doc_id)
        return self._to_entity(result)

    async def update_text(self, doc_id: str, title: Optional[str], extracted_text: str) -> Document:
        """
        Replace a document's text. Clears the extraction timestamp so the
        next reprocessing sweep picks the document up again.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
        """
        updates = {"extracted_text": extracted_text, "entities_extracted_at": None}
        if title is not None:
            updates["title"] = title
        result = await self._db.update_document(doc_id, updates)
        if result is None:
            raise DocumentNotFoundError(doc_id)
        return self._to_entity(result)

    async def delete(self, doc_id: str) -> bool:
        """Delete document."""
        return await self._db.delete_document(doc_id)
