"""
Domain entities - Core business objects.
These represent the business concepts, not database models.
"""
import dataclasses
import hashlib
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import numpy as np

from .value_objects import AuditAction, AuditLogLevel, EntityCategory


@dataclass
class Document:
    """
    Document entity - a captured document and its derived entity fields.

    Text is produced by the capture pipeline; the search core only writes
    the entity fields.
    """
    id: str
    title: str
    extracted_text: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    vendor: Optional[str] = None
    amount: Optional[float] = None
    transaction_date: Optional[date] = None
    category: Optional[EntityCategory] = None
    entity_confidence: Optional[float] = None
    entities_extracted_at: Optional[datetime] = None

    def has_text(self) -> bool:
        return bool(self.extracted_text and self.extracted_text.strip())

    def needs_extraction(self) -> bool:
        """Check if entity extraction has never run for this document."""
        return self.entities_extracted_at is None

    def embedding_text(self, extracted_text: Optional[str] = None) -> str:
        """Text fed to the embedding function (title plus the given or stored text)."""
        body = self.extracted_text if extracted_text is None else extracted_text
        return f"{self.title}. {body or ''}"

    def text_hash(self) -> str:
        return hashlib.sha256(self.embedding_text().encode("utf-8")).hexdigest()


@dataclass
class DocumentEntity:
    """Fields extracted from a document's text."""
    vendor: Optional[str] = None
    amount: Optional[float] = None
    transaction_date: Optional[date] = None
    category: Optional[EntityCategory] = None
    confidence: float = 0.0

    def has_data(self) -> bool:
        """OTHER on its own does not count as an extracted value."""
        has_category = self.category is not None and self.category != EntityCategory.OTHER
        return bool(self.vendor or self.amount is not None or self.transaction_date or has_category)


@dataclass
class EmbeddingRecord:
    """
    Embedding row for one document. Rows are replaced whole, never patched.
    """
    document_id: str
    vector: np.ndarray
    vectorized_at: datetime
    text_hash: str

    def is_stale_for(self, document: Document) -> bool:
        return self.text_hash != document.text_hash()


@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable audit record. `checksum` covers every other field in the
    order returned by canonical_fields().
    """
    id: str
    level: AuditLogLevel
    action: AuditAction
    resource_type: str
    resource_id: Optional[str]
    user_id: str
    timestamp: datetime
    details: Optional[str]
    location: Optional[str]
    device_info: Optional[str]
    is_success: bool
    error_message: Optional[str]
    previous_entry_id: Optional[str]
    previous_checksum: Optional[str]
    checksum: str = ""

    def canonical_fields(self) -> dict:
        return {
            "id": self.id,
            "level": self.level.value,
            "action": self.action.value,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "userId": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
            "location": self.location,
            "deviceInfo": self.device_info,
            "isSuccess": self.is_success,
            "errorMessage": self.error_message,
            "previousEntryId": self.previous_entry_id,
            "previousChecksum": self.previous_checksum,
        }

    def is_chain_head(self) -> bool:
        return self.previous_entry_id is None

    def replace(self, **changes) -> "AuditEntry":
        return dataclasses.replace(self, **changes)
