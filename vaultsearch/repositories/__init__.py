from .audit_repository import AuditRepository
from .document_repository import DocumentRepository
from .embedding_repository import EmbeddingRepository

__all__ = ["AuditRepository", "DocumentRepository", "EmbeddingRepository"]
