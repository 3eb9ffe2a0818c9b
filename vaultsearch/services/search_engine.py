"""
LocalSearchEngine - the facade exposed to the HTTP layer.

Built once at startup by build_search_engine() with every collaborator
passed in explicitly; nothing here is a module-level singleton.
"""
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..core.config import (
    COMPLEX_CANDIDATE_LIMIT,
    MIN_SIMILARITY,
    SEARCH_TOP_K,
    STRUCTURED_RESULT_LIMIT,
)
from ..core.exceptions import DocumentNotFoundError
from ..domain.entities import AuditEntry, Document
from ..domain.results import (
    AuditDetails,
    IndexStats,
    IntegrityReport,
    ModelStatus,
    RateLimitStats,
    ReprocessingStats,
    ReprocessingSummary,
    RouterResult,
    VectorizationSummary,
)
from ..domain.value_objects import AuditAction, AuditLogLevel
from ..repositories import AuditRepository, DocumentRepository, EmbeddingRepository
from .analysis_engine import AnalysisEngine
from .audit_service import AuditTrail
from .database.base import DatabaseInterface
from .database.factory import DatabaseFactory
from .embedding_index import EmbeddingIndex
from .entity_extraction_service import EntityExtractionService
from .input_guard import InputGuard
from .model_store import ModelArtifactStore
from .providers.base import EmbeddingProvider, GenerativeProvider
from .providers.factory import ProviderFactory
from .query_router import QueryRouter
from .rate_limiter import QueryRateLimiter
from .reprocessing_service import ReprocessingService
from ..core.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class LocalSearchEngine:
    """
    Owns the wired services and exposes the operations a UI layer needs.
    """

    def __init__(
        self,
        db: DatabaseInterface,
        documents: DocumentRepository,
        audit: AuditTrail,
        limiter: QueryRateLimiter,
        index: EmbeddingIndex,
        engine: AnalysisEngine,
        router: QueryRouter,
        reprocessing: ReprocessingService
    ):
        self.db = db
        self.documents = documents
        self.audit = audit
        self.limiter = limiter
        self.index = index
        self.engine = engine
        self.router = router
        self.reprocessing = reprocessing

    async def start(self) -> None:
        """Initialize storage and load the model if one is installed."""
        await self.db.initialize()
        ready = await self.engine.load()
        logger.info(f"Search engine started (analysis {'ready' if ready else 'unavailable'})")

    async def close(self) -> None:
        self.engine.unload()
        await self.db.close()

    # Queries

    async def search(self, actor_id: str, raw_query: str) -> RouterResult:
        return await self.router.route(actor_id, raw_query)

    def get_rate_limit_stats(self, actor_id: str) -> RateLimitStats:
        return self.limiter.stats(actor_id)

    # Audit

    async def get_recent_audit_entries(self, limit: int = 50) -> List[AuditEntry]:
        return await self.audit.get_recent_entries(limit)

    async def verify_audit_integrity(self) -> IntegrityReport:
        return await self.audit.verify_integrity()

    # Embedding index

    async def vectorize_all(self, on_progress: Optional[ProgressCallback] = None, actor: str = "system") -> VectorizationSummary:
        return await self.index.vectorize_all(on_progress, actor=actor)

    async def get_vectorization_stats(self) -> IndexStats:
        return await self.index.stats()

    def cancel_vectorization(self) -> bool:
        return self.index.cancel()

    # Reprocessing

    async def reprocess_all(
        self,
        on_progress: Optional[ProgressCallback] = None,
        force_all: bool = False,
        actor: str = "system"
    ) -> ReprocessingSummary:
        return await self.reprocessing.reprocess_all(on_progress, force_all=force_all, actor=actor)

    async def reprocess_one(self, document_id: str, actor: str = "system") -> bool:
        return await self.reprocessing.reprocess_one(document_id, actor=actor)

    def cancel_reprocessing(self) -> bool:
        return self.reprocessing.cancel()

    async def get_reprocessing_stats(self) -> ReprocessingStats:
        return await self.reprocessing.get_stats()

    # Model

    def analysis_ready(self) -> bool:
        return self.engine.is_ready()

    def model_status(self) -> ModelStatus:
        store = self.engine.store
        return ModelStatus(
            provider=self.engine.provider_name,
            ready=self.engine.is_ready(),
            installed=store.exists(),
            path=str(store.path),
        )

    async def install_model(
        self,
        source: Path,
        on_progress: Optional[ProgressCallback] = None,
        actor: str = "system"
    ) -> bool:
        """
        Install a model file from local storage and load it.

        Returns:
            True if generative analysis is ready afterwards
        """
        try:
            ready = await self.engine.install_model(source, on_progress)
        except Exception as e:
            await self.audit.append(
                AuditAction.INSTALL_MODEL, "model", str(source), actor, False,
                level=AuditLogLevel.INFO, error_message=str(e),
            )
            raise
        await self.audit.append(
            AuditAction.INSTALL_MODEL, "model", str(source), actor, True,
            details=AuditDetails(reason="ready" if ready else "installed, not loaded"),
            level=AuditLogLevel.INFO,
        )
        return ready

    # Documents (fed by the capture pipeline)

    async def add_document(
        self,
        title: str,
        extracted_text: str,
        document_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        actor: str = "system"
    ) -> Document:
        document = Document(
            id=document_id or str(uuid.uuid4()),
            title=title,
            extracted_text=extracted_text,
            created_at=created_at or datetime.now(),
        )
        created = await self.documents.create(document)
        await self.audit.append(
            AuditAction.CREATE, "document", created.id, actor, True, level=AuditLogLevel.COMPULSORY
        )
        return created

    async def get_document(self, document_id: str) -> Document:
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def update_document_text(
        self,
        document_id: str,
        extracted_text: str,
        title: Optional[str] = None,
        actor: str = "system"
    ) -> Document:
        """
        Replace a document's text. Its embedding becomes stale and its
        entities pending until the next sweeps.
        """
        updated = await self.documents.update_text(document_id, title, extracted_text)
        await self.audit.append(
            AuditAction.UPDATE, "document", document_id, actor, True,
            details=AuditDetails(fields=("extracted_text",) if title is None else ("title", "extracted_text")),
            level=AuditLogLevel.COMPULSORY,
        )
        return updated

    async def delete_document(self, document_id: str, actor: str = "system") -> None:
        if not await self.documents.delete(document_id):
            raise DocumentNotFoundError(document_id)
        await self.index.remove(document_id)
        await self.audit.append(
            AuditAction.DELETE, "document", document_id, actor, True, level=AuditLogLevel.COMPULSORY
        )


def build_search_engine(
    db: Optional[DatabaseInterface] = None,
    embedding_provider: Optional[EmbeddingProvider] = None,
    generative_provider: Optional[GenerativeProvider] = None,
    model_store: Optional[ModelArtifactStore] = None,
    limiter: Optional[QueryRateLimiter] = None,
    audit_level: Optional[AuditLogLevel] = None,
    vectorize_pause_every: Optional[int] = None,
    reprocess_pause_every: Optional[int] = None,
    analysis_timeout: Optional[float] = None,
    top_k: int = SEARCH_TOP_K,
    min_similarity: float = MIN_SIMILARITY,
    candidate_limit: int = COMPLEX_CANDIDATE_LIMIT,
    result_limit: int = STRUCTURED_RESULT_LIMIT
) -> LocalSearchEngine:
    """
    Wire every service once. Anything not passed in comes from configuration.

    Returns:
        LocalSearchEngine (call start() before use)
    """
    db = db or DatabaseFactory.create()
    documents = DocumentRepository(db)
    audit = AuditTrail(AuditRepository(db), level=audit_level)

    index = EmbeddingIndex(
        embedding_provider or ProviderFactory.create_embedding(),
        documents,
        EmbeddingRepository(db),
        audit,
    )
    if vectorize_pause_every is not None:
        index.pause_every = vectorize_pause_every

    engine = AnalysisEngine(
        generative_provider or ProviderFactory.create_generative(),
        model_store or ModelArtifactStore(),
        result_limit=result_limit,
    )
    if analysis_timeout is not None:
        engine.timeout_seconds = analysis_timeout

    limiter = limiter or QueryRateLimiter()
    router = QueryRouter(
        InputGuard(),
        limiter,
        documents,
        index,
        engine,
        audit,
        top_k=top_k,
        min_similarity=min_similarity,
        candidate_limit=candidate_limit,
        result_limit=result_limit,
    )

    reprocessing = ReprocessingService(documents, EntityExtractionService(engine), audit)
    if reprocess_pause_every is not None:
        reprocessing.pause_every = reprocess_pause_every

    return LocalSearchEngine(db, documents, audit, limiter, index, engine, router, reprocessing)
