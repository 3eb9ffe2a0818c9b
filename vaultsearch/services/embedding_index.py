"""
Embedding Index - per-document vectors and nearest-neighbor search.

Embeddings are stored next to the text hash they were computed from. A
document whose text changes no longer matches its stored hash; its
embedding counts as pending and is ignored by search until re-vectorized.
"""
import asyncio
import hashlib
import time
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..core.config import VECTORIZE_PAUSE_EVERY, VECTORIZE_PAUSE_SECONDS
from ..core.exceptions import DocumentNotFoundError, IndexUnavailable, VectorizationInProgress
from ..domain.entities import Document, EmbeddingRecord
from ..domain.results import AuditDetails, IndexStats, VectorizationSummary
from ..domain.value_objects import AuditAction, AuditLogLevel
from ..repositories.document_repository import DocumentRepository
from ..repositories.embedding_repository import EmbeddingRepository
from .audit_service import AuditTrail
from .providers.base import EmbeddingProvider
from ..core.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class EmbeddingIndex:
    """
    Maintains EmbeddingRecords and answers cosine-similarity queries.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        documents: DocumentRepository,
        embeddings: EmbeddingRepository,
        audit: AuditTrail,
        pause_every: int = VECTORIZE_PAUSE_EVERY,
        pause_seconds: float = VECTORIZE_PAUSE_SECONDS
    ):
        self._provider = provider
        self._documents = documents
        self._embeddings = embeddings
        self._audit = audit
        self.pause_every = pause_every
        self.pause_seconds = pause_seconds
        self._sweep_running = False
        self._cancel_requested = False

    def is_ready(self) -> bool:
        return self._provider.is_available()

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_running

    async def embed_query(self, text: str) -> np.ndarray:
        """
        Embed query text with the document embedding function.

        Raises:
            IndexUnavailable: If the embedding provider is not available
        """
        if not self.is_ready():
            raise IndexUnavailable("Embedding provider is not available")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._provider.embed, text)

    async def vectorize(self, document_id: str, text: Optional[str] = None) -> EmbeddingRecord:
        """
        Compute and store a document's embedding, replacing any previous row.

        Args:
            document_id: Document to vectorize
            text: The document's extracted text (read from the store when omitted).
                It is embedded with the title, exactly as the staleness check
                hashes it, so passing the stored text yields a trusted record.

        Returns:
            The stored EmbeddingRecord (stale at once if text differs from
            the stored text)

        Raises:
            DocumentNotFoundError: If the document doesn't exist
            IndexUnavailable: If the embedding provider is not available
        """
        document = await self._documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        source = document.embedding_text(text)
        vector = await self.embed_query(source)
        record = EmbeddingRecord(
            document_id=document_id,
            vector=vector,
            vectorized_at=datetime.now(),
            text_hash=hashlib.sha256(source.encode("utf-8")).hexdigest(),
        )
        return await self._embeddings.save(record)

    async def remove(self, document_id: str) -> bool:
        return await self._embeddings.delete(document_id)

    def _is_trusted(self, record: Optional[EmbeddingRecord], document: Document) -> bool:
        return (
            record is not None
            and not record.is_stale_for(document)
            and record.vector.shape == (self._provider.dimension,)
        )

    async def _snapshot(self) -> Tuple[List[Document], Dict[str, EmbeddingRecord]]:
        documents = await self._documents.get_all()
        records = {record.document_id: record for record in await self._embeddings.list_all()}
        return documents, records

    async def search(
        self,
        query_vector: np.ndarray,
        k: int,
        min_similarity: Optional[float] = None
    ) -> Iterator[Tuple[str, float]]:
        """
        Rank trusted embeddings by cosine similarity to a query vector.

        Ties are broken by more recent document creation time.

        Args:
            query_vector: Vector from embed_query()
            k: Maximum number of results
            min_similarity: Drop results below this similarity

        Returns:
            One-shot iterator of (document_id, similarity), best first
        """
        documents, records = await self._snapshot()
        trusted = [doc for doc in documents if self._is_trusted(records.get(doc.id), doc)]
        return self._rank(query_vector, trusted, records, k, min_similarity)

    def _rank(
        self,
        query_vector: np.ndarray,
        documents: List[Document],
        records: Dict[str, EmbeddingRecord],
        k: int,
        min_similarity: Optional[float]
    ) -> Iterator[Tuple[str, float]]:
        if not documents or k <= 0:
            return

        query = np.asarray(query_vector, dtype=np.float32)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return

        matrix = np.vstack([records[doc.id].vector for doc in documents])
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = 1.0
        similarities = (matrix @ query) / (norms * query_norm)

        order = sorted(
            range(len(documents)),
            key=lambda i: (-float(similarities[i]), -documents[i].created_at.timestamp()),
        )
        emitted = 0
        for i in order:
            similarity = float(similarities[i])
            if min_similarity is not None and similarity < min_similarity:
                break
            yield documents[i].id, similarity
            emitted += 1
            if emitted >= k:
                break

    async def stats(self) -> IndexStats:
        documents, records = await self._snapshot()
        vectorized = sum(1 for doc in documents if self._is_trusted(records.get(doc.id), doc))
        return IndexStats(total=len(documents), vectorized=vectorized, pending=len(documents) - vectorized)

    def cancel(self) -> bool:
        """Request cancellation of a running sweep; takes effect between documents."""
        if not self._sweep_running:
            return False
        self._cancel_requested = True
        logger.info("Vectorization cancellation requested")
        return True

    async def vectorize_all(
        self,
        on_progress: Optional[ProgressCallback] = None,
        actor: str = "system"
    ) -> VectorizationSummary:
        """
        Vectorize every pending or stale document in creation order.

        Args:
            on_progress: Called with (current, total) after each document
            actor: Recorded in the audit entry

        Returns:
            VectorizationSummary

        Raises:
            VectorizationInProgress: If a sweep is already running
            IndexUnavailable: If the embedding provider is not available
        """
        if self._sweep_running:
            raise VectorizationInProgress("Vectorization already in progress")
        if not self.is_ready():
            raise IndexUnavailable("Embedding provider is not available")

        self._sweep_running = True
        self._cancel_requested = False
        start = time.monotonic()
        vectorized = errored = 0
        cancelled = False

        try:
            documents, records = await self._snapshot()
            pending = [doc for doc in documents if not self._is_trusted(records.get(doc.id), doc)]
            logger.info(f"Vectorization started: {len(pending)} of {len(documents)} documents pending")

            for current, document in enumerate(pending, start=1):
                if self._cancel_requested:
                    cancelled = True
                    logger.info(f"Vectorization cancelled after {current - 1} documents")
                    break

                try:
                    await self.vectorize(document.id)
                    vectorized += 1
                except DocumentNotFoundError:
                    # deleted while the sweep was running
                    errored += 1
                except Exception as e:
                    errored += 1
                    logger.error(f"Failed to vectorize document {document.id}: {e}", exc_info=True)

                if on_progress:
                    on_progress(current, len(pending))

                if self.pause_every and current % self.pause_every == 0 and current < len(pending):
                    await asyncio.sleep(self.pause_seconds)

            summary = VectorizationSummary(
                total=len(documents),
                vectorized=vectorized,
                skipped=len(documents) - len(pending),
                errored=errored,
                cancelled=cancelled,
                duration_seconds=round(time.monotonic() - start, 3),
            )
        finally:
            self._sweep_running = False
            self._cancel_requested = False

        await self._audit.append(
            AuditAction.VECTORIZE,
            resource_type="index",
            resource_id=None,
            actor=actor,
            success=errored == 0,
            details=AuditDetails(
                total=summary.total,
                processed=summary.vectorized,
                skipped=summary.skipped,
                errored=summary.errored,
                cancelled=summary.cancelled,
            ),
            level=AuditLogLevel.INFO,
        )
        logger.info(
            f"Vectorization finished: {summary.vectorized} vectorized, {summary.skipped} skipped, "
            f"{summary.errored} failed in {summary.duration_seconds}s"
        )
        return summary
