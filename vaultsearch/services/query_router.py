"""
Query Router - classifies a query and runs the cheapest strategy that can
answer it.

structured: typed field filter (plus aggregation) over the document store
semantic:   cosine ranking over the embedding index
complex:    generative analysis over a semantic pre-filter

Execution failures degrade instead of failing: complex falls back to the
semantic result, semantic falls back to a keyword filter. Guard and quota
rejections propagate. Every call appends exactly one audit entry.
"""
import time
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from ..core.config import (
    COMPLEX_CANDIDATE_LIMIT,
    MIN_SIMILARITY,
    SEARCH_TOP_K,
    STRUCTURED_RESULT_LIMIT,
)
from ..core.exceptions import AnalysisUnavailable, IndexUnavailable, QuotaExceeded, SecurityViolation
from ..domain.entities import Document
from ..domain.results import AggregationResult, AuditDetails, RouterResult
from ..domain.value_objects import AuditAction, AuditLogLevel, QueryType, SafeQuery
from ..repositories.document_repository import DocumentRepository
from ..utils.query_parser import (
    QueryCues,
    build_structured_filter,
    classify_query,
    clean_query_for_semantic_search,
    parse_query_cues,
)
from .analysis_engine import AnalysisEngine
from .audit_service import AuditTrail
from .embedding_index import EmbeddingIndex
from .input_guard import InputGuard
from .rate_limiter import QueryRateLimiter
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class QueryRouter:
    """
    Dispatches sanitized queries to structured, semantic or complex
    execution and normalizes the result.
    """

    def __init__(
        self,
        guard: InputGuard,
        limiter: QueryRateLimiter,
        documents: DocumentRepository,
        index: EmbeddingIndex,
        engine: AnalysisEngine,
        audit: AuditTrail,
        top_k: int = SEARCH_TOP_K,
        min_similarity: float = MIN_SIMILARITY,
        candidate_limit: int = COMPLEX_CANDIDATE_LIMIT,
        result_limit: int = STRUCTURED_RESULT_LIMIT,
        today: Optional[Callable[[], date]] = None
    ):
        self._guard = guard
        self._limiter = limiter
        self._documents = documents
        self._index = index
        self._engine = engine
        self._audit = audit
        self.top_k = top_k
        self.min_similarity = min_similarity
        self.candidate_limit = candidate_limit
        self.result_limit = result_limit
        self._today = today or date.today

    async def _record(
        self,
        actor_id: str,
        success: bool,
        details: AuditDetails,
        error_message: Optional[str] = None
    ) -> None:
        await self._audit.append(
            AuditAction.SEARCH,
            resource_type="query",
            resource_id=None,
            actor=actor_id,
            success=success,
            details=details,
            level=AuditLogLevel.COMPULSORY,
            error_message=error_message,
        )

    async def route(self, actor_id: str, raw_query: str) -> RouterResult:
        """
        Sanitize, admit, classify and execute a query.

        Args:
            actor_id: Caller identity (quota key and audit actor)
            raw_query: Query text as typed

        Returns:
            RouterResult (possibly degraded; see result.notes)

        Raises:
            SecurityViolation: If the input guard rejects the query
            QuotaExceeded: If the caller is over quota
        """
        started = time.perf_counter()

        try:
            safe = self._guard.sanitize(raw_query)
        except SecurityViolation as e:
            await self._record(actor_id, False, AuditDetails(reason="rejected by input guard"), e.reason)
            raise

        try:
            self._limiter.admit(actor_id)
        except QuotaExceeded as e:
            await self._record(actor_id, False, AuditDetails(reason="rate limit reached"), str(e))
            raise

        try:
            result = await self._execute(safe)
        except Exception as e:
            logger.error(f"Query execution failed for actor {actor_id}: {e}", exc_info=True)
            await self._record(actor_id, False, AuditDetails(reason="execution failed"), str(e))
            raise

        result.execution_time_ms = round((time.perf_counter() - started) * 1000, 2)
        await self._record(
            actor_id,
            True,
            AuditDetails(
                query_type=result.query_type.value,
                document_count=len(result.documents),
                notes=tuple(result.notes),
            ),
        )
        logger.info(
            f"Query routed as {result.query_type.value}: {len(result.documents)} documents "
            f"in {result.execution_time_ms}ms{' (degraded)' if result.degraded else ''}"
        )
        return result

    async def _execute(self, safe: SafeQuery) -> RouterResult:
        cues = parse_query_cues(safe.text, self._today())
        query_type = classify_query(cues)
        logger.debug(f"Classified query as {query_type.value} (cues: {cues.strong_cues()})")

        notes: List[str] = []
        if query_type == QueryType.STRUCTURED:
            result = await self._run_structured(cues, safe, notes)
        elif query_type == QueryType.SEMANTIC:
            result = await self._run_semantic(cues, safe, notes)
        else:
            result = await self._run_complex(cues, safe, notes)
        result.notes = notes
        return result

    def _can_escalate(self, safe: SafeQuery) -> bool:
        return safe.allow_generation and self._engine.is_ready()

    # structured

    async def _run_structured(self, cues: QueryCues, safe: SafeQuery, notes: List[str]) -> RouterResult:
        criteria = build_structured_filter(cues, self.result_limit)
        documents = await self._documents.query(criteria)

        if criteria.aggregate:
            return RouterResult(
                documents=documents,
                query_type=QueryType.STRUCTURED,
                aggregation=AggregationResult.from_documents(documents),
            )

        if not documents and self._can_escalate(safe):
            notes.append("structured filter matched nothing; escalated to analysis")
            return await self._run_complex(cues, safe, notes)

        return RouterResult(documents=documents, query_type=QueryType.STRUCTURED)

    # semantic

    async def _rank(self, text: str, k: int) -> List[Tuple[str, float]]:
        """
        Raises:
            IndexUnavailable: If the provider is down or nothing is vectorized yet
        """
        if not self._index.is_ready():
            raise IndexUnavailable("embedding provider is not available")
        stats = await self._index.stats()
        if stats.total and not stats.vectorized:
            raise IndexUnavailable("no documents are vectorized yet")

        query_vector = await self._index.embed_query(clean_query_for_semantic_search(text))
        return list(await self._index.search(query_vector, k, self.min_similarity))

    async def _load_ranked(self, ranked: List[Tuple[str, float]]) -> Tuple[List[Document], Dict[str, float]]:
        documents, similarities = [], {}
        for document_id, similarity in ranked:
            document = await self._documents.get_by_id(document_id)
            if document is not None:
                documents.append(document)
                similarities[document_id] = round(similarity, 4)
        return documents, similarities

    async def _keyword_fallback(self, cues: QueryCues, limit: int) -> List[Document]:
        return await self._documents.query(build_structured_filter(cues, limit, keyword_only=True))

    async def _run_semantic(self, cues: QueryCues, safe: SafeQuery, notes: List[str]) -> RouterResult:
        try:
            ranked = await self._rank(safe.text, self.top_k)
        except IndexUnavailable as e:
            logger.warning(f"Semantic search degraded to keyword filter: {e}")
            notes.append(f"embedding index unavailable ({e}); used keyword filter")
            documents = await self._keyword_fallback(cues, self.result_limit)
            return RouterResult(documents=documents, query_type=QueryType.STRUCTURED)

        documents, similarities = await self._load_ranked(ranked)
        if not documents and self._can_escalate(safe):
            notes.append("no documents above the similarity floor; escalated to analysis")
            return await self._run_complex(cues, safe, notes)

        return RouterResult(
            documents=documents,
            query_type=QueryType.SEMANTIC,
            similarities=similarities,
            confidence=max(similarities.values()) if similarities else None,
        )

    # complex

    async def _candidates(self, cues: QueryCues, safe: SafeQuery, notes: List[str]) -> Tuple[List[Document], Dict[str, float]]:
        """Semantic pre-filter, topped up with structured matches, bounded."""
        try:
            documents, similarities = await self._load_ranked(await self._rank(safe.text, self.candidate_limit))
        except IndexUnavailable as e:
            logger.warning(f"Analysis pre-filter degraded to keyword filter: {e}")
            notes.append(f"embedding index unavailable ({e}); used keyword filter")
            documents, similarities = await self._keyword_fallback(cues, self.candidate_limit), {}

        if cues.strong_cues():
            structured = await self._documents.query(build_structured_filter(cues, self.candidate_limit))
            seen = {doc.id for doc in structured}
            documents = structured + [doc for doc in documents if doc.id not in seen]

        return documents[:self.candidate_limit], similarities

    async def _run_complex(self, cues: QueryCues, safe: SafeQuery, notes: List[str]) -> RouterResult:
        candidates, similarities = await self._candidates(cues, safe, notes)
        fallback = RouterResult(
            documents=candidates,
            query_type=QueryType.SEMANTIC,
            similarities=similarities,
            confidence=max(similarities.values()) if similarities else None,
        )

        if not safe.allow_generation:
            notes.append("generative analysis not permitted for this query; returned semantic result")
            return fallback
        if not self._engine.is_ready():
            notes.append("analysis model not loaded; returned semantic result")
            return fallback

        try:
            analysis = await self._engine.analyze(safe.text, candidates)
        except AnalysisUnavailable as e:
            logger.warning(f"Analysis degraded to semantic result: {e}")
            notes.append(f"analysis unavailable ({e}); returned semantic result")
            return fallback

        documents = candidates
        aggregation = None
        if analysis.structured_filter is not None:
            filtered = await self._documents.query(analysis.structured_filter)
            if filtered:
                documents = filtered
                if analysis.structured_filter.aggregate:
                    aggregation = AggregationResult.from_documents(filtered)
            else:
                notes.append("model-proposed filter matched nothing; kept candidate documents")

        return RouterResult(
            documents=documents,
            query_type=QueryType.COMPLEX,
            aggregation=aggregation,
            analysis=analysis.analysis_text or None,
            confidence=analysis.confidence,
            similarities=similarities,
        )
