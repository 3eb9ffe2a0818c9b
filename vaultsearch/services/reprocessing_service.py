"""
Reprocessing Pipeline - batch (re)extraction of document entities.

Runs as a background sweep next to foreground queries: it pauses briefly
every few documents, checks for cancellation between documents, and keeps
going when a single document fails.
"""
import asyncio
import time
from typing import Callable, Optional

from ..core.config import REPROCESS_PAUSE_EVERY, REPROCESS_PAUSE_SECONDS
from ..core.exceptions import ReprocessingInProgress
from ..domain.results import AuditDetails, ReprocessingStats, ReprocessingSummary
from ..domain.value_objects import AuditAction, AuditLogLevel
from ..repositories.document_repository import DocumentRepository
from .audit_service import AuditTrail
from .entity_extraction_service import EntityExtractionService
from ..core.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class ReprocessingService:
    """
    Default mode handles documents never extracted; force_all handles every
    document. Documents with empty text are skipped and left pending.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        extractor: EntityExtractionService,
        audit: AuditTrail,
        pause_every: int = REPROCESS_PAUSE_EVERY,
        pause_seconds: float = REPROCESS_PAUSE_SECONDS
    ):
        self._documents = documents
        self._extractor = extractor
        self._audit = audit
        self.pause_every = pause_every
        self.pause_seconds = pause_seconds
        self._processing = False
        self._cancel_requested = False

    @property
    def is_processing(self) -> bool:
        return self._processing

    def cancel(self) -> bool:
        """Request cancellation; takes effect before the next document."""
        if not self._processing:
            return False
        self._cancel_requested = True
        logger.info("Reprocessing cancellation requested")
        return True

    async def _process(self, document_id: str, text: str, actor: str) -> bool:
        """Extract and persist one document's entities. Returns whether data was found."""
        entity = await self._extractor.extract(document_id, text)
        await self._documents.update_entities(document_id, entity)

        found = [name for name, value in (
            ("vendor", entity.vendor),
            ("amount", entity.amount),
            ("transaction_date", entity.transaction_date),
            ("category", entity.category),
        ) if value is not None]
        await self._audit.append(
            AuditAction.UPDATE,
            resource_type="document",
            resource_id=document_id,
            actor=actor,
            success=True,
            details=AuditDetails(fields=tuple(found)),
            level=AuditLogLevel.COMPULSORY,
        )
        logger.debug(f"Extracted entities for {document_id}: vendor={entity.vendor}, amount={entity.amount}")
        return entity.has_data()

    async def reprocess_all(
        self,
        on_progress: Optional[ProgressCallback] = None,
        force_all: bool = False,
        actor: str = "system"
    ) -> ReprocessingSummary:
        """
        Re-extract entities across the corpus, newest documents first.

        Args:
            on_progress: Called with (current, total_candidates) after each document
            force_all: Reprocess documents that already have entities
            actor: Recorded in audit entries

        Returns:
            ReprocessingSummary where total is the corpus size and skipped
            counts already-extracted and empty-text documents

        Raises:
            ReprocessingInProgress: If a sweep is already running
        """
        if self._processing:
            raise ReprocessingInProgress("Reprocessing already in progress")

        self._processing = True
        self._cancel_requested = False
        start = time.monotonic()
        processed = errored = 0
        cancelled = False

        try:
            documents = await self._documents.get_all()
            candidates = [doc for doc in documents if force_all or doc.needs_extraction()]
            candidates.sort(key=lambda d: d.created_at, reverse=True)
            skipped = len(documents) - len(candidates)
            logger.info(
                f"Reprocessing {len(candidates)} of {len(documents)} documents "
                f"({'forced' if force_all else 'pending only'})"
            )

            for current, document in enumerate(candidates, start=1):
                if self._cancel_requested:
                    cancelled = True
                    logger.info(f"Reprocessing cancelled at {current - 1} of {len(candidates)}")
                    break

                if not document.has_text():
                    logger.info(f"Skipping document with empty text: {document.id}")
                    skipped += 1
                else:
                    try:
                        await self._process(document.id, document.extracted_text, actor)
                        processed += 1
                    except Exception as e:
                        errored += 1
                        logger.error(f"Failed to process document {document.id}: {e}", exc_info=True)

                if on_progress:
                    on_progress(current, len(candidates))

                if self.pause_every and current % self.pause_every == 0 and current < len(candidates):
                    await asyncio.sleep(self.pause_seconds)

            summary = ReprocessingSummary(
                total=len(documents),
                processed=processed,
                skipped=skipped,
                errored=errored,
                cancelled=cancelled,
                duration_seconds=round(time.monotonic() - start, 3),
            )
        finally:
            self._processing = False
            self._cancel_requested = False

        await self._audit.append(
            AuditAction.REPROCESS,
            resource_type="corpus",
            resource_id=None,
            actor=actor,
            success=errored == 0,
            details=AuditDetails(
                total=summary.total,
                processed=summary.processed,
                skipped=summary.skipped,
                errored=summary.errored,
                cancelled=summary.cancelled,
            ),
            level=AuditLogLevel.INFO,
        )
        logger.info(
            f"Reprocessing complete: {summary.processed} processed, {summary.skipped} skipped, "
            f"{summary.errored} errors in {summary.duration_seconds}s"
        )
        return summary

    async def reprocess_one(self, document_id: str, actor: str = "system") -> bool:
        """
        Re-extract a single document's entities.

        Returns:
            True if any entity was found, False if none was found or the
            document has no text

        Raises:
            DocumentNotFoundError: If the document doesn't exist
        """
        text = await self._documents.get_text(document_id)
        if not text.strip():
            logger.warning(f"Document has empty text: {document_id}")
            return False
        return await self._process(document_id, text, actor)

    async def get_stats(self) -> ReprocessingStats:
        """
        Extraction progress across the corpus. A storage failure is logged
        and reported as an empty corpus.
        """
        try:
            documents = await self._documents.get_all()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to get reprocessing stats: {e}", exc_info=True)
            return ReprocessingStats(total=0, extracted=0, pending=0)

        pending = sum(1 for doc in documents if doc.needs_extraction())
        return ReprocessingStats(total=len(documents), extracted=len(documents) - pending, pending=pending)
