"""
Entity extraction for reprocessing.

Pattern heuristics run first; when they leave the vendor or amount empty
and the generative model is ready, the model fills the gaps.
"""
from ..core.exceptions import AnalysisUnavailable
from ..domain.entities import DocumentEntity
from ..domain.value_objects import EntityCategory
from ..utils.entity_patterns import detect_category, extract_total_amount, find_known_vendor, parse_date
from .analysis_engine import AnalysisEngine
from ..core.logging_config import get_logger

logger = get_logger(__name__)

PATTERN_CONFIDENCE = 0.6
MODEL_CONFIDENCE = 0.85


class EntityExtractionService:
    def __init__(self, engine: AnalysisEngine):
        self._engine = engine

    @staticmethod
    def extract_with_patterns(text: str) -> DocumentEntity:
        """Vendor, amount, date and category from the shared pattern tables."""
        entity = DocumentEntity(
            vendor=find_known_vendor(text),
            amount=extract_total_amount(text),
            transaction_date=parse_date(text),
            category=detect_category(text) or EntityCategory.OTHER,
        )
        entity.confidence = PATTERN_CONFIDENCE if entity.has_data() else 0.0
        return entity

    async def extract(self, document_id: str, text: str) -> DocumentEntity:
        """
        Extract entities from a document's text.

        Args:
            document_id: Document being processed (for logging)
            text: Extracted document text

        Returns:
            DocumentEntity (confidence 0.0 when nothing was found)
        """
        entity = self.extract_with_patterns(text)
        if entity.vendor is not None and entity.amount is not None:
            return entity
        if not self._engine.is_ready():
            return entity

        try:
            model_entity = await self._engine.extract_entities(text)
        except AnalysisUnavailable as e:
            logger.info(f"Model extraction unavailable for {document_id}, keeping pattern results: {e}")
            return entity

        filled = False
        if entity.vendor is None and model_entity.vendor:
            entity.vendor, filled = model_entity.vendor, True
        if entity.amount is None and model_entity.amount is not None:
            entity.amount, filled = model_entity.amount, True
        if entity.transaction_date is None and model_entity.transaction_date:
            entity.transaction_date, filled = model_entity.transaction_date, True
        if entity.category in (None, EntityCategory.OTHER) and model_entity.category:
            entity.category = model_entity.category
            filled = filled or model_entity.category != EntityCategory.OTHER

        if filled:
            entity.confidence = MODEL_CONFIDENCE
            logger.debug(f"Model filled missing entities for {document_id}")
        return entity
