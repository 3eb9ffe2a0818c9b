"""
Mock generative provider.

Rule-based stand-in for the on-device model: no model file, no inference.
Used in development, tests, and whenever no model has been installed.
"""
from pathlib import Path
from typing import List, Optional

from .base import GenerativeProvider
from ...domain.entities import Document
from ...utils.entity_patterns import (
    detect_category,
    extract_total_amount,
    find_known_vendor,
    find_preposition_vendor,
    parse_date,
)
from ...utils.query_parser import parse_query_cues
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class MockGenerativeProvider(GenerativeProvider):
    """
    Mock provider answering from candidate metadata and the shared pattern
    tables.
    """

    name = "mock"
    requires_model_file = False

    def __init__(self):
        self._loaded = False

    def load(self, model_path: Optional[Path]) -> None:
        self._loaded = True
        logger.info("Mock generative provider ready")

    def is_loaded(self) -> bool:
        return self._loaded

    def unload(self) -> None:
        self._loaded = False

    def analyze(self, query: str, documents: List[Document]) -> str:
        """Summarize candidates; propose a filter when the query names fields."""
        cues = parse_query_cues(query)

        filter_parts = []
        if cues.vendor:
            filter_parts.append(f"vendor={cues.vendor}")
        if cues.category:
            filter_parts.append(f"category={cues.category.value}")
        if cues.time_range:
            start, end = cues.time_range
            filter_parts.append(f"start={start.isoformat()}")
            filter_parts.append(f"end={end.isoformat()}")
        if filter_parts and cues.aggregate:
            filter_parts.append("aggregate=true")

        if not documents:
            answer = "No related documents were found."
            confidence = 0.2
        else:
            titles = ", ".join(doc.title for doc in documents[:3])
            amounts = [doc.amount for doc in documents if doc.amount is not None]
            answer = f"Found {len(documents)} related documents ({titles})."
            if amounts:
                answer += f" Their amounts add up to ${sum(amounts):.2f}."
            confidence = 0.6

        lines = [
            f"ANSWER: {answer}",
            f"CONFIDENCE: {confidence}",
            f"FILTER: {'; '.join(filter_parts) if filter_parts else 'NONE'}",
        ]
        return "\n".join(lines)

    def extract_entities(self, text: str) -> str:
        vendor = find_known_vendor(text) or find_preposition_vendor(text)
        amount = extract_total_amount(text)
        tx_date = parse_date(text)
        category = detect_category(text)
        return "\n".join([
            f"VENDOR: {vendor or 'NONE'}",
            f"AMOUNT: {amount if amount is not None else 'NONE'}",
            f"DATE: {tx_date.isoformat() if tx_date else 'NONE'}",
            f"CATEGORY: {category.value if category else 'NONE'}",
        ])
