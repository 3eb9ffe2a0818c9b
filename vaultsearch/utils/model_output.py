"""
Parsers for the generative model's line protocols.

Model output is untrusted text: every value is converted to a typed field
and anything unrecognized is dropped.
"""
import re
from datetime import date
from typing import Dict, Optional

from ..domain.entities import DocumentEntity
from ..domain.results import AnalysisResult
from ..domain.value_objects import EntityCategory
from .entity_patterns import parse_date
from .query_parser import parse_filter_spec

_KEY_LINE = re.compile(r"^\s*([A-Z]+)\s*:\s*(.*)$")


def _split_fields(response: str) -> Dict[str, str]:
    """Collect KEY: value lines; continuation lines extend the last key."""
    fields: Dict[str, str] = {}
    current = None
    for line in response.splitlines():
        match = _KEY_LINE.match(line.upper()) if line.strip() else None
        if match and match.group(1) in ("ANSWER", "CONFIDENCE", "FILTER", "VENDOR", "AMOUNT", "DATE", "CATEGORY"):
            current = match.group(1)
            fields[current] = line.split(":", 1)[1].strip()
        elif current and line.strip():
            fields[current] = f"{fields[current]} {line.strip()}"
    return fields


def _is_none(value: Optional[str]) -> bool:
    return not value or value.strip().upper() in ("NONE", "N/A", "UNKNOWN")


def parse_analysis_response(response: str, result_limit: int) -> Optional[AnalysisResult]:
    """
    Parse an ANSWER / CONFIDENCE / FILTER response.

    Returns:
        AnalysisResult, or None when the response has neither an answer nor
        a usable filter
    """
    fields = _split_fields(response)
    answer = fields.get("ANSWER", "").strip()

    try:
        confidence = float(fields.get("CONFIDENCE", "0.5").split()[0])
    except (ValueError, IndexError):
        confidence = 0.5
    confidence = min(1.0, max(0.0, confidence))

    raw_filter = fields.get("FILTER")
    structured_filter = None if _is_none(raw_filter) else parse_filter_spec(raw_filter, result_limit)

    if not answer and structured_filter is None:
        return None
    return AnalysisResult(analysis_text=answer, confidence=confidence, structured_filter=structured_filter)


def parse_entity_response(response: str) -> DocumentEntity:
    """Parse a VENDOR / AMOUNT / DATE / CATEGORY response (confidence left at 0)."""
    fields = _split_fields(response)
    entity = DocumentEntity()

    vendor = fields.get("VENDOR")
    if not _is_none(vendor):
        entity.vendor = vendor.strip().strip('"')[:100]

    amount = fields.get("AMOUNT")
    if not _is_none(amount):
        cleaned = re.sub(r"[^\d.]", "", amount)
        try:
            entity.amount = float(cleaned) if cleaned else None
        except ValueError:
            entity.amount = None

    raw_date = fields.get("DATE")
    if not _is_none(raw_date):
        try:
            entity.transaction_date = date.fromisoformat(raw_date.strip()[:10])
        except ValueError:
            entity.transaction_date = parse_date(raw_date)

    category = fields.get("CATEGORY")
    if not _is_none(category):
        entity.category = EntityCategory.parse(category.split()[0].strip(".,"))

    return entity
