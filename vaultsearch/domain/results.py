"""
Result and report types returned across the search core boundary.
"""
import json
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from .entities import Document
from .value_objects import QueryType, StructuredFilter


@dataclass
class AggregationResult:
    """Numeric summary over a structured result set."""
    document_count: int
    total_amount: float
    average_amount: float
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    vendor: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_documents(cls, documents: List[Document]) -> "AggregationResult":
        amounts = [d.amount for d in documents if d.amount is not None]
        dates = [d.transaction_date for d in documents if d.transaction_date is not None]
        total = round(sum(amounts), 2)
        average = round(total / len(amounts), 2) if amounts else 0.0
        return cls(
            document_count=len(documents),
            total_amount=total,
            average_amount=average,
            min_date=min(dates) if dates else None,
            max_date=max(dates) if dates else None,
            vendor=_dominant([d.vendor for d in documents]),
            category=_dominant([d.category.value if d.category else None for d in documents]),
        )


def _dominant(values: List[Optional[str]]) -> Optional[str]:
    counts: Dict[str, int] = {}
    for value in values:
        if value:
            counts[value] = counts.get(value, 0) + 1
    if not counts:
        return None
    # first seen wins on ties
    return max(counts, key=lambda v: counts[v])


@dataclass
class AnalysisResult:
    analysis_text: str
    confidence: float
    structured_filter: Optional[StructuredFilter] = None


@dataclass
class RouterResult:
    """Normalized result of a routed query."""
    documents: List[Document]
    query_type: QueryType
    execution_time_ms: float = 0.0
    aggregation: Optional[AggregationResult] = None
    analysis: Optional[str] = None
    confidence: Optional[float] = None
    similarities: Dict[str, float] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.notes)


@dataclass
class RateLimitStats:
    remaining_minute: int
    remaining_hour: int
    minute_limit: int
    hour_limit: int


@dataclass
class IndexStats:
    total: int
    vectorized: int
    pending: int


@dataclass
class ModelStatus:
    provider: str
    ready: bool
    installed: bool
    path: str


@dataclass
class VectorizationSummary:
    total: int
    vectorized: int
    skipped: int
    errored: int
    cancelled: bool
    duration_seconds: float


@dataclass
class ReprocessingSummary:
    total: int
    processed: int
    skipped: int
    errored: int
    cancelled: bool
    duration_seconds: float


@dataclass
class ReprocessingStats:
    total: int
    extracted: int
    pending: int


@dataclass
class IntegrityReport:
    """
    Outcome of walking the audit chain oldest first. Once an entry fails,
    it and every later entry are untrusted.
    """
    valid: bool
    checked: int
    broken_entry_id: Optional[str] = None
    reason: Optional[str] = None
    untrusted_entry_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AuditDetails:
    """Fixed set of optional fields recorded in an audit entry's details."""
    query_type: Optional[str] = None
    document_count: Optional[int] = None
    notes: Tuple[str, ...] = ()
    reason: Optional[str] = None
    total: Optional[int] = None
    processed: Optional[int] = None
    skipped: Optional[int] = None
    errored: Optional[int] = None
    cancelled: Optional[bool] = None
    fields: Tuple[str, ...] = ()

    def to_json(self) -> str:
        data = {
            "query_type": self.query_type,
            "document_count": self.document_count,
            "notes": list(self.notes) or None,
            "reason": self.reason,
            "total": self.total,
            "processed": self.processed,
            "skipped": self.skipped,
            "errored": self.errored,
            "cancelled": self.cancelled,
            "fields": list(self.fields) or None,
        }
        compact = {k: v for k, v in data.items() if v is not None}
        return json.dumps(compact, sort_keys=True, separators=(",", ":"))
