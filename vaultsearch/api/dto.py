"""
Data Transfer Objects (DTOs) for API layer.
Separates API contracts from domain entities.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SearchRequestDTO(BaseModel):
    """Search request. The query is validated by the input guard, not here."""
    actor_id: str = Field(..., min_length=1, max_length=128)
    query: str


class DocumentDTO(BaseModel):
    id: str
    title: str
    created_at: str
    vendor: Optional[str] = None
    amount: Optional[float] = None
    transaction_date: Optional[str] = None
    category: Optional[str] = None
    entity_confidence: Optional[float] = None
    entities_extracted_at: Optional[str] = None
    similarity: Optional[float] = None


class DocumentCreateDTO(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    extracted_text: str = ""
    id: Optional[str] = Field(None, min_length=1, max_length=128)
    actor_id: str = "system"


class DocumentTextUpdateDTO(BaseModel):
    extracted_text: str
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    actor_id: str = "system"


class AggregationDTO(BaseModel):
    document_count: int
    total_amount: float
    average_amount: float
    min_date: Optional[str] = None
    max_date: Optional[str] = None
    vendor: Optional[str] = None
    category: Optional[str] = None


class SearchResponseDTO(BaseModel):
    query_type: str
    documents: List[DocumentDTO]
    aggregation: Optional[AggregationDTO] = None
    analysis: Optional[str] = None
    confidence: Optional[float] = None
    execution_time_ms: float
    notes: List[str] = []


class RateLimitStatsDTO(BaseModel):
    remaining_minute: int
    remaining_hour: int
    minute_limit: int
    hour_limit: int


class AuditEntryDTO(BaseModel):
    id: str
    level: str
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    user_id: str
    timestamp: str
    details: Optional[str] = None
    is_success: bool
    error_message: Optional[str] = None
    previous_entry_id: Optional[str] = None
    checksum: str


class IntegrityReportDTO(BaseModel):
    valid: bool
    checked: int
    broken_entry_id: Optional[str] = None
    reason: Optional[str] = None
    untrusted_entry_ids: List[str] = []


class IndexStatsDTO(BaseModel):
    total: int
    vectorized: int
    pending: int


class VectorizationSummaryDTO(BaseModel):
    total: int
    vectorized: int
    skipped: int
    errored: int
    cancelled: bool
    duration_seconds: float


class ReprocessRequestDTO(BaseModel):
    force_all: bool = False
    actor_id: str = "system"


class ReprocessingSummaryDTO(BaseModel):
    total: int
    processed: int
    skipped: int
    errored: int
    cancelled: bool
    duration_seconds: float


class ReprocessingStatsDTO(BaseModel):
    total: int
    extracted: int
    pending: int


class ModelInstallRequestDTO(BaseModel):
    source_path: str = Field(..., min_length=1)
    actor_id: str = "system"


class ModelStatusDTO(BaseModel):
    provider: str
    ready: bool
    installed: bool
    path: str


class ErrorResponseDTO(BaseModel):
    """Body of every non-2xx response raised from a domain error."""
    error: Union[str, Dict[str, Any]]
    status_code: int
    path: str
    request_id: Optional[str] = None
