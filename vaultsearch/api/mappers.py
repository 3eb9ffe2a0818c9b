"""
Mappers between domain objects and DTOs.
Separates domain layer from API layer.
"""
from dataclasses import asdict
from typing import List, Optional

from ..domain.entities import AuditEntry, Document
from ..domain.results import AggregationResult, IntegrityReport, RouterResult
from .dto import AggregationDTO, AuditEntryDTO, DocumentDTO, IntegrityReportDTO, SearchResponseDTO


class DocumentMapper:
    """Maps between Document entity and DocumentDTO."""

    @staticmethod
    def to_dto(document: Document, similarity: Optional[float] = None) -> DocumentDTO:
        return DocumentDTO(
            id=document.id,
            title=document.title,
            created_at=document.created_at.isoformat(),
            vendor=document.vendor,
            amount=document.amount,
            transaction_date=document.transaction_date.isoformat() if document.transaction_date else None,
            category=document.category.value if document.category else None,
            entity_confidence=document.entity_confidence,
            entities_extracted_at=(
                document.entities_extracted_at.isoformat() if document.entities_extracted_at else None
            ),
            similarity=similarity,
        )


class SearchResultMapper:
    """Maps RouterResult to SearchResponseDTO."""

    @staticmethod
    def aggregation_to_dto(aggregation: AggregationResult) -> AggregationDTO:
        return AggregationDTO(
            document_count=aggregation.document_count,
            total_amount=aggregation.total_amount,
            average_amount=aggregation.average_amount,
            min_date=aggregation.min_date.isoformat() if aggregation.min_date else None,
            max_date=aggregation.max_date.isoformat() if aggregation.max_date else None,
            vendor=aggregation.vendor,
            category=aggregation.category,
        )

    @staticmethod
    def to_dto(result: RouterResult) -> SearchResponseDTO:
        return SearchResponseDTO(
            query_type=result.query_type.value,
            documents=[DocumentMapper.to_dto(doc, result.similarities.get(doc.id)) for doc in result.documents],
            aggregation=SearchResultMapper.aggregation_to_dto(result.aggregation) if result.aggregation else None,
            analysis=result.analysis,
            confidence=result.confidence,
            execution_time_ms=result.execution_time_ms,
            notes=list(result.notes),
        )


class AuditMapper:
    @staticmethod
    def to_dto(entry: AuditEntry) -> AuditEntryDTO:
        return AuditEntryDTO(
            id=entry.id,
            level=entry.level.value,
            action=entry.action.value,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            user_id=entry.user_id,
            timestamp=entry.timestamp.isoformat(),
            details=entry.details,
            is_success=entry.is_success,
            error_message=entry.error_message,
            previous_entry_id=entry.previous_entry_id,
            checksum=entry.checksum,
        )

    @staticmethod
    def to_dto_list(entries: List[AuditEntry]) -> List[AuditEntryDTO]:
        return [AuditMapper.to_dto(entry) for entry in entries]

    @staticmethod
    def report_to_dto(report: IntegrityReport) -> IntegrityReportDTO:
        return IntegrityReportDTO(**asdict(report))
