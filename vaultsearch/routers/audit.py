"""
Audit Router - read-only access to the hash-chained audit trail.
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from ..api.dto import AuditEntryDTO, IntegrityReportDTO
from ..api.mappers import AuditMapper
from ..services.search_engine import LocalSearchEngine
from .dependencies import get_engine

router = APIRouter()


@router.get("/audit/entries", response_model=List[AuditEntryDTO])
async def list_entries(
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of entries, newest first"),
    engine: LocalSearchEngine = Depends(get_engine)
):
    entries = await engine.get_recent_audit_entries(limit)
    return AuditMapper.to_dto_list(entries)


@router.get("/audit/verify", response_model=IntegrityReportDTO)
async def verify_chain(engine: LocalSearchEngine = Depends(get_engine)):
    """
    Verify every stored entry's checksum and link. A broken chain is
    reported (valid=false) rather than raised.
    """
    report = await engine.verify_audit_integrity()
    return AuditMapper.report_to_dto(report)
