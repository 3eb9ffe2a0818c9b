"""
Reprocessing Router - entity extraction sweeps.

    POST /reprocessing/run             - extract entities for pending (or all) documents
    POST /reprocessing/cancel          - stop a running sweep
    GET  /reprocessing/stats           - extracted / pending counts
    POST /reprocessing/{document_id}   - re-extract a single document
"""
from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from ..api.dto import ReprocessingStatsDTO, ReprocessingSummaryDTO, ReprocessRequestDTO
from ..core.exceptions import ReprocessingInProgress, VaultSearchError
from ..core.logging_config import get_logger
from ..middleware.rate_limit import maintenance_rate_limit
from ..services.search_engine import LocalSearchEngine
from .dependencies import get_engine, log_progress

logger = get_logger(__name__)

router = APIRouter()


async def _run_reprocessing(engine: LocalSearchEngine, force_all: bool, actor: str) -> None:
    try:
        summary = await engine.reprocess_all(log_progress("Reprocessing"), force_all=force_all, actor=actor)
        logger.info(f"Background reprocessing finished: {summary.processed}/{summary.total}")
    except VaultSearchError as e:
        logger.error(f"Background reprocessing failed: {e}")


@router.post("/reprocessing/run", response_model=ReprocessingSummaryDTO)
@maintenance_rate_limit
async def run_reprocessing(
    request: Request,
    payload: ReprocessRequestDTO,
    background_tasks: BackgroundTasks,
    background: bool = Query(False, description="Return immediately and run the sweep in the background"),
    engine: LocalSearchEngine = Depends(get_engine)
):
    if background:
        if engine.reprocessing.is_processing:
            raise ReprocessingInProgress("Reprocessing already in progress")
        background_tasks.add_task(_run_reprocessing, engine, payload.force_all, payload.actor_id)
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content={"status": "started"})

    summary = await engine.reprocess_all(force_all=payload.force_all, actor=payload.actor_id)
    return ReprocessingSummaryDTO(**asdict(summary))


@router.post("/reprocessing/cancel")
async def cancel_reprocessing(engine: LocalSearchEngine = Depends(get_engine)):
    return {"cancelled": engine.cancel_reprocessing()}


@router.get("/reprocessing/stats", response_model=ReprocessingStatsDTO)
async def reprocessing_stats(engine: LocalSearchEngine = Depends(get_engine)):
    stats = await engine.get_reprocessing_stats()
    return ReprocessingStatsDTO(**asdict(stats))


@router.post("/reprocessing/{document_id}")
async def reprocess_document(
    document_id: str,
    actor_id: str = Query("system"),
    engine: LocalSearchEngine = Depends(get_engine)
):
    """Returns processed=false when the document has no text to extract from."""
    processed = await engine.reprocess_one(document_id, actor=actor_id)
    return {"document_id": document_id, "processed": processed}
