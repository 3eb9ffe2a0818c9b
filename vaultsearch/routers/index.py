"""
Index Router - embedding index maintenance.

    POST /index/vectorize   - embed every document (inline, or in background)
    POST /index/cancel      - stop a running sweep between documents
    GET  /index/stats       - total / vectorized / pending counts
"""
from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from ..api.dto import IndexStatsDTO, VectorizationSummaryDTO
from ..core.exceptions import VaultSearchError, VectorizationInProgress
from ..core.logging_config import get_logger
from ..middleware.rate_limit import maintenance_rate_limit
from ..services.search_engine import LocalSearchEngine
from .dependencies import get_engine, log_progress

logger = get_logger(__name__)

router = APIRouter()


async def _run_vectorization(engine: LocalSearchEngine, actor: str) -> None:
    try:
        summary = await engine.vectorize_all(log_progress("Vectorization"), actor=actor)
        logger.info(f"Background vectorization finished: {summary.vectorized}/{summary.total}")
    except VaultSearchError as e:
        logger.error(f"Background vectorization failed: {e}")


@router.post("/index/vectorize", response_model=VectorizationSummaryDTO)
@maintenance_rate_limit
async def vectorize_all(
    request: Request,
    background_tasks: BackgroundTasks,
    background: bool = Query(False, description="Return immediately and run the sweep in the background"),
    actor_id: str = Query("system"),
    engine: LocalSearchEngine = Depends(get_engine)
):
    if background:
        if engine.index.is_sweeping:
            raise VectorizationInProgress("Vectorization already in progress")
        background_tasks.add_task(_run_vectorization, engine, actor_id)
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content={"status": "started"})

    summary = await engine.vectorize_all(actor=actor_id)
    return VectorizationSummaryDTO(**asdict(summary))


@router.post("/index/cancel")
async def cancel_vectorization(engine: LocalSearchEngine = Depends(get_engine)):
    return {"cancelled": engine.cancel_vectorization()}


@router.get("/index/stats", response_model=IndexStatsDTO)
async def index_stats(engine: LocalSearchEngine = Depends(get_engine)):
    stats = await engine.get_vectorization_stats()
    return IndexStatsDTO(**asdict(stats))
