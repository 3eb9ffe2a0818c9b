"""
Search Router - natural-language search over the local vault.

    POST /search                          - route a query (semantic / structured / complex)
    GET  /search/rate-limit/{actor_id}    - remaining query quota for an actor

Validation, quota, routing and auditing all happen inside the engine;
this router only maps HTTP to engine calls.
"""
from fastapi import APIRouter, Depends

from ..api.dto import RateLimitStatsDTO, SearchRequestDTO, SearchResponseDTO
from ..api.mappers import SearchResultMapper
from ..services.search_engine import LocalSearchEngine
from .dependencies import get_engine

router = APIRouter()


@router.post("/search", response_model=SearchResponseDTO)
async def search(request: SearchRequestDTO, engine: LocalSearchEngine = Depends(get_engine)):
    """
    Search documents.

    Returns 400 if the query is rejected by the input guard, 429 with a
    Retry-After header if the actor is over quota.
    """
    result = await engine.search(request.actor_id, request.query)
    return SearchResultMapper.to_dto(result)


@router.get("/search/rate-limit/{actor_id}", response_model=RateLimitStatsDTO)
async def rate_limit_stats(actor_id: str, engine: LocalSearchEngine = Depends(get_engine)):
    stats = engine.get_rate_limit_stats(actor_id)
    return RateLimitStatsDTO(
        remaining_minute=stats.remaining_minute,
        remaining_hour=stats.remaining_hour,
        minute_limit=stats.minute_limit,
        hour_limit=stats.hour_limit,
    )
