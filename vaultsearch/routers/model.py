"""
Model Router - install and inspect the on-device generative model.

Models are installed from a file already on local storage; nothing is
downloaded.
"""
from dataclasses import asdict
from pathlib import Path

from fastapi import APIRouter, Depends, Request

from ..api.dto import ModelInstallRequestDTO, ModelStatusDTO
from ..middleware.rate_limit import maintenance_rate_limit
from ..services.search_engine import LocalSearchEngine
from .dependencies import get_engine

router = APIRouter()


@router.post("/model/install", response_model=ModelStatusDTO)
@maintenance_rate_limit
async def install_model(
    request: Request,
    payload: ModelInstallRequestDTO,
    engine: LocalSearchEngine = Depends(get_engine)
):
    await engine.install_model(Path(payload.source_path), actor=payload.actor_id)
    return ModelStatusDTO(**asdict(engine.model_status()))


@router.get("/model/status", response_model=ModelStatusDTO)
async def model_status(engine: LocalSearchEngine = Depends(get_engine)):
    return ModelStatusDTO(**asdict(engine.model_status()))
