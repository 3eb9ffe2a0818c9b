"""
Shared dependencies for routers.

The search engine is built once by the application lifespan and stored on
app.state; handlers receive it through get_engine().
"""
from typing import Callable

from fastapi import Request

from ..core.logging_config import get_logger
from ..services.search_engine import LocalSearchEngine

logger = get_logger(__name__)


def get_engine(request: Request) -> LocalSearchEngine:
    return request.app.state.engine


def log_progress(label: str) -> Callable[[int, int], None]:
    """Progress callback for background sweeps started over HTTP."""
    def on_progress(done: int, total: int) -> None:
        logger.debug(f"{label}: {done}/{total}")
    return on_progress
