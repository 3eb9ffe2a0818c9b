"""
VaultSearch API application.

Run with:
    uvicorn vaultsearch.main:app
or:
    vaultsearch-api
"""
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .core.config import (
    API_HOST,
    API_PORT,
    DATABASE_TYPE,
    ENABLE_FILE_LOGGING,
    GENERATIVE_PROVIDER,
    LOG_FILE,
    LOG_LEVEL,
    MAINTENANCE_RATE_LIMIT_ENABLED,
    MAINTENANCE_RATE_LIMIT_PER_MINUTE,
    RATE_LIMIT_PER_HOUR,
    RATE_LIMIT_PER_MINUTE,
)
from .core.exceptions import VaultSearchError
from .core.logging_config import get_logger, setup_logging
from .middleware.error_handler import business_exception_handler
from .middleware.rate_limit import limiter
from .middleware.request_id import RequestIDMiddleware
from .middleware.request_logging import RequestLoggingMiddleware
from .routers import audit, documents, index, model, reprocessing, search
from .services.search_engine import LocalSearchEngine, build_search_engine

logger = get_logger(__name__)


def create_app(engine: Optional[LocalSearchEngine] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        engine: Pre-wired engine (tests); built from configuration if None

    Returns:
        FastAPI app whose lifespan starts and closes the engine
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("Starting VaultSearch...")
        logger.info(f"  → Python Version: {sys.version.split()[0]}")
        logger.info(f"  → Database Backend: {DATABASE_TYPE.upper()}")
        logger.info(f"  → Generative Provider: {GENERATIVE_PROVIDER}")
        logger.info(f"  → Query quota: {RATE_LIMIT_PER_MINUTE}/minute, {RATE_LIMIT_PER_HOUR}/hour per actor")
        if MAINTENANCE_RATE_LIMIT_ENABLED:
            logger.info(f"  → Maintenance endpoints: {MAINTENANCE_RATE_LIMIT_PER_MINUTE}/minute per client")

        app.state.engine = engine or build_search_engine()
        await app.state.engine.start()
        logger.info("✅ VaultSearch initialized successfully")
        logger.info("=" * 60)
        try:
            yield
        finally:
            logger.info("Shutting down VaultSearch...")
            await app.state.engine.close()
            logger.info("VaultSearch shutdown complete")

    app = FastAPI(
        title="VaultSearch API",
        description="Private on-device document search with a tamper-evident audit trail",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(VaultSearchError, business_exception_handler)

    # Last added runs first: request IDs are assigned before logging sees the request
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(search.router, tags=["Search"])
    app.include_router(audit.router, tags=["Audit"])
    app.include_router(index.router, tags=["Index"])
    app.include_router(reprocessing.router, tags=["Reprocessing"])
    app.include_router(documents.router, tags=["Documents"])
    app.include_router(model.router, tags=["Model"])

    @app.get("/health")
    async def health_check():
        """
        Liveness check. Reports whether the index and the generative
        model are usable; search still works when either is not.
        """
        current = getattr(app.state, "engine", None)
        if current is None:
            return JSONResponse(status_code=503, content={"status": "unhealthy", "reason": "Engine not initialized"})
        return {
            "status": "healthy",
            "version": __version__,
            "index_ready": current.index.is_ready(),
            "analysis_ready": current.analysis_ready(),
        }

    return app


setup_logging(LOG_LEVEL, LOG_FILE, ENABLE_FILE_LOGGING)
app = create_app()


def main() -> None:
    uvicorn.run("vaultsearch.main:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
