"""
Request logging middleware.

One line when a request arrives and one when it leaves, with status and
duration. Query strings and bodies are not logged since they can hold
search text.
"""
import time
from typing import Callable, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..core.logging_config import get_logger

logger = get_logger(__name__)

QUIET_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


def _marker(status_code: int) -> str:
    if status_code < 400:
        return "✅"
    if status_code < 500:
        return "⚠️"
    return "❌"


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, skip_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.skip_paths = tuple(skip_paths) if skip_paths is not None else QUIET_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path.startswith(self.skip_paths):
            return await call_next(request)

        label = f"{request.method} {path}"
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            label = f"{label} [{request_id}]"

        logger.info(f"→ {label}")
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"❌ {label} raised after {elapsed:.1f}ms: {e}")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"{_marker(response.status_code)} {label} → {response.status_code} ({elapsed:.1f}ms)")
        return response
