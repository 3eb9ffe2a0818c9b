"""
Exception handler for VaultSearchError.

Status codes come from api.exceptions.handle_business_exception; the body
is an ErrorResponseDTO carrying the request id.
"""
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..api.dto import ErrorResponseDTO
from ..api.exceptions import handle_business_exception
from ..core.exceptions import VaultSearchError
from ..core.logging_config import get_logger

logger = get_logger(__name__)


async def business_exception_handler(request: Request, exc: VaultSearchError) -> JSONResponse:
    mapped = handle_business_exception(exc)
    where = f"{request.method} {request.url.path}"
    if mapped.status_code >= 500:
        logger.error(f"{where} failed: {exc}", exc_info=exc)
    else:
        logger.warning(f"{where} → {mapped.status_code}: {exc}")

    body = ErrorResponseDTO(
        error=mapped.detail,
        status_code=mapped.status_code,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=mapped.status_code, content=body.model_dump(), headers=mapped.headers)
