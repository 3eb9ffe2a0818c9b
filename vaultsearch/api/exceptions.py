"""
Maps domain exceptions to HTTP exceptions.
Keeps business logic clean of HTTP concerns.
"""
from fastapi import HTTPException, status

from ..core.exceptions import (
    AnalysisUnavailable,
    ChainIntegrityViolation,
    DocumentNotFoundError,
    IndexUnavailable,
    ModelInstallError,
    QuotaExceeded,
    ReprocessingInProgress,
    SecurityViolation,
    VectorizationInProgress,
)


def handle_business_exception(e: Exception) -> HTTPException:
    """
    Convert domain exceptions to HTTP exceptions.
    """
    if isinstance(e, SecurityViolation):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    elif isinstance(e, QuotaExceeded):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": str(e),
                "remaining_minute": e.remaining_minute,
                "remaining_hour": e.remaining_hour,
                "retry_after": e.retry_after,
            },
            headers={"Retry-After": str(int(e.retry_after))},
        )
    elif isinstance(e, DocumentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    elif isinstance(e, (ReprocessingInProgress, VectorizationInProgress)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(e, ChainIntegrityViolation):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(e, (AnalysisUnavailable, IndexUnavailable)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    elif isinstance(e, ModelInstallError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    else:
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
