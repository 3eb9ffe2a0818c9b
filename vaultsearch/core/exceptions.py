"""
Domain exceptions for the search core.

These carry no HTTP knowledge; the API layer maps them to responses in
vaultsearch.api.exceptions.
"""
from typing import Optional


class VaultSearchError(Exception):
    """Base class for all search core errors."""
    pass


class SecurityViolation(VaultSearchError):
    """Raised when the input guard rejects a query."""

    def __init__(self, reason: str):
        super().__init__(f"Query rejected for security reasons: {reason}")
        self.reason = reason


class InvalidQueryError(SecurityViolation):
    """Raised when a query is empty after normalization."""
    pass


class QuotaExceeded(VaultSearchError):
    """Raised when an actor has used up the minute or hour quota."""

    def __init__(self, remaining_minute: int, remaining_hour: int, retry_after: float):
        super().__init__(f"Rate limit reached, retry after {retry_after:.0f}s")
        self.remaining_minute = remaining_minute
        self.remaining_hour = remaining_hour
        self.retry_after = retry_after


class AnalysisUnavailable(VaultSearchError):
    """Raised when the generative model is not loaded or inference timed out."""
    pass


class IndexUnavailable(VaultSearchError):
    """Raised when the embedding index cannot serve a query."""
    pass


class ChainIntegrityViolation(VaultSearchError):
    """Raised by explicit verification when the audit chain is broken."""

    def __init__(self, entry_id: str, reason: str):
        super().__init__(f"Audit chain broken at entry {entry_id}: {reason}")
        self.entry_id = entry_id
        self.reason = reason


class DocumentNotFoundError(VaultSearchError):
    """Raised when document is not found."""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class ReprocessingInProgress(VaultSearchError):
    """Raised when a reprocessing sweep is already running."""
    pass


class VectorizationInProgress(VaultSearchError):
    """Raised when a vectorization sweep is already running."""
    pass


class ModelInstallError(VaultSearchError):
    """Raised when a model artifact cannot be installed."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source
