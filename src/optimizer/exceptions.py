"""
Custom exceptions for article optimization.

Every error carries an ErrorKind tag and an HTTP-style status code so callers
can classify failures without matching on message text.
"""
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of a pipeline failure"""
    VALIDATION = "validation"
    TRANSIENT = "transient"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    INCOMPLETE = "incomplete"
    CONFLICT = "conflict"
    INTERNAL = "internal"


STATUS_KINDS = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTH,
    403: ErrorKind.AUTH,
    409: ErrorKind.CONFLICT,
    422: ErrorKind.INCOMPLETE,
    429: ErrorKind.RATE_LIMIT,
}


class OptimizerError(Exception):
    """Base exception for optimization operations"""
    kind = ErrorKind.INTERNAL
    status_code = 500

    def __init__(self,
                 message: str,
                 cause: Optional[BaseException] = None,
                 kind: Optional[ErrorKind] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if kind is not None:
            self.kind = kind
        if status_code is not None:
            self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMIT


class ValidationError(OptimizerError):
    """Raised for bad input; never retried"""
    kind = ErrorKind.VALIDATION
    status_code = 400


class TransientNetworkError(OptimizerError):
    """Raised for timeouts, connection resets and 5xx responses"""
    kind = ErrorKind.TRANSIENT
    status_code = 500


class RateLimitError(OptimizerError):
    """Raised when a provider reports quota exhaustion"""
    kind = ErrorKind.RATE_LIMIT
    status_code = 429


class AuthError(OptimizerError):
    """Raised when a credential is missing or rejected"""
    kind = ErrorKind.AUTH
    status_code = 401


class ExtractionIncomplete(OptimizerError):
    """Raised when a scraped page lacks a title, body or enough content"""
    kind = ErrorKind.INCOMPLETE
    status_code = 422


class SearchServiceError(OptimizerError):
    """Raised when a search operation fails"""

    def __init__(self,
                 message: str,
                 status_code: int = 500,
                 cause: Optional[BaseException] = None):
        kind = STATUS_KINDS.get(status_code)
        if kind is None and isinstance(cause, OptimizerError):
            kind = cause.kind
        super().__init__(message, cause=cause,
                         kind=kind or ErrorKind.INTERNAL,
                         status_code=status_code)


class ScrapeError(OptimizerError):
    """Raised when a page cannot be fetched or parsed"""
    pass


class SynthesisError(OptimizerError):
    """Raised when content generation fails"""
    pass


class FallbackExhausted(SynthesisError):
    """Raised when every generation strategy has failed"""
    kind = ErrorKind.RATE_LIMIT
    status_code = 429

    def __init__(self, message: str, attempts=None, cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)
        self.attempts = attempts or []


class DatabaseError(OptimizerError):
    """Raised when database operations fail"""
    pass


class DuplicateArticleError(DatabaseError):
    """Raised when an article with the same URL already exists"""
    kind = ErrorKind.CONFLICT
    status_code = 409


class PublishError(OptimizerError):
    """Raised when an optimized article cannot be published"""
    pass


class ConfigurationError(OptimizerError):
    """Raised when configuration is invalid or missing"""
    pass
