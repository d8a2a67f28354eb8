"""Error taxonomy shared by the routes and services.

Every error carries the HTTP status it maps to and a machine-readable code.
The handlers in ``answer_engine.main`` render them as ``{"error", "code"}``.
"""
from typing import Optional


class AnswerEngineError(Exception):
    """Base class for errors surfaced to API clients."""

    http_status: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ClientInputError(AnswerEngineError):
    """Malformed or missing request input."""

    http_status = 400
    code = "INVALID_REQUEST"


class NotFoundError(AnswerEngineError):
    """Resource does not exist or is not owned by the caller."""

    http_status = 404
    code = "NOT_FOUND"


class RateLimitedError(AnswerEngineError):
    http_status = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            f"Rate limit exceeded. Please try again in {retry_after_seconds} seconds."
        )
        self.retry_after_seconds = retry_after_seconds


class UpstreamFailure(AnswerEngineError):
    """A search or LLM provider call failed."""

    http_status = 500
    code = "UPSTREAM_FAILURE"

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.details = details


class UpstreamQuotaError(UpstreamFailure):
    """Provider reported quota or rate-limit exhaustion."""

    code = "UPSTREAM_QUOTA_EXCEEDED"


class PersistenceFailure(AnswerEngineError):
    http_status = 500
    code = "PERSISTENCE_FAILURE"
