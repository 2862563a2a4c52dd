"""Custom exceptions for Unfurl."""

from typing import Optional


class UnfurlError(Exception):
    """Base exception for Unfurl."""


class ConfigurationError(UnfurlError):
    """Configuration error."""


class DatabaseError(UnfurlError):
    """Database operation error."""


class PipelineError(UnfurlError):
    """Pipeline execution error."""


class CollectorError(PipelineError):
    """Feed collection error."""


class IngestionError(PipelineError):
    """Base for errors raised while ingesting a single article."""

    retryable = False


class ValidationError(IngestionError):
    """URL rejected: bad scheme, blocked target address or over-length."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class TransportError(IngestionError):
    """Timeout, refused connection, DNS failure or 5xx response."""

    retryable = True


class HttpClientError(IngestionError):
    """4xx response that is not worth retrying."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class DuplicateArticleError(IngestionError):
    """Another article already owns the resolved final URL."""

    def __init__(self, final_url: str):
        super().__init__(f"Duplicate final URL: {final_url}")
        self.final_url = final_url


class ContentError(IngestionError):
    """Final response is too large or not an HTML document."""
