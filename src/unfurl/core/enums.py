"""Enums for the Unfurl ingestion pipeline."""

from enum import Enum


class ArticleStatus(str, Enum):
    """Lifecycle status of an article."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class RejectionReason(str, Enum):
    """Why the URL validator refused a URL."""

    EMPTY_URL = "empty_url"
    URL_TOO_LONG = "url_too_long"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    MALFORMED_URL = "malformed_url"
    PRIVATE_ADDRESS = "private_address"
    UNRESOLVABLE_HOST = "unresolvable_host"


class FailureKind(str, Enum):
    """Classified outcome of a failed resolve/fetch/persist attempt."""

    INVALID_URL = "invalid_url"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    DOCUMENT_TOO_LARGE = "document_too_large"
    UNSUPPORTED_CONTENT = "unsupported_content"
    DUPLICATE_URL = "duplicate_url"


class ProcessingOutcome(str, Enum):
    """Result of processing one claimed article."""

    SUCCEEDED = "succeeded"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    DUPLICATE = "duplicate"
