"""Utility modules for Unfurl."""

from unfurl.utils.date_utils import (
    format_datetime,
    from_db_timestamp,
    now_utc,
    parse_date,
    to_db_timestamp,
)
from unfurl.utils.exceptions import (
    CollectorError,
    ConfigurationError,
    ContentError,
    DatabaseError,
    DuplicateArticleError,
    HttpClientError,
    IngestionError,
    PipelineError,
    TransportError,
    UnfurlError,
    ValidationError,
)
from unfurl.utils.logging import get_logger, setup_logging
from unfurl.utils.text_utils import (
    clean_optional,
    clean_whitespace,
    count_words,
    extract_domain,
    truncate_text,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "UnfurlError",
    "ConfigurationError",
    "DatabaseError",
    "PipelineError",
    "CollectorError",
    "IngestionError",
    "ValidationError",
    "TransportError",
    "HttpClientError",
    "ContentError",
    "DuplicateArticleError",
    # Date utils
    "parse_date",
    "now_utc",
    "to_db_timestamp",
    "from_db_timestamp",
    "format_datetime",
    # Text utils
    "clean_whitespace",
    "clean_optional",
    "count_words",
    "truncate_text",
    "extract_domain",
]
