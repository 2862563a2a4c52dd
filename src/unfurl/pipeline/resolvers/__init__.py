"""Feed entry URL resolution."""

from unfurl.pipeline.resolvers.feed_url_resolver import (
    HTML_CONTENT_TYPES,
    FeedUrlResolver,
    ResolutionFailure,
    ResolutionResult,
    ResolvedUrl,
    create_resolver,
)
from unfurl.pipeline.resolvers.google_news import (
    decode_google_news_url,
    is_google_news_url,
    is_old_style_url,
)

__all__ = [
    "HTML_CONTENT_TYPES",
    "FeedUrlResolver",
    "ResolutionFailure",
    "ResolutionResult",
    "ResolvedUrl",
    "create_resolver",
    "decode_google_news_url",
    "is_google_news_url",
    "is_old_style_url",
]
