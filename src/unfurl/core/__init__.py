"""Core domain models and configurations."""

from unfurl.core.article import (
    METADATA_KEYS,
    Article,
    ExtractionResult,
    FeedEntry,
    FeedSource,
)
from unfurl.core.config import Config, FeedConfig, PipelineConfig, RetryPolicyConfig
from unfurl.core.enums import (
    ArticleStatus,
    FailureKind,
    ProcessingOutcome,
    RejectionReason,
)

__all__ = [
    # Article models
    "Article",
    "ExtractionResult",
    "FeedEntry",
    "FeedSource",
    "METADATA_KEYS",
    # Configuration models
    "Config",
    "FeedConfig",
    "PipelineConfig",
    "RetryPolicyConfig",
    # Enums
    "ArticleStatus",
    "FailureKind",
    "ProcessingOutcome",
    "RejectionReason",
]
