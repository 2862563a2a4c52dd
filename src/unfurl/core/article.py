"""Article domain models."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from unfurl.core.enums import ArticleStatus
from unfurl.utils.date_utils import now_utc

# Keys of the metadata bundle handed to presentation/API layers.
METADATA_KEYS = (
    "og:title",
    "og:description",
    "og:image",
    "og:url",
    "og:site_name",
    "twitter:image",
    "author",
    "published_time",
    "section",
    "tags",
    "content",
    "word_count",
)


class FeedSource(BaseModel):
    """A topic feed as stored in the database."""

    id: int
    topic: str
    url: str
    result_limit: int = Field(default=10, gt=0)
    enabled: bool = True
    last_processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeedEntry(BaseModel):
    """A single entry read from a topic feed."""

    source_url: str = Field(..., min_length=1)
    title: Optional[str] = None
    description: Optional[str] = None
    source_name: Optional[str] = None
    published_at: Optional[datetime] = None


class ExtractionResult(BaseModel):
    """Metadata and plain-text content extracted from one HTML document.

    Field names use Python identifiers; ``to_metadata()`` renders the
    mapping with the public keys (``og:title``, ``twitter:image``, ...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    og_title: Optional[str] = Field(default=None, alias="og:title")
    og_description: Optional[str] = Field(default=None, alias="og:description")
    og_image: Optional[str] = Field(default=None, alias="og:image")
    og_url: Optional[str] = Field(default=None, alias="og:url")
    og_site_name: Optional[str] = Field(default=None, alias="og:site_name")
    twitter_image: Optional[str] = Field(default=None, alias="twitter:image")
    author: Optional[str] = None
    published_time: Optional[str] = None
    section: Optional[str] = None
    tags: Tuple[str, ...] = ()
    content: str = ""
    word_count: int = Field(default=0, ge=0)

    # Not part of the public mapping; kept on the article row.
    page_title: Optional[str] = None

    def to_metadata(self) -> Dict[str, Any]:
        """Return the metadata bundle keyed by its public names."""
        data = self.model_dump(by_alias=True, exclude={"page_title"})
        data["tags"] = list(self.tags)
        return data


class Article(BaseModel):
    """An ingested feed entry and everything the pipeline learned about it."""

    # Database ID
    id: Optional[int] = None

    # Feed reference
    feed_id: int
    topic: str

    # Feed data (immutable once ingested)
    source_url: str
    rss_title: Optional[str] = None
    rss_description: Optional[str] = None
    rss_source: Optional[str] = None
    pub_date: Optional[datetime] = None

    # Resolution
    final_url: Optional[str] = None
    status: ArticleStatus = ArticleStatus.PENDING

    # Extracted metadata
    page_title: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    og_url: Optional[str] = None
    og_site_name: Optional[str] = None
    twitter_image: Optional[str] = None
    author: Optional[str] = None
    published_time: Optional[str] = None
    section: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    content: Optional[str] = None
    word_count: Optional[int] = None

    # Failure bookkeeping
    retry_count: int = Field(default=0, ge=0)
    next_retry_at: Optional[datetime] = None
    last_error: Optional[str] = None

    # Claim held by a worker while the article is processed
    claim_token: Optional[str] = None

    # Timestamps
    processed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @property
    def is_permanently_failed(self) -> bool:
        """Failed with nothing left to schedule."""
        return self.status == ArticleStatus.FAILED and self.next_retry_at is None

    def metadata(self) -> Dict[str, Any]:
        """Return the stored metadata bundle keyed by its public names."""
        return {
            "og:title": self.og_title,
            "og:description": self.og_description,
            "og:image": self.og_image,
            "og:url": self.og_url,
            "og:site_name": self.og_site_name,
            "twitter:image": self.twitter_image,
            "author": self.author,
            "published_time": self.published_time,
            "section": self.section,
            "tags": list(self.tags),
            "content": self.content or "",
            "word_count": self.word_count or 0,
        }
