"""RSS 2.0 export of stored articles."""

import mimetypes
from datetime import datetime
from email.utils import format_datetime as rfc2822
from typing import List, Optional
from xml.etree import ElementTree as ET

from unfurl.__version__ import __version__
from unfurl.core.article import Article
from unfurl.core.enums import ArticleStatus
from unfurl.database.repository import ArticleRepository
from unfurl.utils.date_utils import now_utc
from unfurl.utils.logging import get_logger

logger = get_logger(__name__)

CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

ET.register_namespace("content", CONTENT_NS)
ET.register_namespace("dc", DC_NS)


class RssExporter:
    """Render stored articles as an RSS 2.0 feed.

    Items carry the full article text as ``content:encoded``, the lead
    image as an enclosure and the author as ``dc:creator``. Categories are
    the article's topic followed by its tags, without repeats.
    """

    def __init__(
        self,
        repository: ArticleRepository,
        site_name: str = "Unfurl",
        site_url: str = "https://example.com/unfurl/",
    ):
        """
        Initialize the exporter.

        Args:
            repository: Article persistence
            site_name: Channel title prefix
            site_url: Channel link
        """
        self.repository = repository
        self.site_name = site_name
        self.site_url = site_url.rstrip("/")

    def generate(
        self,
        topic: Optional[str] = None,
        feed_id: Optional[int] = None,
        status: ArticleStatus = ArticleStatus.SUCCESS,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Build the feed document.

        Args:
            topic: Only articles of this topic
            feed_id: Only articles of this feed
            status: Only articles in this status
            limit: Number of items, capped at ``MAX_LIMIT``
            offset: Matching articles to skip
            now: Build time (defaults to current UTC time)

        Returns:
            RSS 2.0 XML with declaration, UTF-8
        """
        limit = max(1, min(limit, MAX_LIMIT))
        articles = self.repository.list_articles(
            status=status, topic=topic, feed_id=feed_id, limit=limit, offset=offset
        )

        rss = ET.Element("rss", version="2.0")
        channel = self._channel(rss, topic, now or now_utc())
        for article in articles:
            self._item(channel, article)

        logger.info("rss_generated", topic=topic, feed_id=feed_id, items=len(articles))
        return ET.tostring(rss, encoding="utf-8", xml_declaration=True).decode("utf-8")

    def _channel(self, rss: ET.Element, topic: Optional[str], now: datetime) -> ET.Element:
        channel = ET.SubElement(rss, "channel")

        if topic:
            title = f"{self.site_name} - {topic}"
            description = f"Curated articles about {topic}"
        else:
            title = f"{self.site_name} - All Articles"
            description = "Curated news articles from various sources"

        _text(channel, "title", title)
        _text(channel, "link", self.site_url)
        _text(channel, "description", description)
        _text(channel, "language", "en-us")
        _text(channel, "lastBuildDate", rfc2822(now))
        _text(channel, "generator", f"Unfurl v{__version__}")
        return channel

    def _item(self, channel: ET.Element, article: Article) -> None:
        item = ET.SubElement(channel, "item")
        link = article.final_url or article.source_url

        title = article.og_title or article.page_title or article.rss_title or "Untitled"
        _text(item, "title", title)
        _text(item, "link", link)
        _text(item, "description", article.og_description or article.rss_description or "")

        if article.content:
            _text(item, f"{{{CONTENT_NS}}}encoded", article.content)

        if article.pub_date:
            _text(item, "pubDate", rfc2822(article.pub_date))

        guid = _text(item, "guid", link)
        guid.set("isPermaLink", "true")

        if article.author:
            _text(item, f"{{{DC_NS}}}creator", article.author)

        for category in _categories(article):
            _text(item, "category", category)

        if article.og_image:
            mime_type, _ = mimetypes.guess_type(article.og_image)
            ET.SubElement(
                item,
                "enclosure",
                url=article.og_image,
                type=mime_type if mime_type and mime_type.startswith("image/") else "image/jpeg",
                length="0",
            )


def _text(parent: ET.Element, tag: str, value: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = value
    return element


def _categories(article: Article) -> List[str]:
    seen: List[str] = []
    for category in [article.topic, *article.tags]:
        if category and category not in seen:
            seen.append(category)
    return seen
