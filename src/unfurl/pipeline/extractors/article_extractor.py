"""Metadata and plain-text extraction from article HTML using BeautifulSoup."""

from collections import defaultdict
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, ProcessingInstruction

from unfurl.core.article import ExtractionResult
from unfurl.utils.logging import get_logger
from unfurl.utils.text_utils import clean_optional, clean_whitespace, count_words

logger = get_logger(__name__)

# Subtrees whose text is never part of the visible content
_INVISIBLE_TAGS = ["script", "style"]

_NON_TEXT_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)


class ArticleExtractor:
    """Extract Open Graph, Twitter Card and article metadata plus plain text.

    ``extract`` is a pure function of its input: no state is kept between
    calls, so one instance can be shared across workers. It never raises on
    malformed markup; whatever cannot be read comes back empty.

    Metadata priority (first non-empty match in document order wins):

    - ``og:title`` -> document ``<title>``
    - ``article:author`` -> generic ``author`` meta
    - every other field reads its own meta tag only
    - ``article:tag`` collects all occurrences, duplicates preserved

    The extractor holds the whole document in memory; callers are expected
    to cap the input size before handing it over.
    """

    def __init__(self, parser: str = "html.parser"):
        """
        Initialize the extractor.

        Args:
            parser: BeautifulSoup tree builder. ``html.parser`` recovers from
                unclosed and unknown tags without dropping sibling content.
        """
        self.parser = parser

    def extract(
        self, html: Union[str, bytes, None], encoding: Optional[str] = None
    ) -> ExtractionResult:
        """
        Extract metadata and content from HTML.

        Args:
            html: Raw HTML document. Bytes are decoded by BeautifulSoup,
                which honours a `<meta charset>` declaration.
            encoding: Charset from the HTTP headers; overrides detection

        Returns:
            ExtractionResult; empty fields when nothing could be read
        """
        if not html or not (html.strip() if isinstance(html, str) else html.strip(b" \t\r\n")):
            return ExtractionResult()

        try:
            if isinstance(html, bytes):
                soup = BeautifulSoup(html, self.parser, from_encoding=encoding)
            else:
                soup = BeautifulSoup(html, self.parser)
        except Exception as e:
            logger.warning("html_parse_failed", error=str(e))
            return ExtractionResult()

        try:
            return self._extract_from_soup(soup)
        except Exception as e:
            # Unparseable input yields an empty result
            logger.warning("extraction_degraded", error=str(e), exc_info=True)
            return ExtractionResult()

    def _extract_from_soup(self, soup: BeautifulSoup) -> ExtractionResult:
        meta = self._collect_meta(soup)
        page_title = self._extract_title(soup)

        content = self._extract_content(soup)

        return ExtractionResult(
            og_title=_first(meta, "og:title") or page_title,
            og_description=_first(meta, "og:description"),
            og_image=_first(meta, "og:image"),
            og_url=_first(meta, "og:url"),
            og_site_name=_first(meta, "og:site_name"),
            twitter_image=_first(meta, "twitter:image"),
            author=_first(meta, "article:author") or _first(meta, "author"),
            published_time=_first(meta, "article:published_time"),
            section=_first(meta, "article:section"),
            tags=tuple(meta.get("article:tag", [])),
            content=content,
            word_count=count_words(content),
            page_title=page_title,
        )

    def _collect_meta(self, soup: BeautifulSoup) -> Dict[str, List[str]]:
        """Group non-empty ``<meta>`` content values by property/name, in document order."""
        meta: Dict[str, List[str]] = defaultdict(list)

        for tag in soup.find_all("meta"):
            key = tag.get("property") or tag.get("name")
            if not key or not isinstance(key, str):
                continue

            value = clean_optional(tag.get("content"))
            if value is None:
                continue

            meta[key.strip().lower()].append(value)

        return meta

    def _extract_title(self, soup: BeautifulSoup) -> Optional[str]:
        """Get the document ``<title>`` text."""
        if soup.title is None:
            return None
        return clean_optional(soup.title.get_text())

    def _extract_content(self, soup: BeautifulSoup) -> str:
        """Get all visible text with script/style/comment payloads removed."""
        for tag in soup.find_all(_INVISIBLE_TAGS):
            tag.decompose()

        for node in soup.find_all(string=lambda s: isinstance(s, _NON_TEXT_NODES)):
            node.extract()

        # Text after </body> or </html> sits outside soup.body with html.parser
        for tag in soup.find_all(["head", "title"]):
            tag.decompose()

        return clean_whitespace(soup.get_text())


def _first(meta: Dict[str, List[str]], key: str) -> Optional[str]:
    values = meta.get(key)
    return values[0] if values else None
