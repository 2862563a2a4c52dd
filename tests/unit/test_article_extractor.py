# tests/unit/test_article_extractor.py
"""Unit tests for HTML metadata and content extraction."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from unfurl.core.article import METADATA_KEYS, ExtractionResult
from unfurl.pipeline.extractors import ArticleExtractor


@pytest.fixture
def extractor() -> ArticleExtractor:
    return ArticleExtractor()


@pytest.mark.unit
class TestMetadata:
    """Tests for Open Graph, Twitter Card and article meta tags."""

    def test_extracts_all_fields(self, extractor, sample_article_html):
        """Should read every supported meta tag."""
        result = extractor.extract(sample_article_html)

        assert result.og_title == "Breaking News"
        assert result.og_description == "Something happened & it matters."
        assert result.og_image == "https://cdn.example.com/lead.jpg"
        assert result.og_url == "https://publisher.example.org/story"
        assert result.og_site_name == "Example News"
        assert result.twitter_image == "https://cdn.example.com/card.jpg"
        assert result.author == "Jane Reporter"
        assert result.published_time == "2026-01-04T10:00:00Z"
        assert result.section == "Technology"
        assert result.tags == ("Technology", "AI")
        assert result.page_title == "Page Title | Example News"

    def test_breaking_news_scenario(self, extractor):
        """Should extract title, tags, content and word count from a minimal article."""
        html = """<html><head>
            <meta property="og:title" content="Breaking News">
            <meta property="article:tag" content="Technology">
            <meta property="article:tag" content="AI">
        </head><body><p>This is the article content.</p></body></html>"""

        result = extractor.extract(html)

        assert result.og_title == "Breaking News"
        assert result.tags == ("Technology", "AI")
        assert result.content == "This is the article content."
        assert result.word_count == 5

    def test_title_falls_back_to_document_title(self, extractor):
        """Should use <title> when og:title is missing."""
        html = "<html><head><title>Basic Article</title></head><body><p>Text</p></body></html>"

        result = extractor.extract(html)

        assert result.og_title == "Basic Article"
        assert result.page_title == "Basic Article"

    def test_empty_og_title_counts_as_missing(self, extractor):
        """Should fall back when og:title is blank."""
        html = '<head><meta property="og:title" content="  "><title>Fallback</title></head>'

        assert extractor.extract(html).og_title == "Fallback"

    def test_author_falls_back_to_generic_author(self, extractor):
        """Should use the generic author meta when article:author is missing."""
        html = '<head><meta name="author" content="Generic Author"></head><body></body>'

        assert extractor.extract(html).author == "Generic Author"

    def test_description_has_no_fallback(self, extractor):
        """Should leave og:description empty even if a plain description exists."""
        html = '<head><meta name="description" content="Plain description"></head>'

        assert extractor.extract(html).og_description is None

    def test_tags_keep_document_order_and_duplicates(self, extractor):
        """Should collect every article:tag in order, skipping empty values."""
        html = """<head>
            <meta property="article:tag" content="B">
            <meta property="article:tag" content="">
            <meta property="article:tag" content="A">
            <meta property="article:tag" content="B">
        </head>"""

        assert extractor.extract(html).tags == ("B", "A", "B")

    def test_first_non_empty_match_wins(self, extractor):
        """Should keep the first occurrence of a repeated meta tag."""
        html = """<head>
            <meta property="og:image" content="https://a.example.com/1.jpg">
            <meta property="og:image" content="https://a.example.com/2.jpg">
        </head>"""

        assert extractor.extract(html).og_image == "https://a.example.com/1.jpg"

    def test_meta_keys_are_case_insensitive(self, extractor):
        """Should match meta property names regardless of case."""
        html = '<head><meta property="OG:Title" content="Shouting"></head>'

        assert extractor.extract(html).og_title == "Shouting"

    def test_twitter_image_from_property_attribute(self, extractor):
        """Should accept twitter:image given as property instead of name."""
        html = '<head><meta property="twitter:image" content="https://t.example.com/i.png"></head>'

        assert extractor.extract(html).twitter_image == "https://t.example.com/i.png"

    def test_published_time_is_passed_through(self, extractor):
        """Should not parse or validate published_time."""
        html = '<head><meta property="article:published_time" content="yesterday-ish"></head>'

        assert extractor.extract(html).published_time == "yesterday-ish"

    def test_missing_fields_are_none(self, extractor):
        """Should leave absent metadata as None and tags empty."""
        result = extractor.extract("<html><body><p>Only text</p></body></html>")

        assert result.og_title is None
        assert result.og_image is None
        assert result.author is None
        assert result.section is None
        assert result.tags == ()


@pytest.mark.unit
class TestContent:
    """Tests for plain-text content extraction."""

    def test_excludes_script_style_and_comments(self, extractor, sample_article_html):
        """Should drop script/style payloads and comments from content."""
        result = extractor.extract(sample_article_html)

        assert "SCRIPT_MARKER" not in result.content
        assert "NewsArticle" not in result.content
        assert "color: red" not in result.content
        assert "COMMENT_MARKER" not in result.content
        assert result.content == "Breaking News This is the article content."

    def test_script_marker_in_body(self, extractor):
        """Should exclude inline script text in the body."""
        html = "<body><p>Before</p><script>MARKER()</script><p>After</p></body>"

        result = extractor.extract(html)

        assert "MARKER" not in result.content
        assert "Before" in result.content
        assert "After" in result.content

    def test_decodes_entities_and_collapses_whitespace(self, extractor):
        """Should decode entities once and collapse whitespace runs."""
        html = "<body><p>Fish &amp; Chips&nbsp;\n\n   today</p><p>&amp;lt;literal&amp;gt;</p></body>"

        result = extractor.extract(html)

        assert result.content == "Fish & Chips today&lt;literal&gt;"

    def test_word_count_matches_content_tokens(self, extractor, sample_article_html):
        """Should count whitespace-delimited tokens of the content."""
        result = extractor.extract(sample_article_html)

        assert result.word_count == len(result.content.split())

    def test_fragment_without_body(self, extractor):
        """Should read text from a document without <body>."""
        result = extractor.extract("<p>Hello <b>world</b></p>")

        assert result.content == "Hello world"
        assert result.word_count == 2

    def test_bodyless_document_excludes_title_text(self, extractor):
        """Should not count <title> text as content when there is no body."""
        result = extractor.extract("<title>Heading</title><p>Paragraph</p>")

        assert result.content == "Paragraph"
        assert result.page_title == "Heading"

    def test_keeps_text_after_closing_body(self, extractor):
        """Should keep content that follows </body> and </html>."""
        html = (
            "<html><head><title>T</title></head>"
            "<body><p>One</p></body></html><p>Two words</p>"
        )

        result = extractor.extract(html)

        assert result.content.startswith("One")
        assert result.content.endswith("Two words")
        assert result.page_title == "T"

    def test_bytes_use_meta_charset(self, extractor):
        """Should decode bytes with the charset the page declares."""
        html = '<meta charset="iso-8859-1"><p>Zürich Grüezi</p>'.encode("iso-8859-1")

        result = extractor.extract(html)

        assert result.content == "Zürich Grüezi"

    def test_header_encoding_overrides_detection(self, extractor):
        html = "<p>Grüezi</p>".encode("iso-8859-1")

        result = extractor.extract(html, encoding="iso-8859-1")

        assert result.content == "Grüezi"

    def test_recovers_from_malformed_markup(self, extractor):
        """Should keep sibling content after unclosed tags."""
        html = "<body><div><p>Unclosed <b>bold<div>sibling text</p><span>tail"

        result = extractor.extract(html)

        assert "Unclosed" in result.content
        assert "sibling text" in result.content
        assert "tail" in result.content

    def test_no_visible_text(self, extractor):
        """Should return empty content and zero words."""
        result = extractor.extract("<html><head><script>x()</script></head><body> </body></html>")

        assert result.content == ""
        assert result.word_count == 0


@pytest.mark.unit
class TestRobustness:
    """Tests for the never-raise contract."""

    @pytest.mark.parametrize(
        "html",
        [
            None,
            "",
            "   ",
            "<<<>>>",
            "</p></div></html>",
            "<meta property='og:title'>",
            "<html><head><meta content='orphan'></head></html>",
            "\x00\x01 binary-ish \xff",
            b"<p>bytes input</p>",
        ],
    )
    def test_never_raises(self, extractor, html):
        """Should always return a complete result."""
        result = extractor.extract(html)

        assert isinstance(result, ExtractionResult)
        assert isinstance(result.tags, tuple)
        assert isinstance(result.content, str)
        assert isinstance(result.word_count, int)
        assert result.word_count == len(result.content.split())

    def test_is_pure(self, extractor, sample_article_html):
        """Should return identical results for the same input."""
        first = extractor.extract(sample_article_html)
        second = extractor.extract(sample_article_html)

        assert first == second

    def test_result_is_immutable(self, extractor, sample_article_html):
        """Should not allow fields to be reassigned."""
        result = extractor.extract(sample_article_html)

        with pytest.raises(PydanticValidationError):
            result.og_title = "changed"

    def test_tags_cannot_be_mutated(self, extractor):
        """Should not allow tags to change after extraction."""
        html = '<meta property="article:tag" content="A">'
        result = extractor.extract(html)

        with pytest.raises(AttributeError):
            result.tags.append("B")

        assert result.to_metadata()["tags"] == ["A"]


@pytest.mark.unit
class TestMetadataMapping:
    """Tests for the public metadata mapping."""

    def test_mapping_has_exact_keys(self, extractor, sample_article_html):
        """Should expose exactly the public keys."""
        metadata = extractor.extract(sample_article_html).to_metadata()

        assert set(metadata) == set(METADATA_KEYS)
        assert "page_title" not in metadata
        assert metadata["og:title"] == "Breaking News"
        assert metadata["twitter:image"] == "https://cdn.example.com/card.jpg"

    def test_mapping_never_null_for_required_keys(self, extractor):
        """Should keep tags, content and word_count non-null."""
        metadata = extractor.extract("").to_metadata()

        assert metadata["tags"] == []
        assert metadata["content"] == ""
        assert metadata["word_count"] == 0
        assert metadata["og:title"] is None
