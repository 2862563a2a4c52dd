"""HTML metadata and content extraction."""

from unfurl.pipeline.extractors.article_extractor import ArticleExtractor

__all__ = ["ArticleExtractor"]
