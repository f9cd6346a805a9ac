"""Page enrichment: summaries and topical tags."""

from .summarize import Summarizer, truncate_summary
from .tags import TagExtractor, extract_tags_fallback

__all__ = ["Summarizer", "TagExtractor", "extract_tags_fallback", "truncate_summary"]
