"""Retrieval over stored pages: tag relatedness and fuzzy search."""

from .fuzzy import FuzzySearchIndex, SearchHit
from .related import RelatedPage, RelatednessEngine

__all__ = ["FuzzySearchIndex", "RelatedPage", "RelatednessEngine", "SearchHit"]
