"""
Core domain models and business logic.

This package contains data types, ranking, corpus storage and duplicate
detection, independent of how articles are fetched.
"""

from .corpus import CorpusStore
from .dedup import DuplicateIndex, DuplicateSignal, calculate_similarity, default_signals
from .normalize import normalize_title, normalize_url, slugify
from .ranking import RelevanceRanker, is_relevant, relevance_score
from .types import ArticleRecord, DuplicateIndexEntry, ExtractedCandidate, RunStats, StoredArticle

__all__ = [
    "ArticleRecord",
    "CorpusStore",
    "DuplicateIndex",
    "DuplicateIndexEntry",
    "DuplicateSignal",
    "ExtractedCandidate",
    "RelevanceRanker",
    "RunStats",
    "StoredArticle",
    "calculate_similarity",
    "default_signals",
    "is_relevant",
    "normalize_title",
    "normalize_url",
    "relevance_score",
    "slugify",
]
