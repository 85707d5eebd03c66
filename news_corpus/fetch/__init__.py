"""
Page fetching and candidate extraction.

This package handles HTTP fetching and turning source pages
into candidate articles.
"""

from .extractor import Extractor, SelectorStrategy, extract_aggregator, first_paragraph, resolve_url
from .fetcher import FetchResult, Fetcher

__all__ = [
    "Extractor",
    "FetchResult",
    "Fetcher",
    "SelectorStrategy",
    "extract_aggregator",
    "first_paragraph",
    "resolve_url",
]
