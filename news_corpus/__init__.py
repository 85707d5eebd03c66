"""
News Corpus - topic-driven news crawler with duplicate detection.

This package fetches candidate articles from a news aggregator or a list of
sites, ranks them against a topic, and stores only articles that are not
already in the corpus.

Main entry point is the CLI via `news-corpus crawl` command.

Example:
    $ news-corpus crawl --topic "climate change"
    $ news-corpus crawl --mode custom --topic ai --site techcrunch.com
"""

__all__ = [
    "__version__",
    "ArticleRecord",
    "CrawlPipeline",
    "DuplicateIndex",
    "RelevanceRanker",
    "build_request",
]
__version__ = "0.1.0"

from .core.dedup import DuplicateIndex
from .core.ranking import RelevanceRanker
from .core.types import ArticleRecord
from .runner import CrawlPipeline, build_request
