"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: HTTP fetching settings
- AggregatorConfig: News aggregator search endpoint
- ExtractConfig: Candidate and summary extraction settings
- RankingConfig: Relevance ranking settings
- DedupConfig: Duplicate detection thresholds
- PacingConfig: Delays between sources
- StorageConfig: Corpus directory and index file locations
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

import yaml


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
]


@dataclass
class FetchConfig:
    """Configuration for HTTP fetching.

    Attributes:
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        verify_tls: Whether to verify TLS certificates. Off by default because
                    some news sites serve broken chains; turning it off accepts
                    man-in-the-middle risk on those requests.
        trust_env: Whether to respect system proxy settings
        user_agents: Pool of User-Agent strings, one is picked per request
    """

    timeout_seconds: float = 30.0
    retries: int = 0
    verify_tls: bool = False
    trust_env: bool = True
    user_agents: list[str] = field(default_factory=lambda: list(DEFAULT_USER_AGENTS))


@dataclass
class AggregatorConfig:
    """Configuration for the news aggregator used in general mode.

    Attributes:
        search_url: Search URL template, ``{query}`` is replaced by the encoded topic
        origin: Origin used to resolve relative headline links
    """

    search_url: str = "https://news.google.com/search?q={query}&hl=en-US&gl=US&ceid=US:en"
    origin: str = "https://news.google.com"


@dataclass
class ExtractConfig:
    """Configuration for candidate extraction.

    Attributes:
        min_summary_chars: A paragraph must be longer than this to become a summary
        max_summary_chars: Summaries are truncated to this many characters
        summary_fetch_limit: Maximum article pages fetched for summaries per source
        fallback: Text extractors tried after the CSS selectors fail
    """

    min_summary_chars: int = 50
    max_summary_chars: int = 300
    summary_fetch_limit: int = 20
    fallback: list[str] = field(default_factory=lambda: ["trafilatura", "readability"])


@dataclass
class RankingConfig:
    """Configuration for relevance ranking.

    Attributes:
        max_results: Number of ranked articles kept per run
        min_keyword_length: Topic words shorter than this are ignored
    """

    max_results: int = 20
    min_keyword_length: int = 3


@dataclass
class DedupConfig:
    """Configuration for duplicate detection.

    Attributes:
        title_similarity_threshold: Levenshtein ratio above which titles are duplicates
        content_similarity_threshold: Jaccard ratio above which bodies are duplicates
        content_scan: Whether to run the full-corpus content comparison
    """

    title_similarity_threshold: float = 0.85
    content_similarity_threshold: float = 0.80
    content_scan: bool = True


@dataclass
class PacingConfig:
    """Delays inserted between sources to avoid remote rate limiting.

    Attributes:
        general_delay_seconds: Pause after querying the aggregator
        site_delay_min: Lower bound of the random pause after each custom site
        site_delay_max: Upper bound of the random pause after each custom site
    """

    general_delay_seconds: float = 2.0
    site_delay_min: float = 2.0
    site_delay_max: float = 5.0


@dataclass
class StorageConfig:
    """Locations of the corpus and the duplicate index.

    Attributes:
        articles_dir: Directory holding one markdown file per article
        index_path: JSON file holding the duplicate index
    """

    articles_dir: str = "storage/articles"
    index_path: str = "storage/duplicate_index.json"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory for the log file
        filename: Name of the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    directory: str = "logs"
    filename: str = "crawler.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    pacing: PacingConfig = field(default_factory=PacingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "fetch": FetchConfig,
    "aggregator": AggregatorConfig,
    "extract": ExtractConfig,
    "ranking": RankingConfig,
    "dedup": DedupConfig,
    "pacing": PacingConfig,
    "storage": StorageConfig,
    "logging": LoggingConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig.

    Unknown sections and unknown keys inside a section are ignored.
    """
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(**{name: cls(**data[name]) for name, cls in _SECTIONS.items()})
