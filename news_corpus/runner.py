"""
Crawl pipeline orchestration.

This module coordinates one crawl run:
1. Reconcile the duplicate index with the corpus directory
2. Fetch and extract candidates from each source (aggregator or custom sites)
3. Rank candidates by topical relevance
4. Skip duplicates, persist and index everything else
5. Report run statistics

Runs are sequential. Sources that fail are logged and counted, never fatal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import random
import re
import time
from typing import Any, Callable
from urllib.parse import quote_plus

from .config import AppConfig
from .core.corpus import CorpusStore
from .core.dedup import DuplicateIndex, default_signals
from .core.ranking import RelevanceRanker
from .core.types import ArticleRecord, ExtractedCandidate, RunStats
from .errors import ExtractionError, FetchError, PipelineError, StorageError, ValidationError
from .fetch.extractor import Extractor, extract_aggregator
from .fetch.fetcher import Fetcher
from .utils.logging import get_logger, log_event


MODES = ("general", "custom")


@dataclass
class CrawlRequest:
    """Validated crawl input.

    Attributes:
        mode: "general" to query the aggregator, "custom" to crawl given sites
        topic: Non-empty search topic
        websites: Site URLs with a scheme, non-empty in custom mode
    """

    mode: str
    topic: str
    websites: list[str] = field(default_factory=list)


@dataclass
class CrawlReport:
    """Outcome of a crawl run.

    Attributes:
        stats: Counters for this run
        index_stats: Duplicate index statistics after the run
        saved: Articles persisted during the run, in ranked order
    """

    stats: RunStats
    index_stats: dict[str, Any]
    saved: list[ArticleRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {**self.stats.to_dict(), **self.index_stats}


def normalize_site_url(url: str) -> str:
    """Prefix ``https://`` when a site URL has no scheme."""
    url = url.strip()
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    return url


def build_request(mode: str, topic: str, websites: list[str] | str | None = None) -> CrawlRequest:
    """Validate raw crawl input.

    Args:
        mode: "general" or "custom"
        topic: Search topic, surrounding whitespace is ignored
        websites: Site URLs as a list or newline-separated text

    Raises:
        ValidationError: On an unknown mode, an empty topic, or custom mode without sites
    """
    mode = (mode or "general").strip().lower()
    if mode not in MODES:
        raise ValidationError(f"Unsupported mode {mode!r}. Use 'general' or 'custom'.")

    topic = (topic or "").strip()
    if not topic:
        raise ValidationError("Topic is required")

    if isinstance(websites, str):
        websites = websites.splitlines()
    sites = [normalize_site_url(site) for site in websites or [] if site.strip()]
    if mode == "custom" and not sites:
        raise ValidationError("At least one website URL is required for custom mode")

    return CrawlRequest(mode=mode, topic=topic, websites=sites if mode == "custom" else [])


class CrawlPipeline:
    """Drives crawl runs against one corpus directory and index file.

    Collaborators default to instances built from ``cfg`` and can be
    replaced, which is how tests inject fake fetchers and clocks.

    Args:
        cfg: Application configuration
        fetcher: Page fetcher
        corpus: Corpus store
        index: Duplicate index repository
        ranker: Relevance ranker
        logger: Logger for pipeline events
        sleep: Called with the pause length between sources
        rng: Random source for the pause length
    """

    def __init__(
        self,
        cfg: AppConfig,
        fetcher: Fetcher | None = None,
        corpus: CorpusStore | None = None,
        index: DuplicateIndex | None = None,
        ranker: RelevanceRanker | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ):
        self.cfg = cfg
        self.logger = logger or get_logger()
        self.fetcher = fetcher or Fetcher(cfg.fetch)
        self.corpus = corpus or CorpusStore(Path(cfg.storage.articles_dir), logger=self.logger)
        self.index = index or DuplicateIndex(
            Path(cfg.storage.index_path),
            self.corpus,
            signals=default_signals(
                self.corpus,
                title_threshold=cfg.dedup.title_similarity_threshold,
                content_threshold=cfg.dedup.content_similarity_threshold,
                content_scan=cfg.dedup.content_scan,
            ),
            logger=self.logger,
        )
        self.ranker = ranker or RelevanceRanker(cfg.ranking.max_results, cfg.ranking.min_keyword_length)
        self.extractor = Extractor(
            self.fetcher,
            cfg.extract,
            min_keyword_length=cfg.ranking.min_keyword_length,
            logger=self.logger,
        )
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.last_stats = RunStats()

    def run(self, request: CrawlRequest) -> CrawlReport:
        """Run one crawl.

        Raises:
            PipelineError: When anything unexpected escapes; articles saved
                           before the failure are kept
        """
        try:
            return self._run(request)
        except PipelineError:
            raise
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Crawl failed",
                level=logging.ERROR,
                event="crawl_failed",
                topic=request.topic,
                error=f"{type(exc).__name__}: {exc}",
            )
            raise PipelineError(f"Crawling failed: {exc}") from exc

    def _run(self, request: CrawlRequest) -> CrawlReport:
        stats = RunStats()
        self.last_stats = stats
        log_event(
            self.logger,
            "Crawl start",
            event="crawl_start",
            mode=request.mode,
            topic=request.topic,
            sources=len(request.websites) or 1,
        )

        pruned = self.index.reconcile()
        log_event(self.logger, "Index reconciled", event="index_reconciled", pruned=pruned)

        if request.mode == "general":
            candidates = self._collect_general(request.topic, stats)
        else:
            candidates = self._collect_custom(request.websites, request.topic, stats)

        stats.found = len(candidates)
        records = [ArticleRecord.from_candidate(candidate) for candidate in candidates]
        ranked = self.ranker.rank(records, request.topic)
        saved = self._admit(ranked, stats)

        index_stats = self.index.stats()
        log_event(
            self.logger,
            "Crawl complete",
            event="crawl_complete",
            topic=request.topic,
            **stats.to_dict(),
        )
        return CrawlReport(stats=stats, index_stats=index_stats, saved=saved)

    def _collect_general(self, topic: str, stats: RunStats) -> list[ExtractedCandidate]:
        url = self.cfg.aggregator.search_url.format(query=quote_plus(topic))
        candidates = self._from_source(url, stats, lambda html: extract_aggregator(html, self.cfg.aggregator.origin, topic))
        self._pause(self.cfg.pacing.general_delay_seconds)
        return candidates

    def _collect_custom(self, websites: list[str], topic: str, stats: RunStats) -> list[ExtractedCandidate]:
        candidates: list[ExtractedCandidate] = []
        for site in websites:
            candidates.extend(self._from_source(site, stats, lambda html, site=site: self.extractor.extract(html, site, topic)))
            self._pause(self._rng.uniform(self.cfg.pacing.site_delay_min, self.cfg.pacing.site_delay_max))
        return candidates

    def _from_source(
        self,
        url: str,
        stats: RunStats,
        parse: Callable[[str], list[ExtractedCandidate]],
    ) -> list[ExtractedCandidate]:
        log_event(self.logger, "Source start", event="source_start", url=url)
        try:
            html = self.fetcher.fetch(url)
            candidates = parse(html)
        except (FetchError, ExtractionError) as exc:
            stats.source_errors += 1
            log_event(
                self.logger,
                "Source failed",
                level=logging.ERROR,
                event="source_failed",
                url=url,
                error=str(exc),
            )
            return []
        log_event(self.logger, "Source done", event="source_done", url=url, found=len(candidates))
        return candidates

    def _admit(self, ranked: list[ArticleRecord], stats: RunStats) -> list[ArticleRecord]:
        saved: list[ArticleRecord] = []
        for record in ranked:
            reason = self.index.find_duplicate(record)
            if reason is not None:
                stats.record_duplicate(reason)
                log_event(
                    self.logger,
                    f"Skipped duplicate article: {record.title}",
                    event="duplicate_skipped",
                    reason=reason,
                    url=record.source_link,
                )
                continue

            record = self.corpus.claim_filename(record)
            try:
                self.corpus.write(record)
                try:
                    self.index.append(record.to_index_entry())
                except StorageError:
                    # every corpus file must have an index entry
                    self.corpus.discard(record)
                    raise
            except StorageError as exc:
                stats.storage_errors += 1
                log_event(
                    self.logger,
                    "Article not saved",
                    level=logging.ERROR,
                    event="article_failed",
                    title=record.title,
                    error=str(exc),
                )
                continue

            stats.saved += 1
            saved.append(record)
            log_event(
                self.logger,
                f"Saved new article: {record.title}",
                event="article_saved",
                article_file=record.filename,
                url=record.source_link,
            )
        return saved

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def detailed_stats(self) -> dict[str, Any]:
        """Last run's counters merged with the current index statistics."""
        return {**self.last_stats.to_dict(), **self.index.stats()}

    def close(self) -> None:
        self.fetcher.close()

