"""
Candidate extraction from news pages.

Two modes are supported:
1. Aggregator: one fixed rule per ``<article>`` block (headline anchor plus snippet)
2. Generic site: an ordered list of CSS selector strategies, the first one
   yielding a relevant candidate wins

Generic candidates carry no inline summary, so the article page is fetched
and its first long paragraph is used. Summary lookup tries CSS selectors
first, then the configured text extractors (trafilatura, readability).
"""

from __future__ import annotations

import logging
import re
from typing import Callable, NamedTuple
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag
import trafilatura
from readability import Document

from ..config import ExtractConfig
from ..core.ranking import is_relevant
from ..core.types import ExtractedCandidate
from ..errors import ExtractionError, FetchError
from ..utils.logging import log_event
from .fetcher import Fetcher


class SelectorStrategy(NamedTuple):
    name: str
    selector: str


SITE_STRATEGIES = [
    SelectorStrategy("article_headings", "article h1 a, article h2 a, article h3 a"),
    SelectorStrategy("cms_titles", ".post-title a, .entry-title a"),
    SelectorStrategy("headings", "h1 a, h2 a, h3 a"),
    SelectorStrategy("news_items", ".news-item a, .article-item a"),
    SelectorStrategy("href_patterns", 'a[href*="/article/"], a[href*="/news/"], a[href*="/post/"]'),
]

SUMMARY_SELECTORS = [
    ".entry-content p:first-of-type",
    ".post-content p:first-of-type",
    "article p:first-of-type",
    ".content p:first-of-type",
    "p:first-of-type",
]

_ABSOLUTE_RE = re.compile(r"^https?://", re.IGNORECASE)


def resolve_url(base: str, relative: str) -> str:
    """Resolve a link found on ``base``.

    - ``http(s)://...`` is returned unchanged
    - ``//host/...`` takes the scheme of ``base``
    - ``/path`` takes scheme and host of ``base``
    - anything else is appended to ``base`` treated as a directory

    Examples:
        >>> resolve_url("https://news.google.com", "./articles/x")
        'https://news.google.com/./articles/x'
        >>> resolve_url("http://site.com/news", "//cdn.site.com/a")
        'http://cdn.site.com/a'
    """
    if _ABSOLUTE_RE.match(relative):
        return relative
    parsed = urlsplit(base)
    scheme = parsed.scheme or "https"
    if relative.startswith("//"):
        return f"{scheme}:{relative}"
    if relative.startswith("/"):
        return f"{scheme}://{parsed.netloc}{relative}"
    return f"{base.rstrip('/')}/{relative}"


def host_of(url: str) -> str | None:
    return urlsplit(url).hostname


def truncate_summary(text: str, max_chars: int = 300) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _text(node: Tag) -> str:
    return " ".join(node.get_text(" ").split())


def extract_aggregator(html: str, origin: str, topic: str) -> list[ExtractedCandidate]:
    """Extract candidates from an aggregator search page.

    Each ``<article>`` contributes its ``h3 a`` headline and the first ``p``
    as snippet. Blocks without a headline are ignored.

    Args:
        html: Search results page
        origin: Aggregator origin used to resolve relative links
        topic: Search topic, used in the placeholder summary

    Returns:
        Candidates in page order
    """
    soup = BeautifulSoup(html, "html.parser")
    fallback_domain = host_of(origin) or origin
    candidates: list[ExtractedCandidate] = []
    for block in soup.select("article"):
        anchor = block.select_one("h3 a")
        if anchor is None:
            continue
        title = _text(anchor)
        href = anchor.get("href")
        if not title or not isinstance(href, str):
            continue
        link = resolve_url(origin, href)
        snippet = block.select_one("p")
        summary = _text(snippet) if snippet is not None else ""
        if not summary:
            summary = f"Article about: {topic}"
        candidates.append(ExtractedCandidate(title, link, summary, host_of(link) or fallback_domain))
    return candidates


def first_paragraph(html: str, cfg: ExtractConfig) -> str | None:
    """Find the first paragraph longer than ``cfg.min_summary_chars``.

    Tries the summary CSS selectors, then each fallback extractor in order.

    Returns:
        The paragraph truncated to ``cfg.max_summary_chars``, or None
    """
    order = ["selectors"] + [name for name in cfg.fallback if name != "selectors"]
    for method in order:
        extractor = _get_extractor(method)
        if extractor is None:
            continue
        try:
            text = extractor(html, cfg.min_summary_chars)
        except Exception:  # noqa: BLE001
            text = None
        if text:
            return truncate_summary(text, cfg.max_summary_chars)
    return None


def _get_extractor(name: str) -> Callable[[str, int], str | None] | None:
    if name == "selectors":
        return _summary_from_selectors
    if name == "trafilatura":
        return _summary_from_trafilatura
    if name == "readability":
        return _summary_from_readability
    return None


def _summary_from_selectors(html: str, min_chars: int) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    for selector in SUMMARY_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text().strip()
        if len(text) > min_chars:
            return text
    return None


def _summary_from_trafilatura(html: str, min_chars: int) -> str | None:
    text = trafilatura.extract(html)
    if not text:
        return None
    return _first_long_line(text.splitlines(), min_chars)


def _summary_from_readability(html: str, min_chars: int) -> str | None:
    content_html = Document(html).summary()
    soup = BeautifulSoup(content_html, "html.parser")
    return _first_long_line((p.get_text() for p in soup.find_all("p")), min_chars)


def _first_long_line(lines, min_chars: int) -> str | None:
    for line in lines:
        line = line.strip()
        if len(line) > min_chars:
            return line
    return None


class Extractor:
    """Pulls candidate articles out of source pages.

    Attributes:
        fetcher: Used for secondary summary lookups
        cfg: Extraction settings
        min_keyword_length: Shortest topic word used for relevance checks
        strategies: Ordered selector strategies for generic sites
    """

    def __init__(
        self,
        fetcher: Fetcher,
        cfg: ExtractConfig,
        min_keyword_length: int = 3,
        strategies: list[SelectorStrategy] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.fetcher = fetcher
        self.cfg = cfg
        self.min_keyword_length = min_keyword_length
        self.strategies = strategies or SITE_STRATEGIES
        self.logger = logger
        self._summary_budget = cfg.summary_fetch_limit

    def extract(self, html: str, base_url: str, topic: str) -> list[ExtractedCandidate]:
        """Extract candidates from a generic site page (the default mode)."""
        return self.extract_site(html, base_url, topic)

    def extract_site(self, html: str, base_url: str, topic: str) -> list[ExtractedCandidate]:
        """Extract relevant candidates from a generic news site.

        Strategies are tried in order; the first one producing at least one
        relevant candidate ends the search.
        """
        soup = BeautifulSoup(html, "html.parser")
        domain = host_of(base_url) or base_url
        self._summary_budget = self.cfg.summary_fetch_limit

        for strategy in self.strategies:
            candidates: list[ExtractedCandidate] = []
            for node in soup.select(strategy.selector):
                try:
                    candidate = self._candidate_from_anchor(node, base_url, domain, topic)
                except ExtractionError as exc:
                    log_event(
                        self.logger,
                        "Candidate skipped",
                        level=logging.WARNING,
                        event="candidate_skipped",
                        source=base_url,
                        strategy=strategy.name,
                        error=str(exc),
                    )
                    continue
                if candidate is not None:
                    candidates.append(candidate)
            if candidates:
                log_event(
                    self.logger,
                    "Selector strategy matched",
                    level=logging.DEBUG,
                    event="strategy_matched",
                    source=base_url,
                    strategy=strategy.name,
                    count=len(candidates),
                )
                return candidates
        return []

    def _candidate_from_anchor(
        self,
        node: Tag,
        base_url: str,
        domain: str,
        topic: str,
    ) -> ExtractedCandidate | None:
        title = _text(node)
        if not is_relevant(title, topic, self.min_keyword_length):
            return None
        href = node.get("href")
        if not isinstance(href, str) or not href.strip():
            raise ExtractionError(f"Anchor without href: {title!r}")
        link = resolve_url(base_url, href.strip())

        summary = None
        if self._summary_budget > 0:
            self._summary_budget -= 1
            summary = self.lookup_summary(link)
        if not summary:
            summary = f"Article from {domain} about: {topic}"
        return ExtractedCandidate(title, link, summary, domain)

    def lookup_summary(self, url: str) -> str | None:
        """Fetch an article page and return its first long paragraph.

        Best effort: fetch failures are logged and yield None.
        """
        try:
            html = self.fetcher.fetch(url)
        except FetchError as exc:
            log_event(
                self.logger,
                "Summary lookup failed",
                level=logging.DEBUG,
                event="summary_failed",
                url=url,
                error=str(exc),
                status_code=exc.status_code,
            )
            return None
        return first_paragraph(html, self.cfg)
