"""
Duplicate detection against the persisted article index.

The index is a JSON array of accepted articles. A candidate is a duplicate
when any signal matches, checked cheapest first:
1. Normalized source URL equality
2. Content fingerprint equality
3. Title fingerprint equality
4. Levenshtein title similarity above threshold
5. Word-set overlap between the candidate summary and any stored article body

Signals 1-4 only look at the index. Signal 5 reads the corpus, so it runs last.
"""

from __future__ import annotations

from collections import Counter
import json
import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

from ..errors import StorageError
from ..utils.logging import log_event
from .corpus import CorpusStore
from .normalize import jaccard_similarity, normalize_url, title_similarity, word_set
from .types import ArticleRecord, DuplicateIndexEntry


class DuplicateSignal(Protocol):
    """One way of recognising an already-stored article.

    Attributes:
        reason: Counter bucket for matches ("url", "title" or "content")
    """

    reason: str

    def matches(self, candidate: ArticleRecord, entries: Sequence[DuplicateIndexEntry]) -> bool:
        ...


class UrlSignal:
    reason = "url"

    def matches(self, candidate: ArticleRecord, entries: Sequence[DuplicateIndexEntry]) -> bool:
        normalized = normalize_url(candidate.source_link)
        return any(normalize_url(entry.source_link) == normalized for entry in entries)


class ContentHashSignal:
    reason = "content"

    def matches(self, candidate: ArticleRecord, entries: Sequence[DuplicateIndexEntry]) -> bool:
        return any(entry.content_hash == candidate.content_hash for entry in entries)


class TitleHashSignal:
    reason = "title"

    def matches(self, candidate: ArticleRecord, entries: Sequence[DuplicateIndexEntry]) -> bool:
        return any(entry.title_hash == candidate.title_hash for entry in entries)


class TitleSimilaritySignal:
    reason = "title"

    def __init__(self, threshold: float = 0.85):
        self.threshold = threshold

    def matches(self, candidate: ArticleRecord, entries: Sequence[DuplicateIndexEntry]) -> bool:
        return any(title_similarity(candidate.title, entry.title) > self.threshold for entry in entries)


class ContentOverlapSignal:
    """Compares the candidate summary with every stored article body.

    Ignores the index and works from the corpus files, whose word sets are
    cached by the corpus store.
    """

    reason = "content"

    def __init__(self, corpus: CorpusStore, threshold: float = 0.80):
        self.corpus = corpus
        self.threshold = threshold

    def matches(self, candidate: ArticleRecord, entries: Sequence[DuplicateIndexEntry]) -> bool:
        summary_words = word_set(candidate.summary)
        for tokens in self.corpus.body_token_sets().values():
            if jaccard_similarity(summary_words, tokens) > self.threshold:
                return True
        return False


def default_signals(
    corpus: CorpusStore,
    title_threshold: float = 0.85,
    content_threshold: float = 0.80,
    content_scan: bool = True,
) -> list[DuplicateSignal]:
    signals: list[DuplicateSignal] = [
        UrlSignal(),
        ContentHashSignal(),
        TitleHashSignal(),
        TitleSimilaritySignal(title_threshold),
    ]
    if content_scan:
        signals.append(ContentOverlapSignal(corpus, content_threshold))
    return signals


def calculate_similarity(first: ArticleRecord, second: ArticleRecord) -> float:
    """Weighted similarity of two articles in [0, 1].

    Title similarity and summary overlap weigh 40% each, normalized URL
    equality 20%. Only used for diagnostics.
    """
    title_sim = title_similarity(first.title, second.title)
    content_sim = jaccard_similarity(first.summary, second.summary)
    url_sim = 1.0 if normalize_url(first.source_link) == normalize_url(second.source_link) else 0.0
    return title_sim * 0.4 + content_sim * 0.4 + url_sim * 0.2


class DuplicateIndex:
    """Repository owning the duplicate index file.

    Entries are held in memory after the first load and the whole file is
    rewritten on every mutation. One instance is meant to serve one crawl run.

    Attributes:
        path: Location of the JSON index
        corpus: Corpus store the index is reconciled against
        signals: Ordered duplicate checks, first match wins
    """

    def __init__(
        self,
        path: Path,
        corpus: CorpusStore,
        signals: Sequence[DuplicateSignal] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.path = path
        self.corpus = corpus
        self.signals = list(signals) if signals is not None else default_signals(corpus)
        self.logger = logger
        self._entries: list[DuplicateIndexEntry] | None = None

    @property
    def entries(self) -> list[DuplicateIndexEntry]:
        if self._entries is None:
            self._entries = self._load()
        return list(self._entries)

    def reconcile(self) -> int:
        """Drop entries whose article file no longer exists and persist the result.

        Returns:
            Number of entries removed
        """
        existing = self.corpus.filenames()
        entries = self._load()
        kept = [entry for entry in entries if entry.filename in existing]
        self._commit(kept)
        return len(entries) - len(kept)

    def find_duplicate(self, candidate: ArticleRecord) -> str | None:
        """Return the reason of the first matching signal, or None."""
        entries = self.entries
        for signal in self.signals:
            if signal.matches(candidate, entries):
                return signal.reason
        return None

    def is_duplicate(self, candidate: ArticleRecord) -> bool:
        return self.find_duplicate(candidate) is not None

    def append(self, entry: DuplicateIndexEntry) -> None:
        self._commit([*self.entries, entry])

    def remove(self, filename: str) -> None:
        self._commit([entry for entry in self.entries if entry.filename != filename])

    def stats(self) -> dict[str, Any]:
        entries = self.entries
        domains = Counter(entry.source_domain for entry in entries)
        title_hashes = Counter(entry.title_hash for entry in entries)
        content_hashes = Counter(entry.content_hash for entry in entries)
        return {
            "total_articles": len(entries),
            "domains": dict(domains),
            "potential_title_duplicates": sum(1 for count in title_hashes.values() if count > 1),
            "potential_content_duplicates": sum(1 for count in content_hashes.values() if count > 1),
        }

    def _load(self) -> list[DuplicateIndexEntry]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            log_event(
                self.logger,
                "Duplicate index unreadable, starting empty",
                level=logging.WARNING,
                event="index_corrupt",
                path=str(self.path),
                error=f"{type(exc).__name__}: {exc}",
            )
            return []
        if not isinstance(raw, list):
            return []

        entries: list[DuplicateIndexEntry] = []
        for item in raw:
            entry = DuplicateIndexEntry.from_dict(item) if isinstance(item, dict) else None
            if entry is not None:
                entries.append(entry)
        return entries

    def _commit(self, entries: list[DuplicateIndexEntry]) -> None:
        """Write ``entries`` to disk, then adopt them in memory."""
        payload = [entry.to_dict() for entry in entries]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=4), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not write duplicate index {self.path}: {exc}") from exc
        self._entries = entries
