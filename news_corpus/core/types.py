"""
Core data types for the news corpus crawler.

This module defines the fundamental data structures used throughout the pipeline:
- ExtractedCandidate: Raw (title, link, summary, domain) tuple pulled from a page
- ArticleRecord: Immutable article with fingerprints and a corpus filename
- DuplicateIndexEntry: Projection of an accepted article stored in the index
- StoredArticle: Article header parsed back from a corpus file
- RunStats: Counters for a single crawl run
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, NamedTuple

from .normalize import content_hash, slugify, title_hash


SAVED_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ExtractedCandidate(NamedTuple):
    """A candidate article as found on a source page."""

    title: str
    link: str
    summary: str
    domain: str


def article_filename(saved_at: datetime, title: str, suffix: int | None = None) -> str:
    """Build ``YYYY-MM-DD-<slug>[-<n>].md`` for an article."""
    stem = f"{saved_at.strftime('%Y-%m-%d')}-{slugify(title)}"
    if suffix is not None:
        stem = f"{stem}-{suffix}"
    return f"{stem}.md"


@dataclass(frozen=True)
class ArticleRecord:
    """An extracted article ready for ranking, duplicate checks and storage.

    Fingerprints are computed once at construction. When no filename is
    given the uncollided ``YYYY-MM-DD-<slug>.md`` form is used; the corpus
    store hands out collision-free names for records it creates.

    Attributes:
        title: The article headline
        source_link: Absolute URL of the article
        summary: Short summary, at most 300 chars plus an ellipsis
        source_domain: Host the article was found on
        saved_at: Creation timestamp
        filename: Corpus filename
        content_hash: SHA-256 of the lowercased "title summary"
        title_hash: SHA-256 of the normalized title
    """

    title: str
    source_link: str
    summary: str
    source_domain: str
    saved_at: datetime = field(default_factory=datetime.now)
    filename: str | None = None
    content_hash: str = field(init=False)
    title_hash: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "content_hash", content_hash(self.title, self.summary))
        object.__setattr__(self, "title_hash", title_hash(self.title))
        if self.filename is None:
            object.__setattr__(self, "filename", article_filename(self.saved_at, self.title))

    @classmethod
    def from_candidate(
        cls,
        candidate: ExtractedCandidate,
        saved_at: datetime | None = None,
        filename: str | None = None,
    ) -> ArticleRecord:
        return cls(
            title=candidate.title,
            source_link=candidate.link,
            summary=candidate.summary,
            source_domain=candidate.domain,
            saved_at=saved_at or datetime.now(),
            filename=filename,
        )

    @property
    def saved_date(self) -> str:
        return self.saved_at.strftime(SAVED_DATE_FORMAT)

    def to_markdown(self) -> str:
        """Render the corpus file body.

        Field order and labels are read back by the listing code and must not change.
        """
        return (
            f"# {self.title}\n\n"
            f"**Source:** [{self.source_domain}]({self.source_link})\n"
            f"**Date Saved:** {self.saved_date}\n"
            f"**Content Hash:** {self.content_hash}\n"
            f"**Title Hash:** {self.title_hash}\n\n"
            "---\n\n"
            f"{self.summary}"
        )

    def to_index_entry(self) -> DuplicateIndexEntry:
        return DuplicateIndexEntry(
            filename=self.filename or "",
            title=self.title,
            source_link=self.source_link,
            source_domain=self.source_domain,
            content_hash=self.content_hash,
            title_hash=self.title_hash,
            saved_date=self.saved_date,
        )


_ENTRY_KEYS = {
    "filename": "filename",
    "title": "title",
    "source_link": "sourceLink",
    "source_domain": "sourceDomain",
    "content_hash": "contentHash",
    "title_hash": "titleHash",
    "saved_date": "savedDate",
}


@dataclass(frozen=True)
class DuplicateIndexEntry:
    """One accepted article as recorded in the duplicate index."""

    filename: str
    title: str
    source_link: str
    source_domain: str
    content_hash: str
    title_hash: str
    saved_date: str

    def to_dict(self) -> dict[str, str]:
        return {key: getattr(self, attr) for attr, key in _ENTRY_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DuplicateIndexEntry | None:
        """Build an entry from its JSON form, or return None when a field is missing."""
        values = {}
        for attr, key in _ENTRY_KEYS.items():
            value = data.get(key)
            if not isinstance(value, str):
                return None
            values[attr] = value
        return cls(**values)


@dataclass
class StoredArticle:
    """Header fields of a corpus file, as shown in listings."""

    filename: str
    title: str
    source_domain: str
    source_link: str
    saved_date: str
    timestamp: float


@dataclass
class RunStats:
    """Statistics collected during one crawl run.

    Attributes:
        found: Candidates extracted across all sources
        duplicates_skipped: Ranked candidates rejected as duplicates
        url_duplicates: Rejections by normalized URL
        title_duplicates: Rejections by title fingerprint or title similarity
        content_duplicates: Rejections by content fingerprint or content overlap
        saved: Articles persisted and indexed
        source_errors: Sources that could not be fetched
        storage_errors: Articles whose file could not be written
    """

    found: int = 0
    duplicates_skipped: int = 0
    url_duplicates: int = 0
    title_duplicates: int = 0
    content_duplicates: int = 0
    saved: int = 0
    source_errors: int = 0
    storage_errors: int = 0

    def record_duplicate(self, reason: str) -> None:
        self.duplicates_skipped += 1
        counter = f"{reason}_duplicates"
        if hasattr(self, counter):
            setattr(self, counter, getattr(self, counter) + 1)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
