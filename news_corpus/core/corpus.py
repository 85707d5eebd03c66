"""
On-disk article corpus.

One markdown file per accepted article. The directory listing is the source
of truth for which articles exist; the duplicate index is reconciled against
it before every crawl.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
import logging
from pathlib import Path
import re

from ..errors import StorageError
from ..utils.logging import log_event
from .normalize import word_set
from .types import SAVED_DATE_FORMAT, ArticleRecord, ExtractedCandidate, StoredArticle, article_filename


TITLE_RE = re.compile(r"^# (.+)$", re.MULTILINE)
SOURCE_RE = re.compile(r"\*\*Source:\*\* \[([^\]]+)\]\(([^)]+)\)")
DATE_RE = re.compile(r"\*\*Date Saved:\*\* (.+)$", re.MULTILINE)
BODY_RE = re.compile(r"---\n\n(.+)$", re.DOTALL)


@dataclass
class _CachedTokens:
    mtime_ns: int
    tokens: frozenset[str] | None


class CorpusStore:
    """Reads and writes article files in a corpus directory.

    Attributes:
        articles_dir: Directory holding the ``*.md`` article files
    """

    def __init__(self, articles_dir: Path, logger: logging.Logger | None = None):
        self.articles_dir = articles_dir
        self.logger = logger
        self._reserved: set[str] = set()
        self._token_cache: dict[str, _CachedTokens] = {}

    def filenames(self) -> set[str]:
        """Return the names of all article files currently on disk."""
        if not self.articles_dir.is_dir():
            return set()
        return {path.name for path in self.articles_dir.glob("*.md") if path.is_file()}

    def allocate_filename(self, saved_at: datetime, title: str) -> str:
        """Pick a filename not used on disk nor handed out earlier by this store.

        The first free name among ``<date>-<slug>.md``, ``<date>-<slug>-1.md``,
        ``<date>-<slug>-2.md`` ... is reserved and returned.
        """
        taken = self.filenames() | self._reserved
        filename = article_filename(saved_at, title)
        counter = 1
        while filename in taken:
            filename = article_filename(saved_at, title, counter)
            counter += 1
        self._reserved.add(filename)
        return filename

    def create_record(self, candidate: ExtractedCandidate, saved_at: datetime | None = None) -> ArticleRecord:
        saved_at = saved_at or datetime.now()
        filename = self.allocate_filename(saved_at, candidate.title)
        return ArticleRecord.from_candidate(candidate, saved_at=saved_at, filename=filename)

    def claim_filename(self, record: ArticleRecord) -> ArticleRecord:
        """Return a copy of ``record`` carrying a freshly allocated filename."""
        return replace(record, filename=self.allocate_filename(record.saved_at, record.title))

    def write(self, record: ArticleRecord) -> Path:
        """Persist an article file.

        Raises:
            StorageError: If the directory or file cannot be written
        """
        path = self.articles_dir / (record.filename or "")
        try:
            self.articles_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(record.to_markdown(), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        return path

    def discard(self, record: ArticleRecord) -> None:
        """Remove a just-written article file and release its filename."""
        filename = record.filename or ""
        self._reserved.discard(filename)
        (self.articles_dir / filename).unlink(missing_ok=True)

    def read_article(self, filename: str) -> str | None:
        """Return the raw markdown of one article, or None if it does not exist."""
        if not filename.endswith(".md") or Path(filename).name != filename:
            return None
        path = self.articles_dir / filename
        if not path.is_file():
            return None
        return self._read(path)

    def body_token_sets(self) -> dict[str, frozenset[str]]:
        """Word sets of every stored article body, keyed by filename.

        Files are parsed once and re-read only when their modification time
        changes. Files without a title line or body separator are skipped, and
        so are files that cannot be read or decoded.
        """
        current: dict[str, frozenset[str]] = {}
        seen: set[str] = set()
        for filename in sorted(self.filenames()):
            path = self.articles_dir / filename
            try:
                mtime_ns = path.stat().st_mtime_ns
            except FileNotFoundError:
                continue
            seen.add(filename)
            cached = self._token_cache.get(filename)
            if cached is None or cached.mtime_ns != mtime_ns:
                content = self._read(path)
                cached = _CachedTokens(mtime_ns, _parse_body_tokens(content) if content is not None else None)
                self._token_cache[filename] = cached
            if cached.tokens is not None:
                current[filename] = cached.tokens
        for stale in set(self._token_cache) - seen:
            del self._token_cache[stale]
        return current

    def list_articles(self) -> list[StoredArticle]:
        """Parse the header of every readable stored article, newest first."""
        articles: list[StoredArticle] = []
        for filename in self.filenames():
            path = self.articles_dir / filename
            content = self._read(path)
            if content is None:
                continue
            articles.append(_parse_header(filename, content, path.stat().st_mtime))
        articles.sort(key=lambda item: item.timestamp, reverse=True)
        return articles

    def _read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            log_event(
                self.logger,
                "Corpus file unreadable, skipped",
                event="corpus_file_unreadable",
                level=logging.WARNING,
                path=str(path),
                error=f"{type(exc).__name__}: {exc}",
            )
            return None


def _parse_body_tokens(content: str) -> frozenset[str] | None:
    if not TITLE_RE.search(content):
        return None
    body = BODY_RE.search(content)
    if body is None:
        return None
    return word_set(body.group(1))


def _parse_header(filename: str, content: str, mtime: float) -> StoredArticle:
    title_match = TITLE_RE.search(content)
    source_match = SOURCE_RE.search(content)
    date_match = DATE_RE.search(content)
    saved_date = date_match.group(1).strip() if date_match else ""
    try:
        timestamp = datetime.strptime(saved_date, SAVED_DATE_FORMAT).timestamp()
    except ValueError:
        timestamp = mtime
    return StoredArticle(
        filename=filename,
        title=title_match.group(1) if title_match else "Untitled",
        source_domain=source_match.group(1) if source_match else "Unknown",
        source_link=source_match.group(2) if source_match else "#",
        saved_date=saved_date,
        timestamp=timestamp,
    )
