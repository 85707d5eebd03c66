"""End-to-end tests for the crawl pipeline with a fake fetcher."""

from __future__ import annotations

import json
from pathlib import Path
import random

import pytest

from news_corpus.config import AppConfig
from news_corpus.core.corpus import CorpusStore
from news_corpus.core.dedup import DuplicateIndex
from news_corpus.core.types import ArticleRecord
from news_corpus.errors import FetchError, PipelineError, StorageError, ValidationError
from news_corpus.runner import CrawlPipeline, build_request


SEARCH_URL = "https://news.google.com/search?q=climate+change&hl=en-US&gl=US&ceid=US:en"

WORDS = [
    "policy", "oceans", "forests", "farming", "cities", "glaciers", "storms", "drought",
    "wildfire", "insurance", "migration", "energy", "carbon", "finance", "courts", "health",
    "coral", "arctic", "rainfall", "heatwave", "youth", "markets", "transport", "housing",
    "diplomacy",
]


class FakeFetcher:
    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.requested: list[str] = []

    def fetch(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(url, f"Failed to fetch {url}: ConnectError")
        return self.pages[url]

    def close(self) -> None:
        pass


class ExplodingFetcher(FakeFetcher):
    def fetch(self, url: str) -> str:
        raise RuntimeError("boom")


def _aggregator_page(items: list[tuple[str, str, str]]) -> str:
    blocks = "".join(
        f'<article><h3><a href="{href}">{title}</a></h3><p>{snippet}</p></article>' for title, href, snippet in items
    )
    return f"<html><body>{blocks}</body></html>"


FARMS = ("Climate change hits farms", "./articles/farms", "Farmers report failing harvests across the plains")
SUMMIT = ("Climate change summit opens", "./articles/summit", "World leaders gather in Geneva for emissions talks")
MARKETS = ("Stock markets rally", "./articles/stocks", "Shares rose sharply on Tuesday")


def _cfg(tmp_path: Path) -> AppConfig:
    cfg = AppConfig()
    cfg.storage.articles_dir = str(tmp_path / "articles")
    cfg.storage.index_path = str(tmp_path / "duplicate_index.json")
    return cfg


def _pipeline(tmp_path: Path, fetcher, **kwargs) -> tuple[CrawlPipeline, list[float]]:
    sleeps: list[float] = []
    pipeline = CrawlPipeline(_cfg(tmp_path), fetcher=fetcher, sleep=sleeps.append, **kwargs)
    return pipeline, sleeps


def _index(tmp_path: Path) -> list[dict]:
    return json.loads((tmp_path / "duplicate_index.json").read_text(encoding="utf-8"))


def test_build_request_validates_input():
    request = build_request("General", "  climate change  ", ["ignored.com"])
    assert (request.mode, request.topic, request.websites) == ("general", "climate change", [])

    request = build_request("custom", "ai", "techcrunch.com\n\nhttp://example.org/news\n")
    assert request.websites == ["https://techcrunch.com", "http://example.org/news"]

    with pytest.raises(ValidationError, match="Topic is required"):
        build_request("general", "   ")
    with pytest.raises(ValidationError, match="At least one website URL is required"):
        build_request("custom", "ai", "\n  \n")
    with pytest.raises(ValidationError, match="Unsupported mode"):
        build_request("rss", "ai")


def test_general_mode_saves_ranked_articles(tmp_path: Path):
    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([MARKETS, FARMS, SUMMIT])})
    pipeline, sleeps = _pipeline(tmp_path, fetcher)

    report = pipeline.run(build_request("general", "climate change"))

    assert fetcher.requested == [SEARCH_URL]
    assert sleeps == [2.0]
    assert report.stats.found == 3
    assert report.stats.saved == 3
    assert report.stats.duplicates_skipped == 0
    assert [record.title for record in report.saved] == [FARMS[0], SUMMIT[0], MARKETS[0]]
    assert report.index_stats["total_articles"] == 3
    assert report.index_stats["domains"] == {"news.google.com": 3}

    files = sorted(path.name for path in (tmp_path / "articles").glob("*.md"))
    assert files == sorted(record.filename for record in report.saved)
    assert {entry["filename"] for entry in _index(tmp_path)} == set(files)


def test_second_run_skips_url_duplicates(tmp_path: Path):
    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([FARMS, SUMMIT])})
    _pipeline(tmp_path, fetcher)[0].run(build_request("general", "climate change"))

    pipeline, _ = _pipeline(tmp_path, fetcher)
    report = pipeline.run(build_request("general", "climate change"))

    assert report.stats.saved == 0
    assert report.stats.duplicates_skipped == 2
    assert report.stats.url_duplicates == 2
    assert len(list((tmp_path / "articles").glob("*.md"))) == 2
    assert pipeline.detailed_stats()["url_duplicates"] == 2
    assert pipeline.detailed_stats()["total_articles"] == 2


def test_deleted_article_can_be_collected_again(tmp_path: Path):
    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([FARMS])})
    first = _pipeline(tmp_path, fetcher)[0].run(build_request("general", "climate change"))
    (tmp_path / "articles" / first.saved[0].filename).unlink()

    report = _pipeline(tmp_path, fetcher)[0].run(build_request("general", "climate change"))

    assert report.stats.saved == 1
    assert len(_index(tmp_path)) == 1


def test_custom_mode_counts_failing_sites(tmp_path: Path):
    """An unreachable site is counted and skipped, other sites still run"""
    good_page = """
    <html><body>
      <article><h2><a href="/news/climate-plan">Climate plan unveiled</a></h2></article>
    </body></html>
    """
    fetcher = FakeFetcher({"https://good.site": good_page})
    pipeline, sleeps = _pipeline(tmp_path, fetcher, rng=random.Random(7))

    report = pipeline.run(build_request("custom", "climate", ["good.site", "https://bad.site"]))

    assert report.stats.source_errors == 1
    assert report.stats.found == 1
    assert report.stats.saved == 1
    assert report.saved[0].summary == "Article from good.site about: climate"
    assert report.saved[0].source_link == "https://good.site/news/climate-plan"
    assert len(sleeps) == 2
    assert all(2.0 <= pause <= 5.0 for pause in sleeps)


def test_run_keeps_top_twenty(tmp_path: Path):
    """Only the twenty best-ranked candidates are considered for saving"""
    items = [
        (f"Climate {word}", f"./articles/{word}", f"Coverage of {word} and related climate questions")
        for word in WORDS
    ]
    pipeline, _ = _pipeline(tmp_path, FakeFetcher({SEARCH_URL: _aggregator_page(items)}))

    report = pipeline.run(build_request("general", "climate change"))

    assert report.stats.found == 25
    assert report.stats.saved == 20
    assert [record.title for record in report.saved] == [f"Climate {word}" for word in WORDS[:20]]


def test_storage_failure_skips_article_and_continues(tmp_path: Path):
    class FailingCorpus(CorpusStore):
        def write(self, record):
            if "farms" in record.title:
                raise StorageError("disk full")
            return super().write(record)

    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([FARMS, SUMMIT, MARKETS])})
    pipeline, _ = _pipeline(tmp_path, fetcher, corpus=FailingCorpus(tmp_path / "articles"))

    report = pipeline.run(build_request("general", "climate change"))

    assert report.stats.storage_errors == 1
    assert report.stats.saved == 2
    assert FARMS[0] not in {entry["title"] for entry in _index(tmp_path)}


def test_unexpected_failure_becomes_pipeline_error(tmp_path: Path):
    pipeline, _ = _pipeline(tmp_path, ExplodingFetcher({}))

    with pytest.raises(PipelineError, match="Crawling failed: boom"):
        pipeline.run(build_request("general", "climate change"))


def test_undecodable_corpus_file_does_not_abort_run(tmp_path: Path):
    articles_dir = tmp_path / "articles"
    articles_dir.mkdir()
    (articles_dir / "2020-01-01-legacy.md").write_bytes(b"# Legacy\n\n\xff\xfe")
    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([FARMS, SUMMIT])})

    report = _pipeline(tmp_path, fetcher)[0].run(build_request("general", "climate change"))

    assert report.stats.saved == 2
    assert len(_index(tmp_path)) == 2


def test_index_failure_removes_written_article(tmp_path: Path):
    """An article is either both on disk and indexed, or neither"""

    class FailingIndex(DuplicateIndex):
        def append(self, entry):
            if "farms" in entry.title:
                raise StorageError("index locked")
            super().append(entry)

    corpus = CorpusStore(tmp_path / "articles")
    index = FailingIndex(tmp_path / "duplicate_index.json", corpus)
    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([FARMS, SUMMIT, MARKETS])})
    pipeline, _ = _pipeline(tmp_path, fetcher, corpus=corpus, index=index)

    report = pipeline.run(build_request("general", "climate change"))

    assert report.stats.storage_errors == 1
    assert report.stats.saved == 2
    files = {path.name for path in (tmp_path / "articles").glob("*.md")}
    assert files == {entry["filename"] for entry in _index(tmp_path)}
    assert len(files) == 2


def test_rejected_candidates_do_not_claim_filenames(tmp_path: Path):
    rejected = (
        "Climate change is reshaping farms across the great plains region today",
        "./articles/plains",
        "Dry summers push growers toward new crops",
    )
    accepted = (
        "Climate change is reshaping farms across the great lakes as well",
        "./articles/lakes",
        "Wetter springs delay planting around the lakes",
    )
    articles_dir = tmp_path / "articles"
    articles_dir.mkdir()
    (articles_dir / "2020-01-01-old-farm-story.md").write_text("# Old farm story\n\n---\n\nOld body", encoding="utf-8")
    old = ArticleRecord(
        "Old farm story",
        "https://news.google.com/./articles/plains",
        "Old body",
        "news.google.com",
        filename="2020-01-01-old-farm-story.md",
    )
    (tmp_path / "duplicate_index.json").write_text(json.dumps([old.to_index_entry().to_dict()]), encoding="utf-8")
    fetcher = FakeFetcher({SEARCH_URL: _aggregator_page([rejected, accepted])})

    report = _pipeline(tmp_path, fetcher)[0].run(build_request("general", "climate change"))

    assert report.stats.url_duplicates == 1
    saved = report.saved[0]
    assert saved.filename == f"{saved.saved_at:%Y-%m-%d}-climate-change-is-reshaping-farms-across-the-great.md"
