"""
Relevance ranking of extracted articles against a topic.

Ranking happens in four steps:
1. Collapse near-identical titles (first occurrence wins)
2. Score each title by keyword occurrences weighted by keyword length
3. Stable sort by descending score
4. Keep the top ``max_results``
"""

from __future__ import annotations

from typing import Sequence

from .normalize import title_key, topic_keywords
from .types import ArticleRecord


def relevance_score(title: str, topic: str, min_keyword_length: int = 3) -> int:
    """Score a title against a topic.

    Each keyword contributes ``occurrences * len(keyword)`` so longer, more
    specific matches weigh more.

    Examples:
        >>> relevance_score("AI and more AI", "ai news")
        0
        >>> relevance_score("Climate climate", "climate")
        14
    """
    lowered = title.lower()
    return sum(lowered.count(keyword) * len(keyword) for keyword in topic_keywords(topic, min_keyword_length))


def is_relevant(title: str, topic: str, min_keyword_length: int = 3) -> bool:
    """True when any topic keyword appears in the title."""
    lowered = title.lower()
    return any(keyword in lowered for keyword in topic_keywords(topic, min_keyword_length))


def collapse_titles(records: Sequence[ArticleRecord]) -> list[ArticleRecord]:
    seen: set[str] = set()
    kept: list[ArticleRecord] = []
    for record in records:
        key = title_key(record.title)
        if key in seen:
            continue
        seen.add(key)
        kept.append(record)
    return kept


class RelevanceRanker:
    """Orders articles by topical relevance and caps the result size."""

    def __init__(self, max_results: int = 20, min_keyword_length: int = 3):
        self.max_results = max_results
        self.min_keyword_length = min_keyword_length

    def rank(self, records: Sequence[ArticleRecord], topic: str) -> list[ArticleRecord]:
        unique = collapse_titles(records)
        # sorted() is stable, ties keep their input order
        ranked = sorted(
            unique,
            key=lambda record: relevance_score(record.title, topic, self.min_keyword_length),
            reverse=True,
        )
        return ranked[: self.max_results]
