"""
Canonical forms and similarity measures for articles.

Everything that turns a title, URL or text body into something cheap to
compare lives here: slugs, fingerprints, normalized URLs, the Levenshtein
title ratio and the Jaccard word-set overlap.
"""

from __future__ import annotations

import hashlib
import re

from rapidfuzz.distance import Levenshtein


STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "can", "this", "that", "these", "those",
    }
)

_SCHEME_WWW_RE = re.compile(r"^(?:https?://|www\.)+")
_TRACKING_RE = re.compile(r"[?&](?:utm_|fbclid|gclid|ref=|source=).*$", re.DOTALL)
_PUNCT_RE = re.compile(r"[^\w\s]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def slugify(text: str, max_length: int = 50) -> str:
    """Convert a title to a filename-safe slug.

    Args:
        text: The text to slugify
        max_length: Maximum slug length

    Returns:
        A lowercase, hyphenated slug, "untitled" when nothing survives
    """
    slug = text.lower()
    # Drop everything except letters, digits, whitespace and hyphens
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"[\s-]+", "-", slug)
    slug = slug.strip("-")[:max_length]
    return slug or "untitled"


def normalize_title(title: str) -> str:
    """Reduce a title to its significant words.

    Lowercases, replaces punctuation with spaces, then drops stop words and
    tokens of two characters or fewer.
    """
    cleaned = _PUNCT_RE.sub(" ", title.strip().lower())
    words = [word for word in cleaned.split() if word not in STOP_WORDS and len(word) > 2]
    return " ".join(words)


def title_key(title: str) -> str:
    """Collapse a title to lowercase alphanumerics, used to spot near-identical titles."""
    return _NON_ALNUM_RE.sub("", title.lower())


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def content_hash(title: str, summary: str) -> str:
    """Fingerprint of title plus summary, insensitive to case and surrounding whitespace."""
    return sha256_hex(f"{title.strip()} {summary.strip()}".strip().lower())


def title_hash(title: str) -> str:
    """Fingerprint of the normalized title."""
    return sha256_hex(normalize_title(title))


def normalize_url(url: str) -> str:
    """Canonicalize a URL for duplicate comparison.

    Lowercases, strips the scheme and a leading ``www.``, cuts tracking
    parameters (``utm_*``, ``fbclid``, ``gclid``, ``ref=``, ``source=``) and
    everything after them, and removes trailing slashes. The result is stable
    under repeated application.

    Example:
        >>> normalize_url("https://www.Example.com/a/?utm_source=x")
        'example.com/a'
    """
    url = url.lower()
    url = _SCHEME_WWW_RE.sub("", url)
    url = _TRACKING_RE.sub("", url)
    return url.rstrip("/")


def topic_keywords(topic: str, min_length: int = 3) -> list[str]:
    """Split a topic into lowercase keywords of at least ``min_length`` characters."""
    return [word for word in topic.lower().split(" ") if len(word) >= min_length]


def title_similarity(first: str, second: str) -> float:
    """Levenshtein ratio ``1 - distance / max_len`` over lowercased, trimmed titles."""
    first = first.strip().lower()
    second = second.strip().lower()
    max_len = max(len(first), len(second))
    if max_len == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(first, second) / max_len


def word_set(text: str) -> frozenset[str]:
    return frozenset(text.lower().split())


def jaccard_similarity(first: frozenset[str] | str, second: frozenset[str] | str) -> float:
    """Jaccard coefficient over lowercase whitespace-separated word sets.

    Accepts raw text or precomputed word sets. Two empty inputs are identical;
    one empty input shares nothing.
    """
    words1 = word_set(first) if isinstance(first, str) else first
    words2 = word_set(second) if isinstance(second, str) else second
    if not words1 and not words2:
        return 1.0
    if not words1 or not words2:
        return 0.0
    return len(words1 & words2) / len(words1 | words2)
