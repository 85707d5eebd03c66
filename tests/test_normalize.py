"""Tests for URL/title normalization, fingerprints and similarity measures."""

from __future__ import annotations

import pytest

from news_corpus.core.normalize import (
    content_hash,
    jaccard_similarity,
    normalize_title,
    normalize_url,
    slugify,
    title_hash,
    title_key,
    title_similarity,
)


def test_normalize_url_strips_scheme_www_tracking_and_slash():
    assert normalize_url("https://www.Example.com/a/?utm_source=x") == "example.com/a"
    assert normalize_url("example.com/a") == "example.com/a"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://example.com/story?id=5&fbclid=abc", "example.com/story?id=5"),
        ("https://example.com/story?gclid=1&x=2", "example.com/story"),
        ("https://example.com/story/?ref=homepage", "example.com/story"),
        ("https://example.com/story?source=rss", "example.com/story"),
        ("https://example.com/story?page=2", "example.com/story?page=2"),
    ],
)
def test_normalize_url_tracking_parameters(url, expected):
    assert normalize_url(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "https://www.Example.com/a/?utm_source=x",
        "HTTP://WWW.www.example.com//",
        "https://example.com/path/?q=1&utm_medium=email",
        "www.example.org/news/",
        "",
    ],
)
def test_normalize_url_is_idempotent(url):
    once = normalize_url(url)
    assert normalize_url(once) == once


def test_fingerprints_are_deterministic():
    assert content_hash("Title", "Summary") == content_hash("Title", "Summary")
    assert title_hash("Some Title") == title_hash("Some Title")
    assert len(content_hash("a", "b")) == 64


def test_fingerprints_ignore_case_and_surrounding_whitespace():
    assert content_hash("Big News", "Something happened.") == content_hash("  BIG NEWS ", "something happened.  ")
    assert title_hash("Big Climate News") == title_hash("  big climate news  ")


def test_content_hash_changes_with_summary():
    assert content_hash("Big News", "First version") != content_hash("Big News", "Second version")


def test_normalize_title_drops_stop_words_punctuation_and_short_tokens():
    assert normalize_title("The Climate Is Changing!") == "climate changing"
    assert normalize_title("A.I. and the U.S. economy") == "economy"
    assert title_hash("The Climate Is Changing!") == title_hash("climate, changing")


def test_title_key_keeps_only_lowercase_alphanumerics():
    assert title_key("Big News!  ") == "bignews"
    assert title_key("Big-News") == title_key("big news")


def test_slugify():
    assert slugify("Hello, World! It's 2024") == "hello-world-its-2024"
    assert slugify("  Spaces -- and   dashes  ") == "spaces-and-dashes"
    assert slugify("!!!") == "untitled"
    assert len(slugify("word " * 40)) == 50


def test_title_similarity_thresholds():
    close = title_similarity("Climate Change Accelerates Globally", "climate change accelerates globally!")
    far = title_similarity("Climate Change Accelerates Globally", "Local Bakery Wins Award")
    assert close >= 0.85
    assert far < 0.85
    assert title_similarity("", "") == 1.0


def test_jaccard_similarity():
    assert jaccard_similarity("a b c", "A B D") == pytest.approx(0.5)
    assert jaccard_similarity("", "") == 1.0
    assert jaccard_similarity("words here", "") == 0.0
    assert jaccard_similarity(frozenset({"x"}), "x") == 1.0
