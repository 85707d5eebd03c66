from __future__ import annotations

import httpx
import pytest

from news_corpus.config import DEFAULT_USER_AGENTS, FetchConfig
from news_corpus.errors import FetchError
from news_corpus.fetch import fetcher as fetcher_module
from news_corpus.fetch.fetcher import Fetcher


def _fetcher(handler, **cfg_kwargs) -> Fetcher:
    return Fetcher(FetchConfig(**cfg_kwargs), transport=httpx.MockTransport(handler))


def test_fetch_sends_rotating_user_agent_and_browser_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html>ok</html>")

    with _fetcher(handler) as fetcher:
        assert fetcher.fetch("https://example.com/") == "<html>ok</html>"

    request = seen[0]
    assert request.headers["User-Agent"] in DEFAULT_USER_AGENTS
    assert request.headers["Accept-Language"] == "en-US,en;q=0.5"
    assert "text/html" in request.headers["Accept"]


def test_client_error_raises_fetch_error_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    with _fetcher(handler, retries=2) as fetcher:
        with pytest.raises(FetchError) as excinfo:
            fetcher.fetch("https://example.com/missing")

    assert excinfo.value.status_code == 404
    assert excinfo.value.url == "https://example.com/missing"
    assert len(calls) == 1


def test_transport_error_is_reported_in_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _fetcher(handler) as fetcher:
        result = fetcher.get("https://down.example.com/")

    assert not result.ok
    assert result.status_code is None
    assert result.text is None
    assert result.error.startswith("ConnectError")


def test_server_error_is_retried(monkeypatch):
    sleeps: list[float] = []
    monkeypatch.setattr(fetcher_module.time, "sleep", sleeps.append)
    responses = iter([httpx.Response(500), httpx.Response(200, text="recovered")])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    with _fetcher(handler, retries=1) as fetcher:
        result = fetcher.get("https://example.com/flaky")

    assert result.ok
    assert result.text == "recovered"
    assert sleeps == [0.5]
