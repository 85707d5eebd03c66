"""
HTTP page fetching with rotating identity headers.

Every request picks a User-Agent at random from the configured pool and is
bounded by a fixed timeout. TLS verification follows ``FetchConfig.verify_tls``.
"""

from __future__ import annotations

from dataclasses import dataclass
import random
import time

import httpx

from ..config import FetchConfig
from ..errors import FetchError


BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """

    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None


class Fetcher:
    """Synchronous page fetcher shared by a crawl run.

    Args:
        cfg: Fetch configuration
        transport: Optional httpx transport, used by tests to fake responses
        rng: Random source for User-Agent rotation
    """

    def __init__(
        self,
        cfg: FetchConfig,
        transport: httpx.BaseTransport | None = None,
        rng: random.Random | None = None,
    ):
        self.cfg = cfg
        self._rng = rng or random.Random()
        self._client = httpx.Client(
            timeout=cfg.timeout_seconds,
            headers=BASE_HEADERS,
            follow_redirects=True,
            verify=cfg.verify_tls,
            trust_env=cfg.trust_env,
            transport=transport,
        )

    def __enter__(self) -> Fetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def pick_user_agent(self) -> str:
        return self._rng.choice(self.cfg.user_agents)

    def get(self, url: str) -> FetchResult:
        """Fetch a URL, retrying transport failures with linear backoff.

        Never raises; failures are reported through ``FetchResult.error``.
        """
        last_error: str | None = None
        status_code: int | None = None

        for attempt in range(self.cfg.retries + 1):
            try:
                resp = self._client.get(url, headers={"User-Agent": self.pick_user_agent()})
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                status_code = None
            else:
                if resp.is_success:
                    return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)
                status_code = resp.status_code
                last_error = f"HTTP {resp.status_code}"
                # Client errors will not improve on retry
                if 400 <= resp.status_code < 500:
                    break
            if attempt < self.cfg.retries:
                time.sleep(0.5 * (attempt + 1))

        return FetchResult(url=url, status_code=status_code, text=None, error=last_error)

    def fetch(self, url: str) -> str:
        """Fetch a URL and return its body.

        Raises:
            FetchError: On transport failure, timeout or non-2xx status
        """
        result = self.get(url)
        if result.error is not None or result.text is None:
            raise FetchError(url, f"Failed to fetch {url}: {result.error}", result.status_code)
        return result.text
