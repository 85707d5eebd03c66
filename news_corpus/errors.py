"""
Error taxonomy for the crawl pipeline.

- FetchError: network failure, timeout or non-2xx response
- ExtractionError: a single candidate could not be parsed
- ValidationError: bad crawl input, raised before any network activity
- StorageError: a corpus or index write failed
- PipelineError: unexpected failure at the orchestration boundary
"""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class FetchError(CrawlerError):
    """Raised when a URL cannot be fetched.

    Attributes:
        url: The URL that was requested
        status_code: HTTP status code, or None for transport-level failures
    """

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionError(CrawlerError):
    """Raised when a single candidate cannot be extracted from a page."""


class ValidationError(CrawlerError):
    """Raised when crawl input is invalid."""


class StorageError(CrawlerError):
    """Raised when the corpus or the duplicate index cannot be written."""


class PipelineError(CrawlerError):
    """Raised when a crawl run fails for an unexpected reason."""
