"""Exception types raised outside the extraction core.

Extraction itself never raises for bad markup; only the transport layer
reports failures, and it does so with FetchError.
"""
from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for dcregs_scraper errors."""


class FetchError(ScraperError):
    """The register page could not be retrieved (network error or non-2xx)."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


__all__ = ["ScraperError", "FetchError"]
