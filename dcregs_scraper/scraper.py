"""Scrape handler core: fetch the register page, extract, wrap in an envelope.

This module provides DCRegsScraper with:
  * resilient HTTP session (retries) for direct fetches
  * optional rendering-proxy fetch for pages that need a browser
  * injectable fetcher so callers and tests can supply document text
  * debug passthrough returning a raw sample of the page
  * success / error response envelopes
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import Settings
from .errors import FetchError
from .extract import Extractor
from .models import ExtractorConfig

logger = logging.getLogger(__name__)

ENVELOPE_SOURCE = "DC Register Issue List"
ERROR_MESSAGE = "Failed to scrape DC Register"

Fetcher = Callable[[str], str]


def error_envelope(exc: BaseException) -> Dict[str, Any]:
    return {'success': False, 'error': ERROR_MESSAGE, 'details': str(exc)}


class DCRegsScraper:
    """Fetch a DC Register page and turn it into regulation records."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        config: Optional[ExtractorConfig] = None,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.extractor = Extractor(config)
        self.session: Optional[requests.Session] = None
        self._fetcher = fetcher

    # ------------------------------------------------------------------
    # Networking
    # ------------------------------------------------------------------
    def _configure_session(self) -> requests.Session:
        if self.session is not None:
            return self.session
        session = requests.Session()
        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        self.session = session
        return session

    def _get(self, url: str, **kwargs: Any) -> str:
        session = self._configure_session()
        try:
            resp = session.get(url, timeout=self.settings.timeout, **kwargs)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning("HTTP %s fetching %s", status, url)
            raise FetchError(f"HTTP {status} fetching {url}", url=url, status_code=status) from e
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise FetchError(f"Request to {url} failed: {e}", url=url) from e
        return resp.text

    def fetch_direct(self, url: str) -> str:
        logger.info("Fetching %s directly", url)
        return self._get(url, headers={'User-Agent': self.settings.user_agent})

    def fetch_rendered(self, url: str) -> str:
        logger.info("Fetching %s through rendering service", url)
        params = {'api_key': self.settings.render_api_key, 'url': url, 'render': 'true'}
        return self._get(self.settings.render_endpoint, params=params)

    def fetch_document(self, url: Optional[str] = None) -> str:
        target = url or self.settings.source_url
        if self._fetcher is not None:
            return self._fetcher(target)
        if self.settings.fetch_mode == "render":
            return self.fetch_rendered(target)
        return self.fetch_direct(target)

    # ------------------------------------------------------------------
    # Handler
    # ------------------------------------------------------------------
    def debug_sample(self, document: str) -> Dict[str, Any]:
        return {
            'success': True,
            'debug': True,
            'length': len(document),
            'sample': document[:self.settings.debug_sample_size],
        }

    def scrape(
        self,
        limit: int = 20,
        debug: bool = False,
        document: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Return the success envelope; FetchError propagates to the caller."""
        if document is None:
            document = self.fetch_document()
        if debug:
            return self.debug_sample(document)
        strategy, matches = self.extractor.extract_with_strategy(document)
        records = self.extractor.build_records(matches, now)
        scraped_at = (now or datetime.now(timezone.utc)).isoformat()
        return {
            'success': True,
            'count': len(records),
            'regulations': [r.to_dict() for r in records[:max(limit, 0)]],
            'metadata': {
                'scrapedAt': scraped_at,
                'source': ENVELOPE_SOURCE,
                'strategy': strategy,
            },
        }


__all__ = ["DCRegsScraper", "error_envelope", "ENVELOPE_SOURCE", "ERROR_MESSAGE"]
