"""FastAPI application factory for the DC Register scrape handler.

Kept as a factory so endpoints can be unit tested with TestClient and an
injected scraper, without touching the network or launching uvicorn.
"""
from __future__ import annotations

import logging
from typing import Optional

try:  # Optional import; the project declares fastapi in extras
    from fastapi import FastAPI, Query
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse
except ImportError:  # pragma: no cover
    FastAPI = None  # type: ignore

from .config import Settings
from .errors import FetchError
from .scraper import DCRegsScraper, error_envelope

logger = logging.getLogger(__name__)


def create_app(scraper: Optional[DCRegsScraper] = None) -> "FastAPI":  # type: ignore
    if FastAPI is None:  # pragma: no cover
        raise RuntimeError("fastapi not installed; install with .[api]")
    if scraper is None:
        scraper = DCRegsScraper(settings=Settings.from_env())

    app = FastAPI(title="DC Register Scraper API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get('/health')  # type: ignore
    def health():  # pragma: no cover - trivial
        return {'status': 'ok'}

    @app.get('/api/scrape-dcregs')  # type: ignore
    def scrape_dcregs(limit: int = Query(20, ge=0), debug: bool = False):
        try:
            return scraper.scrape(limit=limit, debug=debug)
        except FetchError as e:
            logger.error("Scraping error: %s", e)
            return JSONResponse(status_code=500, content=error_envelope(e))

    return app


__all__ = ["create_app"]
