"""Runtime settings for the transport layer, read from DCREGS_* env vars.

  DCREGS_SOURCE_URL       page to scrape (default: register issue list)
  DCREGS_FETCH_MODE       'direct' (default) or 'render' (rendering proxy)
  DCREGS_RENDER_ENDPOINT  rendering/proxy service endpoint
  DCREGS_RENDER_API_KEY   API key for the rendering service (required in render mode)
  DCREGS_TIMEOUT          request timeout in seconds (default 30)
  DCREGS_USER_AGENT       User-Agent header for direct fetches
  DCREGS_DEBUG_SAMPLE     characters returned by debug passthrough (default 5000)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = "https://www.dcregs.dc.gov/Common/DCR/IssueList.aspx"
DEFAULT_RENDER_ENDPOINT = "https://api.scraperapi.com/"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
FETCH_MODES = ("direct", "render")


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %d", key, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    source_url: str = DEFAULT_SOURCE_URL
    fetch_mode: str = "direct"
    render_endpoint: str = DEFAULT_RENDER_ENDPOINT
    render_api_key: Optional[str] = None
    timeout: int = 30
    user_agent: str = DEFAULT_USER_AGENT
    debug_sample_size: int = 5000

    def __post_init__(self) -> None:
        if self.fetch_mode not in FETCH_MODES:
            raise ValueError(f"fetch_mode must be one of {FETCH_MODES}, got {self.fetch_mode!r}")
        if self.fetch_mode == "render" and not self.render_api_key:
            raise ValueError("render fetch mode requires DCREGS_RENDER_API_KEY")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            source_url=env.get('DCREGS_SOURCE_URL') or DEFAULT_SOURCE_URL,
            fetch_mode=(env.get('DCREGS_FETCH_MODE') or 'direct').strip().lower(),
            render_endpoint=env.get('DCREGS_RENDER_ENDPOINT') or DEFAULT_RENDER_ENDPOINT,
            render_api_key=env.get('DCREGS_RENDER_API_KEY') or None,
            timeout=_int_env(env, 'DCREGS_TIMEOUT', 30),
            user_agent=env.get('DCREGS_USER_AGENT') or DEFAULT_USER_AGENT,
            debug_sample_size=_int_env(env, 'DCREGS_DEBUG_SAMPLE', 5000),
        )


__all__ = ["Settings", "DEFAULT_SOURCE_URL", "FETCH_MODES"]
