"""Normalization utilities for fragments scraped from the DC Register.

Functions here turn raw strings pulled out of the register markup into the
canonical record fields:
  * Calendar dates (month-name, M/D/YYYY, ISO) -> ISO 8601, degrading to today
  * Agency hints -> one of the known agencies, or a best-effort prefix
  * Recency flag over a trailing window of days
  * Tag stripping / entity unescaping for subject lines
  * Relative document paths -> absolute URLs

Every function is total: bad input degrades to a documented fallback value
instead of raising. Time-dependent helpers take an explicit ``now`` so results
are reproducible; ``None`` means the current UTC time.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union
from urllib.parse import urljoin
import html
import logging
import re

logger = logging.getLogger(__name__)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

MONTH_DATE_RE = re.compile(
    r"\b(?P<month>Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?|"
    r"Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\.?\s+(?P<day>\d{1,2}),?\s+(?P<year>\d{4})\b",
    re.I,
)
SLASH_DATE_RE = re.compile(r"\b(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{4})\b")
ISO_DATE_RE = re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})\b")
DATE_PATTERNS = (MONTH_DATE_RE, SLASH_DATE_RE, ISO_DATE_RE)

TAG_RE = re.compile(r"<[^>]*>")
WS_RE = re.compile(r"\s+")
ISSUE_REF_RE = re.compile(
    r"(?P<volume>\d+)\s*(?:/|,?\s*(?:Issue|Iss\.?|No\.?)\s*)(?P<issue>\d+)",
    re.I,
)

KNOWN_AGENCIES = (
    'Alcoholic Beverage and Cannabis Administration',
    'Department of Health',
    'Department of Transportation',
    'Department of Energy and Environment',
    'Department of Housing and Community Development',
    'Office of the Chief Financial Officer',
    'Metropolitan Police Department',
    'Fire and Emergency Medical Services Department',
    'Office of Documents and Administrative Issuances',
)
AGENCY_SUFFIX_RE = re.compile(r"^([^-]+(?:Department|Office|Administration|Agency|Board|Commission))\b", re.I)
AGENCY_SEPARATOR = " - "
MAX_AGENCY_PREFIX = 100
UNKNOWN_AGENCY = "Unknown Agency"

DateLike = Union[str, date, None]


def _utcnow(now: Optional[datetime] = None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def today(now: Optional[datetime] = None) -> str:
    return _utcnow(now).date().isoformat()


def clean_text(fragment: Optional[str]) -> str:
    """Strip tags, unescape entities and collapse whitespace."""
    if not fragment:
        return ""
    text = html.unescape(TAG_RE.sub(" ", fragment))
    return WS_RE.sub(" ", text).strip()


def parse_date(text: Optional[str]) -> Optional[date]:
    """Return the first valid calendar date found in ``text`` or None.

    Patterns are tried month-name first, then M/D/YYYY, then ISO. A match whose
    components do not form a real date (2/30/2026) is skipped rather than
    propagated.
    """
    if not text:
        return None
    for pattern in DATE_PATTERNS:
        for m in pattern.finditer(text):
            month = m.group('month')
            month_num = MONTHS.get(month[:3].lower()) if not month.isdigit() else int(month)
            if not month_num:
                continue
            try:
                return date(int(m.group('year')), month_num, int(m.group('day')))
            except ValueError:
                continue
    return None


def normalize_date(text: Optional[str], now: Optional[datetime] = None) -> str:
    parsed = parse_date(text)
    if parsed is None:
        return today(now)
    return parsed.isoformat()


def resolve_agency(text: Optional[str]) -> str:
    """Map free text to an agency name.

    Known agencies win (case-insensitive, list order). Otherwise the leading
    run ending in an agency keyword, then the text before the first " - ".
    """
    cleaned = clean_text(text)
    if not cleaned:
        return UNKNOWN_AGENCY
    lowered = cleaned.lower()
    for agency in KNOWN_AGENCIES:
        if agency.lower() in lowered:
            return agency
    m = AGENCY_SUFFIX_RE.match(cleaned)
    if m and len(m.group(1).strip()) <= MAX_AGENCY_PREFIX:
        return m.group(1).strip()
    if AGENCY_SEPARATOR in cleaned:
        prefix = cleaned.split(AGENCY_SEPARATOR, 1)[0].strip()
        if prefix and len(prefix) <= MAX_AGENCY_PREFIX:
            return prefix
    return UNKNOWN_AGENCY


def is_recent(value: DateLike, window_days: int, now: Optional[datetime] = None) -> bool:
    if value is None:
        return False
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        try:
            value = date.fromisoformat(str(value).strip())
        except ValueError:
            return False
    delta = (_utcnow(now).date() - value).days
    return 0 <= delta <= window_days


def parse_issue_ref(text: Optional[str]) -> Optional[str]:
    """'Vol. 73, Issue 2' / '73/2' -> '73/2'."""
    m = ISSUE_REF_RE.search(clean_text(text))
    if not m:
        return None
    return f"{int(m.group('volume'))}/{int(m.group('issue'))}"


def resolve_link(fragment: Optional[str], base_url: str) -> Optional[str]:
    if not fragment:
        return None
    href = html.unescape(fragment).strip()
    if not href or href.lower().startswith(('javascript:', 'mailto:', '#')):
        return None
    if href.lower().startswith(('http://', 'https://')):
        return href
    if href.startswith('../'):
        return base_url.rstrip('/') + '/' + href[3:]
    try:
        return urljoin(base_url, href)
    except ValueError:
        logger.warning("Unusable link %r", href)
        return None


__all__ = [
    "KNOWN_AGENCIES",
    "UNKNOWN_AGENCY",
    "clean_text",
    "is_recent",
    "normalize_date",
    "parse_date",
    "parse_issue_ref",
    "resolve_agency",
    "resolve_link",
    "today",
]
