"""Layered extraction of regulation records from DC Register pages.

Strategies are small classes with a ``scan(document) -> list[RawMatch]``
method, registered by name via the ``extraction_strategy`` decorator. The
Extractor runs them in ``ExtractorConfig.strategy_order`` and keeps the first
non-empty result; later strategies are fallbacks, never merged in.

Registered strategies:
  table          GridView rows located with the tag cursor (most precise)
  notice_anchor  every N-prefixed notice id in the page, deduplicated
  issue_list     "Volume 73, Issue 2 - January 09, 2026" free text

A page with none of the markers yields an empty list. Bad rows are logged and
skipped; extraction itself does not raise on malformed markup.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Tuple, Type
import logging
import re

from . import markup
from . import normalize as norm
from .models import (
    CATEGORY_ISSUE,
    ExtractorConfig,
    ISSUE_AGENCY,
    ISSUE_DETAIL_BASE_URL,
    NOTICE_DETAIL_URL,
    PLACEHOLDER_TITLE,
    RawMatch,
    RegulationRecord,
)

logger = logging.getLogger(__name__)

NOTICE_LINK_RE = re.compile(r"NoticeId=(N\d+)", re.I)
NOTICE_ID_RE = re.compile(r"\bN\d+\b")
DOCUMENT_HREF_RE = re.compile(r"download|\.pdf\b", re.I)
ANCHOR_TEXT_RE = re.compile(r"^[^<>]*>(?P<text>[^<]*)</a\s*>", re.I)
SCRIPT_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.I | re.S)
ISSUE_RE = re.compile(r"Volume\s+(\d+),\s+Issue\s+(\d+)\s+-\s+([^<\n]+)", re.I)
ISSUE_LINK_RE = re.compile(r"<a[^>]*href=\"([^\"]*IssueDetailPage[^\"]*issueID=(\d+)[^\"]*)\"", re.I)

SUBJECT_LABELS = ("lblSubject", "Subject")
DATE_LABELS = ("lblPublishDate", "PublishDate", "PubDate", "Date")
ISSUE_LABELS = ("lblIssue", "Issue")
AGENCY_LABELS = ("lblAgency", "Agency")

# Decorator-based registration -------------------------------------------------
STRATEGY_REGISTRY: Dict[str, Type["BaseStrategy"]] = {}


def extraction_strategy(name: Optional[str] = None) -> Callable[[Type["BaseStrategy"]], Type["BaseStrategy"]]:
    """Register a strategy class under ``name`` (defaults to ``cls.name``)."""
    def wrapper(cls: Type[BaseStrategy]) -> Type[BaseStrategy]:
        key = name or cls.name
        STRATEGY_REGISTRY[key] = cls
        return cls
    return wrapper


class ExtractionStrategy(Protocol):  # pragma: no cover - protocol definition
    name: str

    def scan(self, document: str) -> List[RawMatch]:
        ...


def _mask(document: str) -> str:
    """Blank comments, scripts and styles without shifting offsets."""
    masked = markup.blank_comments(document)
    return SCRIPT_RE.sub(lambda m: " " * len(m.group(0)), masked)


def _text_only(document: str) -> str:
    return markup.TAG_RE.sub(lambda m: " " * len(m.group(0)), document)


class BaseStrategy:
    name = "base"

    def __init__(self, config: ExtractorConfig) -> None:
        self.config = config

    def scan(self, document: str) -> List[RawMatch]:  # pragma: no cover - abstract
        raise NotImplementedError

    def _title(self, fragment: Optional[str]) -> Optional[str]:
        title = norm.clean_text(fragment)
        if len(title) < self.config.min_title_length:
            return None
        return title

    @staticmethod
    def _text(fragment: Optional[str]) -> Optional[str]:
        return norm.clean_text(fragment) or None


@extraction_strategy()
class TableRowStrategy(BaseStrategy):
    name = "table"

    def scan(self, document: str) -> List[RawMatch]:
        masked = _mask(document)
        span = markup.find_element(masked, "table", self.config.table_marker)
        if span is None:
            logger.debug("table: marker %r not found", self.config.table_marker)
            return []
        matches: List[RawMatch] = []
        seen = set()
        for start, end in markup.split_rows(masked, span):
            try:
                match = self._parse_row(masked[start:end])
            except Exception as e:
                logger.warning("table: skipping malformed row at offset %d: %s", start, e)
                continue
            if match is None or match.identifier in seen:
                continue
            seen.add(match.identifier)
            matches.append(match)
        return matches

    def _parse_row(self, row: str) -> Optional[RawMatch]:
        identifier = self._identifier(row)
        if not identifier:
            return None
        date_text = self._text(markup.labeled_text(row, DATE_LABELS)) or norm.clean_text(row)
        link = next((h for h in markup.iter_hrefs(row) if DOCUMENT_HREF_RE.search(h)), None)
        return RawMatch(
            identifier=identifier,
            subject=self._title(markup.labeled_text(row, SUBJECT_LABELS)),
            date_text=date_text,
            issue_text=self._text(markup.labeled_text(row, ISSUE_LABELS)),
            link=link,
            agency_text=self._text(markup.labeled_text(row, AGENCY_LABELS)),
            strategy=self.name,
        )

    @staticmethod
    def _identifier(row: str) -> Optional[str]:
        m = NOTICE_LINK_RE.search(row)
        if m:
            return m.group(1).upper()
        m = NOTICE_ID_RE.search(norm.clean_text(row))
        return m.group(0) if m else None


@extraction_strategy()
class NoticeAnchorStrategy(BaseStrategy):
    """Last-resort notice scan: any notice id anywhere, one match per id."""
    name = "notice_anchor"

    def scan(self, document: str) -> List[RawMatch]:
        masked = _mask(document)
        hits: List[Tuple[int, int, str]] = []
        for m in NOTICE_LINK_RE.finditer(masked):
            hits.append((m.start(1), m.end(1), m.group(1).upper()))
        for m in NOTICE_ID_RE.finditer(_text_only(masked)):
            hits.append((m.start(), m.end(), m.group(0)))
        hits.sort()

        matches: List[RawMatch] = []
        seen = set()
        for _, end, identifier in hits:
            if identifier in seen:
                continue
            seen.add(identifier)
            window = masked[end:end + self.config.anchor_window_size]
            matches.append(RawMatch(
                identifier=identifier,
                subject=self._subject(window),
                date_text=self._text(markup.labeled_text(window, DATE_LABELS)),
                strategy=self.name,
            ))
        return matches

    def _subject(self, window: str) -> Optional[str]:
        labeled = self._title(markup.labeled_text(window, SUBJECT_LABELS))
        if labeled:
            return labeled
        m = ANCHOR_TEXT_RE.match(window)
        if m:
            return self._title(m.group('text'))
        return None


@extraction_strategy()
class IssueListStrategy(BaseStrategy):
    name = "issue_list"

    def scan(self, document: str) -> List[RawMatch]:
        masked = _mask(document)
        links = [m.group(1) for m in ISSUE_LINK_RE.finditer(masked)]
        matches: List[RawMatch] = []
        seen = set()
        for idx, m in enumerate(ISSUE_RE.finditer(masked)):
            volume, issue = int(m.group(1)), int(m.group(2))
            identifier = f"VOL{volume}-ISS{issue}"
            if identifier in seen:
                continue
            seen.add(identifier)
            matches.append(RawMatch(
                identifier=identifier,
                date_text=m.group(3).strip(),
                issue_text=f"{volume}/{issue}",
                detail_link=links[idx] if idx < len(links) else None,
                strategy=self.name,
            ))
        return matches


class Extractor:
    """Run strategies in priority order and normalize the winning matches."""

    def __init__(self, config: Optional[ExtractorConfig] = None) -> None:
        self.config = config or ExtractorConfig()
        unknown = [n for n in self.config.strategy_order if n not in STRATEGY_REGISTRY]
        if unknown:
            raise ValueError(f"Unknown extraction strategy(s): {unknown}")
        self.strategies: List[ExtractionStrategy] = [STRATEGY_REGISTRY[n](self.config) for n in self.config.strategy_order]

    def extract_with_strategy(self, document: Optional[str]) -> Tuple[Optional[str], List[RawMatch]]:
        if not document:
            return None, []
        for strategy in self.strategies:
            matches = strategy.scan(document)
            if matches:
                logger.info("Strategy %s produced %d matches", strategy.name, len(matches))
                return strategy.name, matches
            logger.debug("Strategy %s produced no matches; falling back", strategy.name)
        logger.info("No extraction strategy matched the document")
        return None, []

    def extract(self, document: Optional[str]) -> List[RawMatch]:
        return self.extract_with_strategy(document)[1]

    def build_record(self, match: RawMatch, now: Optional[datetime] = None) -> RegulationRecord:
        day = norm.normalize_date(match.date_text, now)
        is_new = norm.is_recent(day, self.config.recency_window_days, now)
        if match.strategy == IssueListStrategy.name:
            volume, _, issue = (match.issue_text or "").partition("/")
            return RegulationRecord(
                id=match.identifier,
                title=f"DC Register Volume {volume}, Issue {issue}",
                agency=ISSUE_AGENCY,
                category=CATEGORY_ISSUE,
                date=day,
                is_new=is_new,
                register_issue=match.issue_text,
                detail_link=norm.resolve_link(match.detail_link, ISSUE_DETAIL_BASE_URL),
            )
        return RegulationRecord(
            id=match.identifier,
            title=match.subject or PLACEHOLDER_TITLE,
            agency=norm.resolve_agency(match.agency_text or match.subject),
            category=self.config.notice_category,
            date=day,
            is_new=is_new,
            register_issue=norm.parse_issue_ref(match.issue_text),
            detail_link=norm.resolve_link(match.detail_link, self.config.document_base_url)
            or NOTICE_DETAIL_URL.format(notice_id=match.identifier),
            document_link=norm.resolve_link(match.link, self.config.document_base_url),
        )

    def build_records(self, matches: List[RawMatch], now: Optional[datetime] = None) -> List[RegulationRecord]:
        """Normalize matches in order; a match that fails to normalize is logged and dropped."""
        records: List[RegulationRecord] = []
        for match in matches:
            try:
                records.append(self.build_record(match, now))
            except Exception as e:
                logger.warning("Skipping record %s: %s", match.identifier, e)
        return records

    def extract_records(self, document: Optional[str], now: Optional[datetime] = None) -> List[RegulationRecord]:
        return self.build_records(self.extract(document), now)


def extract_regulations(
    document: Optional[str],
    config: Optional[ExtractorConfig] = None,
    now: Optional[datetime] = None,
) -> List[RegulationRecord]:
    return Extractor(config).extract_records(document, now)


__all__ = [
    "STRATEGY_REGISTRY",
    "BaseStrategy",
    "ExtractionStrategy",
    "Extractor",
    "IssueListStrategy",
    "NoticeAnchorStrategy",
    "TableRowStrategy",
    "extract_regulations",
    "extraction_strategy",
]
