"""Record models shared by the extractor, normalizer and handlers.

RawMatch is the loose bag of strings a strategy pulls out of one fragment of
the page; RegulationRecord is the normalized, immutable output row that is
serialized straight into the response envelope.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

CATEGORY_ISSUE = "DC Register Issue"
CATEGORY_RULEMAKING = "Rulemaking"
CATEGORY_RULEMAKING_NOTICE = "Rulemaking Notice"
CATEGORIES = (CATEGORY_ISSUE, CATEGORY_RULEMAKING, CATEGORY_RULEMAKING_NOTICE)

STATUS_PUBLISHED = "Published"
SOURCE_LABEL = "Municipal Register"
PLACEHOLDER_TITLE = "Regulation Notice"
ISSUE_AGENCY = "Office of Documents and Administrative Issuances"

NOTICE_DETAIL_URL = "https://dcregs.dc.gov/Common/NoticeDetail.aspx?NoticeId={notice_id}"
ISSUE_DETAIL_BASE_URL = "https://www.dcregs.dc.gov/Common/DCR/Issues/"


@dataclass(frozen=True)
class ExtractorConfig:
    strategy_order: Tuple[str, ...] = ("table", "notice_anchor", "issue_list")
    anchor_window_size: int = 500
    recency_window_days: int = 7
    min_title_length: int = 11
    table_marker: str = "gvNotice"
    document_base_url: str = "https://www.dcregs.dc.gov/Common/DCR/"
    notice_category: str = CATEGORY_RULEMAKING

    def __post_init__(self) -> None:
        if self.notice_category not in CATEGORIES:
            raise ValueError(f"notice_category must be one of {list(CATEGORIES)}, got {self.notice_category!r}")


@dataclass(frozen=True)
class RawMatch:
    """One fragment's worth of extracted strings. Only identifier is required."""
    identifier: str
    subject: Optional[str] = None
    date_text: Optional[str] = None
    issue_text: Optional[str] = None
    link: Optional[str] = None
    detail_link: Optional[str] = None
    agency_text: Optional[str] = None
    strategy: Optional[str] = None


@dataclass(frozen=True)
class RegulationRecord:
    id: str
    title: str
    agency: str
    category: str
    date: str
    is_new: bool
    status: str = STATUS_PUBLISHED
    source: str = SOURCE_LABEL
    register_issue: Optional[str] = None
    detail_link: Optional[str] = None
    document_link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in {
            'id': self.id,
            'title': self.title,
            'agency': self.agency,
            'category': self.category,
            'status': self.status,
            'registerIssue': self.register_issue,
            'date': self.date,
            'detailLink': self.detail_link,
            'documentLink': self.document_link,
            'source': self.source,
            'isNew': self.is_new,
        }.items() if v is not None}


__all__ = [
    "ExtractorConfig",
    "RawMatch",
    "RegulationRecord",
    "CATEGORIES",
    "CATEGORY_ISSUE",
    "CATEGORY_RULEMAKING",
    "CATEGORY_RULEMAKING_NOTICE",
    "PLACEHOLDER_TITLE",
    "ISSUE_AGENCY",
    "SOURCE_LABEL",
]
