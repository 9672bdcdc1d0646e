"""Lightweight tag-aware cursor over server-rendered HTML.

This is deliberately not an HTML parser. It walks start/end tags with a
regex, tracks nesting depth for the one element name it is asked about, and
hands back character spans. That is enough to isolate a GridView table and
its rows on the register pages, including the usual WebForms breakage:
  * tables that are never closed (truncated responses)
  * rows missing their ``</tr>``
  * tables nested inside cells
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple
import re

TAG_RE = re.compile(r"<(?P<close>/?)(?P<name>[A-Za-z][A-Za-z0-9:-]*)(?P<attrs>[^>]*)>", re.S)
COMMENT_RE = re.compile(r"<!--.*?-->", re.S)
HREF_RE = re.compile(r"""href\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')""", re.I)

Span = Tuple[int, int]


@dataclass(frozen=True)
class Tag:
    name: str
    closing: bool
    attrs: str
    start: int
    end: int


def blank_comments(document: str) -> str:
    """Replace comments with spaces so offsets stay aligned with the input."""
    return COMMENT_RE.sub(lambda m: " " * len(m.group(0)), document)


def iter_tags(document: str, start: int = 0, end: Optional[int] = None) -> Iterator[Tag]:
    stop = len(document) if end is None else end
    for m in TAG_RE.finditer(document, start, stop):
        yield Tag(
            name=m.group('name').lower(),
            closing=bool(m.group('close')),
            attrs=m.group('attrs'),
            start=m.start(),
            end=m.end(),
        )


def find_element(document: str, name: str, marker: str, start: int = 0) -> Optional[Span]:
    """Span of the first ``name`` element whose opening tag mentions ``marker``.

    The span runs to the matching close tag, or to the end of the document when
    the element is never closed.
    """
    name = name.lower()
    marker = marker.lower()
    opened: Optional[Tag] = None
    depth = 0
    for tag in iter_tags(document, start):
        if tag.name != name:
            continue
        if opened is None:
            if not tag.closing and marker in tag.attrs.lower():
                opened = tag
                depth = 1
            continue
        depth += -1 if tag.closing else 1
        if depth == 0:
            return opened.start, tag.end
    if opened is not None:
        return opened.start, len(document)
    return None


def split_rows(document: str, span: Span, row: str = "tr", container: str = "table") -> List[Span]:
    """Top-level ``row`` spans inside ``span``.

    Rows of tables nested in cells are left inside their parent row. A row
    without a close tag ends where the next sibling row starts.
    """
    start, end = span
    rows: List[Span] = []
    nested = 0
    row_start: Optional[int] = None
    first = True
    for tag in iter_tags(document, start, end):
        if tag.name == container:
            if first:
                first = False
                continue
            nested += -1 if tag.closing else 1
            nested = max(nested, 0)
            continue
        if tag.name != row or nested:
            continue
        if not tag.closing:
            if row_start is not None:
                rows.append((row_start, tag.start))
            row_start = tag.start
        elif row_start is not None:
            rows.append((row_start, tag.end))
            row_start = None
    if row_start is not None:
        rows.append((row_start, end))
    return rows


def labeled_text(fragment: str, labels: Sequence[str]) -> Optional[str]:
    """Inner markup of the first element whose id/class contains one of ``labels``.

    Labels are tried in order so callers can list the most specific first.
    """
    for label in labels:
        pattern = re.compile(
            r"<(?P<tag>[A-Za-z][A-Za-z0-9]*)\b[^>]*\b(?:id|class|name)\s*=\s*[\"'][^\"']*"
            + re.escape(label)
            + r"[^\"']*[\"'][^>]*>(?P<body>.*?)</(?P=tag)\s*>",
            re.I | re.S,
        )
        m = pattern.search(fragment)
        if m:
            return m.group('body')
    return None


def iter_hrefs(fragment: str) -> Iterator[str]:
    for m in HREF_RE.finditer(fragment):
        yield m.group('dq') if m.group('dq') is not None else m.group('sq')


__all__ = [
    "Tag",
    "blank_comments",
    "find_element",
    "iter_hrefs",
    "iter_tags",
    "labeled_text",
    "split_rows",
]
