from dataclasses import replace
from datetime import datetime, timezone

import pytest

from dcregs_scraper.extract import (
    Extractor,
    IssueListStrategy,
    NoticeAnchorStrategy,
    TableRowStrategy,
    extract_regulations,
)
from dcregs_scraper.models import ExtractorConfig, PLACEHOLDER_TITLE

NOW = datetime(2026, 1, 12, tzinfo=timezone.utc)

NOTICE_TABLE = """
<html><body><form id="aspnetForm">
<input type="hidden" name="__VIEWSTATE" value="/wEP+N999999/x==" />
<table id="ctl00_ContentPlaceHolder1_gvNotice" class="grid">
  <tr><th>Notice</th><th>Subject</th><th>Issue</th><th>Publish Date</th><th></th></tr>
  <tr>
    <td><a href="../NoticeDetail.aspx?NoticeId=N123456">N123456</a></td>
    <td><span id="ctl00_gvNotice_ctl02_lblSubject">Proposed Rulemaking on Widget Safety Standards</span></td>
    <td><span id="ctl00_gvNotice_ctl02_lblIssue">Vol. 73, Issue 2</span></td>
    <td><span id="ctl00_gvNotice_ctl02_lblPublishDate">1/9/2026</span></td>
    <td><a href="../Download.aspx?noticeId=N123456&amp;type=pdf">Download</a></td>
  </tr>
</table>
</form></body></html>
"""

MULTI_ROW_TABLE = """
<table id="gvNotice">
  <tr><th>Notice</th><th>Subject</th></tr>
  <tr><td>N111111</td><td><span id="r1_lblSubject">Final Rulemaking on Sidewalk Cafe Permits</span>
      <span id="r1_lblAgency">Department of Transportation</span><span id="r1_lblPublishDate">January 02, 2026</span></td>
  <tr><td>no identifier in this row</td></tr>
  <tr><td>N222222</td><td><span id="r3_lblSubject">Short</span><span id="r3_lblPublishDate">12/1/2025</span></td></tr>
  <tr><td>N111111</td><td><span id="r4_lblSubject">Duplicate row for the first notice</span></td></tr>
"""

ANCHOR_ONLY = """
<div class="results">
  <p>See <a href="/Common/NoticeDetail.aspx?NoticeId=N654321">Notice of Final Rulemaking - Department of Transportation parking rules</a></p>
</div>
"""

ISSUE_LIST = """
<table id="issues">
<tr><td><a href="IssueDetailPage.aspx?issueID=1234">Volume 73, Issue 2 - January 09, 2026</a></td></tr>
<tr><td><a href="IssueDetailPage.aspx?issueID=1233">Volume 73, Issue 1 - January 02, 2026</a></td></tr>
<tr><td>Volume 73, Issue 2 - January 09, 2026 (repeated in sidebar)</td></tr>
</table>
"""


def test_no_markers_yields_empty():
    ex = Extractor()
    for doc in ("", None, "<html><body><p>Nothing to see</p></body></html>", "<<<>>><table", "N"):
        assert ex.extract(doc) == []
        assert ex.extract_records(doc, NOW) == []


def test_well_formed_row():
    records = extract_regulations(NOTICE_TABLE, now=NOW)
    assert len(records) == 1
    rec = records[0]
    assert rec.id == "N123456"
    assert rec.title == "Proposed Rulemaking on Widget Safety Standards"
    assert rec.date == "2026-01-09"
    assert rec.is_new is True
    assert rec.register_issue == "73/2"
    assert rec.category == "Rulemaking"
    assert rec.status == "Published"
    assert rec.document_link == "https://www.dcregs.dc.gov/Common/DCR/Download.aspx?noticeId=N123456&type=pdf"
    assert rec.detail_link == "https://dcregs.dc.gov/Common/NoticeDetail.aspx?NoticeId=N123456"


def test_well_formed_row_not_new_outside_window():
    later = datetime(2026, 1, 20, tzinfo=timezone.utc)
    rec = extract_regulations(NOTICE_TABLE, now=later)[0]
    assert rec.is_new is False
    earlier = datetime(2026, 1, 8, tzinfo=timezone.utc)
    assert extract_regulations(NOTICE_TABLE, now=earlier)[0].is_new is False


def test_table_rows_skip_missing_ids_and_duplicates():
    matches = TableRowStrategy(ExtractorConfig()).scan(MULTI_ROW_TABLE)
    assert [m.identifier for m in matches] == ["N111111", "N222222"]
    assert matches[0].agency_text == "Department of Transportation"
    # titles under the minimum length are discarded
    assert matches[1].subject is None

    records = Extractor().extract_records(MULTI_ROW_TABLE, NOW)
    assert records[0].agency == "Department of Transportation"
    assert records[0].date == "2026-01-02"
    assert records[1].title == PLACEHOLDER_TITLE
    assert records[1].date == "2025-12-01"


def test_table_row_exception_skips_only_that_row(monkeypatch):
    original = TableRowStrategy._parse_row

    def flaky(self, row):
        if "N111111" in row:
            raise RuntimeError("boom")
        return original(self, row)

    monkeypatch.setattr(TableRowStrategy, "_parse_row", flaky)
    matches = TableRowStrategy(ExtractorConfig()).scan(MULTI_ROW_TABLE)
    assert [m.identifier for m in matches] == ["N222222"]


def test_falls_back_to_anchor_scan_when_table_has_no_rows():
    doc = '<table id="gvNotice"><tr><th>Notice</th></tr></table>' + ANCHOR_ONLY
    strategy, matches = Extractor().extract_with_strategy(doc)
    assert strategy == "notice_anchor"
    records = Extractor().extract_records(doc, NOW)
    assert len(records) == 1
    rec = records[0]
    assert rec.id == "N654321"
    assert rec.title == "Notice of Final Rulemaking - Department of Transportation parking rules"
    assert rec.agency == "Department of Transportation"
    assert rec.date == "2026-01-12"
    assert rec.is_new is True


def test_anchor_scan_deduplicates():
    doc = (
        "<p>N777777 first mention</p>"
        "<p><a href='x.aspx?NoticeId=N777777'>second</a></p>"
        "<div>again N777777 and also N888888</div>"
    )
    matches = NoticeAnchorStrategy(ExtractorConfig()).scan(doc)
    assert [m.identifier for m in matches] == ["N777777", "N888888"]


def test_anchor_scan_window_is_bounded():
    doc = "<p>N246810</p>" + "<p>" + "x" * 600 + "</p><span id='lblSubject'>Far Away Subject Line Here</span>"
    rec = Extractor().extract_records(doc, NOW)[0]
    assert rec.title == PLACEHOLDER_TITLE

    wide = ExtractorConfig(anchor_window_size=1000)
    rec = Extractor(wide).extract_records(doc, NOW)[0]
    assert rec.title == "Far Away Subject Line Here"


def test_anchor_scan_uses_labeled_subject_and_date():
    doc = (
        "<div><b>N135790</b> <span class='lblSubject'>Notice of Public Hearing on Zoning</span>"
        "<span class='lblPublishDate'>December 26, 2025</span></div>"
    )
    rec = Extractor().extract_records(doc, NOW)[0]
    assert rec.title == "Notice of Public Hearing on Zoning"
    assert rec.date == "2025-12-26"
    assert rec.is_new is False


def test_hidden_fields_and_scripts_are_not_scanned():
    doc = (
        '<input type="hidden" name="__VIEWSTATE" value="/wEP+N999999/x==" />'
        '<script>var notice = "N555555";</script><!-- N444444 -->'
    )
    assert Extractor().extract(doc) == []


def test_issue_list_strategy():
    records = Extractor().extract_records(ISSUE_LIST, NOW)
    assert [r.id for r in records] == ["VOL73-ISS2", "VOL73-ISS1"]
    first = records[0]
    assert first.title == "DC Register Volume 73, Issue 2"
    assert first.category == "DC Register Issue"
    assert first.agency == "Office of Documents and Administrative Issuances"
    assert first.register_issue == "73/2"
    assert first.date == "2026-01-09"
    assert first.is_new is True
    assert first.detail_link == "https://www.dcregs.dc.gov/Common/DCR/Issues/IssueDetailPage.aspx?issueID=1234"
    assert records[1].is_new is False


def test_higher_priority_strategy_wins():
    doc = NOTICE_TABLE + ISSUE_LIST + ANCHOR_ONLY
    strategy, matches = Extractor().extract_with_strategy(doc)
    assert strategy == "table"
    assert [m.identifier for m in matches] == ["N123456"]

    issue_first = ExtractorConfig(strategy_order=("issue_list", "table"))
    strategy, matches = Extractor(issue_first).extract_with_strategy(doc)
    assert strategy == "issue_list"
    assert all(m.identifier.startswith("VOL") for m in matches)


def test_issue_strategy_runs_only_after_notice_strategies_fail():
    strategy, _ = Extractor().extract_with_strategy(ISSUE_LIST)
    assert strategy == "issue_list"
    assert IssueListStrategy(ExtractorConfig()).scan(ANCHOR_ONLY) == []


def test_extract_is_idempotent():
    ex = Extractor()
    doc = NOTICE_TABLE + ANCHOR_ONLY
    assert ex.extract(doc) == ex.extract(doc)
    assert ex.extract_records(doc, NOW) == ex.extract_records(doc, NOW)


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        Extractor(ExtractorConfig(strategy_order=("table", "magic")))


def test_record_ids_unique_and_serialized():
    records = extract_regulations(NOTICE_TABLE + MULTI_ROW_TABLE, now=NOW)
    ids = [r.id for r in records]
    assert len(ids) == len(set(ids))
    data = records[0].to_dict()
    assert data["isNew"] is True
    assert data["registerIssue"] == "73/2"
    assert "documentLink" in data and "detailLink" in data
    bare = replace(records[0], register_issue=None, document_link=None).to_dict()
    assert "registerIssue" not in bare and "documentLink" not in bare


BROKEN_LINK_TABLE = """
<table id="gvNotice">
  <tr><td>N100001</td><td><span id="a_lblSubject">Notice of Proposed Rulemaking on Noise Limits</span></td>
      <td><a href="//[broken/Download.aspx?id=1">Download</a></td></tr>
  <tr><td>N100002</td><td><span id="b_lblSubject">Notice of Final Rulemaking on Street Vending</span></td>
      <td><a href="../Download.aspx?id=2">Download</a></td></tr>
</table>
"""


def test_malformed_link_keeps_every_row():
    records = Extractor().extract_records(BROKEN_LINK_TABLE, NOW)
    assert [r.id for r in records] == ["N100001", "N100002"]
    assert records[0].document_link is None
    assert records[1].document_link == "https://www.dcregs.dc.gov/Common/DCR/Download.aspx?id=2"


def test_record_build_failure_skips_only_that_record(monkeypatch):
    extractor = Extractor()
    original = Extractor.build_record

    def flaky(self, match, now=None):
        if match.identifier == "N100001":
            raise RuntimeError("boom")
        return original(self, match, now)

    monkeypatch.setattr(Extractor, "build_record", flaky)
    assert [r.id for r in extractor.extract_records(BROKEN_LINK_TABLE, NOW)] == ["N100002"]


def test_notice_category_must_be_known():
    with pytest.raises(ValueError):
        ExtractorConfig(notice_category="Bogus")
    config = ExtractorConfig(notice_category="Rulemaking Notice")
    records = Extractor(config).extract_records(BROKEN_LINK_TABLE, NOW)
    assert {r.category for r in records} == {"Rulemaking Notice"}
