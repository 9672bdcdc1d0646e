"""Validate scrape envelopes written by `dcregs-scraper --output`.

Checks performed:
    * Success envelopes carry success/count/regulations/metadata
    * Error envelopes carry error/details
    * count >= number of returned regulations
    * Each record has the required fields, a known category and an ISO date
    * Record ids are unique within the envelope
    * Links, when present, are absolute http(s) URLs

Exit code 0 on success, 1 if any errors.
"""
from __future__ import annotations

import json
import glob
import sys
from datetime import date
from pathlib import Path


REQUIRED_TOP = {"success", "count", "regulations", "metadata"}
REQUIRED_ERROR = {"success", "error", "details"}
REQUIRED_RECORD = {"id", "title", "agency", "category", "status", "date", "source", "isNew"}
CATEGORIES = {"DC Register Issue", "Rulemaking", "Rulemaking Notice"}
LINK_FIELDS = ("detailLink", "documentLink")


def load_json(path: Path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def validate_record(rec: dict, idx: int) -> list[str]:
    errors = []
    missing = REQUIRED_RECORD - rec.keys()
    if missing:
        errors.append(f"Record {idx} missing keys: {sorted(missing)}")
    for k in ('id', 'title', 'agency'):
        if k in rec and not rec.get(k):
            errors.append(f"Record {idx} has empty {k}")
    if rec.get('category') is not None and rec.get('category') not in CATEGORIES:
        errors.append(f"Record {idx} has unknown category {rec.get('category')!r}")
    try:
        date.fromisoformat(str(rec.get('date')))
    except ValueError:
        errors.append(f"Record {idx} has non-ISO date {rec.get('date')!r}")
    if 'isNew' in rec and not isinstance(rec.get('isNew'), bool):
        errors.append(f"Record {idx} isNew is not a boolean")
    for k in LINK_FIELDS:
        link = rec.get(k)
        if link is not None and not str(link).startswith(('http://', 'https://')):
            errors.append(f"Record {idx} {k} is not absolute: {link}")
    return errors


def validate_doc(path: Path):
    errors = []
    try:
        data = load_json(path)
    except Exception as e:
        return [f"Failed to parse JSON: {e}"]
    if not isinstance(data, dict):
        return ["Envelope is not a JSON object"]
    if data.get('success') is False:
        missing = REQUIRED_ERROR - data.keys()
        if missing:
            errors.append(f"Missing error keys: {sorted(missing)}")
        return errors
    if data.get('debug'):
        return errors
    missing = REQUIRED_TOP - data.keys()
    if missing:
        errors.append(f"Missing top-level keys: {sorted(missing)}")
    regs = data.get('regulations') or []
    count = data.get('count')
    if not isinstance(count, int) or count < 0:
        errors.append(f"Invalid count: {count}")
    elif count < len(regs):
        errors.append(f"count={count} less than returned regulations={len(regs)}")
    seen = set()
    for idx, rec in enumerate(regs):
        errors.extend(validate_record(rec, idx))
        rid = rec.get('id')
        if rid in seen:
            errors.append(f"Duplicate id {rid}")
        else:
            seen.add(rid)
    meta = data.get('metadata') or {}
    if not meta.get('scrapedAt'):
        errors.append("metadata.scrapedAt missing")
    return errors


def main(argv: list[str] | None = None):
    if argv is None:
        argv = sys.argv
    pattern = argv[1] if len(argv) > 1 else 'data/*.json'
    paths = [Path(p) for p in glob.glob(pattern)]
    report = []
    total_errors = 0
    for p in paths:
        errs = validate_doc(p)
        if errs:
            total_errors += len(errs)
        report.append({'file': p.name, 'errors': errs})
    print(json.dumps(report, indent=2))
    return 1 if total_errors else 0


if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main(sys.argv))
