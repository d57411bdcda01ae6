import json
import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from notion2memos.utils.errors import (
    CancelledError,
    DecodeError,
    DispatchError,
    MigrationError,
    SplitDispatchError,
    StateIOError,
    TransportError,
    error_code_for,
    report_error,
    report_ok,
)


def test_error_codes_by_kind():
    assert error_code_for(TransportError(500, "x")) == "NOTION_NETWORK"
    assert error_code_for(TransportError(500, "x", service="memos")) == "MEMOS_NETWORK"
    assert error_code_for(DecodeError("x")) == "DECODE"
    assert error_code_for(StateIOError("x")) == "STATE_IO"
    assert error_code_for(DispatchError("x")) == "DISPATCH"
    assert error_code_for(SplitDispatchError(2, 3, DispatchError("x"))) == "SPLIT_DISPATCH"
    assert error_code_for(CancelledError("x")) == "CANCELLED"
    assert error_code_for(ValueError("x")) == "MIGRATION_FAILED"


def test_attach_page_keeps_first_page():
    err = DecodeError("bad body")
    err.attach_page("Outer", "p1").attach_page("Other", "p2")
    assert err.page_id == "p1"
    assert str(err) == "failed to migrate page 'Outer' (p1): bad body"


def test_split_error_names_part_and_cause():
    err = SplitDispatchError(2, 5, TransportError(413, "too large", service="memos"))
    assert "2/5" in str(err)
    assert "413" in str(err)
    assert isinstance(err, MigrationError)


def test_reports_are_appended_as_json_lines(tmp_path):
    report_dir = str(tmp_path / "reports")
    page = {"id": "p1", "title": "Groceries"}
    report_ok("PAGE_MIGRATED", page, {"memos": 2}, report_dir=report_dir)
    report_error("MEMOS_NETWORK", page, TransportError(503, "down", service="memos"), report_dir=report_dir)
    report_error("NOTION_NETWORK", None, report_dir=report_dir)

    with open(os.path.join(report_dir, "success.jsonl"), encoding="utf-8") as f:
        ok = [json.loads(line) for line in f]
    with open(os.path.join(report_dir, "errors.jsonl"), encoding="utf-8") as f:
        errors = [json.loads(line) for line in f]

    assert ok == [{
        "code": "PAGE_MIGRATED",
        "message": "Page migrated successfully",
        "page_id": "p1",
        "title": "Groceries",
        "memos": 2,
    }]
    assert errors[0]["status_code"] == 503
    assert "down" in errors[0]["error"]
    assert errors[1]["page_id"] is None
