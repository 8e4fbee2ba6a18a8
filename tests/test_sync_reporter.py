"""Tests for sync reporter formatting functions."""

from __future__ import annotations

from hackmud_sync.sync.models import (
    MacroSyncResult,
    PushReport,
    SyncInfo,
    TestFailure,
)
from hackmud_sync.sync.reporter import (
    format_info_line,
    format_macro_result,
    format_push_report,
    format_test_report,
    report_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_report(results: list[SyncInfo] | None = None) -> PushReport:
    return PushReport(
        results=results or [],
        started_at="2026-02-07T10:00:00Z",
        completed_at="2026-02-07T10:00:01Z",
    )


OK = SyncInfo(file="foo.js", users=["alice", "bob"], min_length=42)
BAD = SyncInfo(file="bad.js", error="unexpected token")
PARTIAL = SyncInfo(
    file="lib.js", users=["bob"], min_length=7, error="disk full"
)


class TestFormatInfoLine:
    def test_success(self):
        assert format_info_line(OK) == "foo.js -> alice, bob (42 chars)"

    def test_failure(self):
        assert format_info_line(BAD) == "bad.js: FAILED unexpected token"

    def test_partial(self):
        assert format_info_line(PARTIAL) == (
            "lib.js -> bob (7 chars) [partial: disk full]"
        )

    def test_no_users(self):
        info = SyncInfo(file="x.js", min_length=3)

        assert format_info_line(info) == "x.js -> no users (3 chars)"


class TestFormatPushReport:
    def test_header_counts(self):
        text = format_push_report(_make_report([OK, BAD, PARTIAL]))

        first = text.splitlines()[0]
        assert first == "Pushed 1 of 3 scripts (3 files written, 2 failed)"

    def test_failures_listed_before_successes(self):
        text = format_push_report(_make_report([OK, BAD]))

        assert text.index("Failed:") < text.index("Pushed:\n")
        assert "  bad.js: FAILED unexpected token" in text

    def test_empty_report(self):
        text = format_push_report(_make_report())

        assert "Pushed 0 of 0 scripts" in text
        assert "Failed:" not in text
        assert text.endswith("\n")


class TestFormatTestReport:
    def test_all_passed(self):
        assert format_test_report([]) == "All scripts passed.\n"

    def test_failures_sorted(self):
        text = format_test_report(
            [
                TestFailure(file="z.js", error="e1"),
                TestFailure(file="a/b.ts", error="e2"),
            ]
        )

        assert text == "2 script(s) failed:\n  a/b.ts: e2\n  z.js: e1\n"


def test_format_macro_result():
    result = MacroSyncResult(merged_count=4, user_count=2)

    assert format_macro_result(result) == "Synced 4 macros to 2 users\n"


def test_report_to_json():
    data = report_to_json(_make_report([OK, BAD]))

    assert data["summary"] == {
        "total": 2,
        "pushed": 1,
        "failed": 1,
        "writes": 2,
    }
    assert data["results"][1] == {
        "file": "bad.js",
        "users": [],
        "min_length": 0,
        "error": "unexpected token",
    }
    assert data["completed_at"] == "2026-02-07T10:00:01Z"
