"""
Reporter のユニットテスト

テスト対象:
  - TestCaseReporter: ライフサイクル（Idle → Active → Idle）
  - TestCaseReport.from_entries(): 集計と判定
  - ReportWriter: JSON / HTML / JUnit XML 出力
  - render_summary() / load_report()
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from bdm.core.action_log import ActionLogEntry, ActionLogger
from bdm.core.errors import NoActiveTestCaseError, TestCaseAlreadyActiveError
from bdm.core.locator import Locator
from bdm.core.reporting import (
    ReportWriter,
    TestCaseReport,
    TestCaseReporter,
    TestVerdict,
    build_report_dict,
    load_report,
    render_summary,
)


def _make_entry(success: bool, duration_ms: float = 10.0, **kwargs) -> ActionLogEntry:
    return ActionLogEntry(
        action=kwargs.pop("action", "click"),
        success=success,
        duration_ms=duration_ms,
        **kwargs,
    )


def _make_report(*successes: bool) -> TestCaseReport:
    entries = [
        _make_entry(
            ok,
            locator=Locator.of(f"#item-{i}"),
            error=None if ok else "Waiting for element to be clickable timed out after 200ms",
            suggestions=() if ok else ('[name="item"]',),
            screenshot_path=None if ok else "shots/0000_failure-click.png",
        )
        for i, ok in enumerate(successes)
    ]
    return TestCaseReport.from_entries("Login flow", entries, description="ログイン確認")


# ---------------------------------------------------------------------------
# ライフサイクル
# ---------------------------------------------------------------------------

class TestLifecycle:
    """TestCaseReporter のライフサイクルテスト。"""

    def test_start_then_end(self):
        """start → end でレポートが得られ Idle に戻ること。"""
        reporter = TestCaseReporter(ActionLogger())

        reporter.start("Login flow", "desc")
        assert reporter.is_active
        assert reporter.current_name == "Login flow"

        report = reporter.end()
        assert report.name == "Login flow"
        assert report.description == "desc"
        assert not reporter.is_active
        assert reporter.current_name is None

    def test_end_without_start(self):
        """開始前の end は NoActiveTestCaseError になること。"""
        reporter = TestCaseReporter(ActionLogger())

        with pytest.raises(NoActiveTestCaseError):
            reporter.end()

    def test_double_start_rejected(self):
        """実行中の start は TestCaseAlreadyActiveError になり、元のケースは維持されること。"""
        reporter = TestCaseReporter(ActionLogger())
        reporter.start("first")

        with pytest.raises(TestCaseAlreadyActiveError):
            reporter.start("second")

        assert reporter.current_name == "first"

    def test_empty_name_rejected(self):
        """空のテストケース名は ValueError になること。"""
        reporter = TestCaseReporter(ActionLogger())

        with pytest.raises(ValueError):
            reporter.start("   ")

        assert not reporter.is_active

    async def test_start_resets_log(self):
        """start で以前の操作ログが破棄され、終了後の記録は次のケースに入ること。"""
        log = ActionLogger()
        reporter = TestCaseReporter(log)
        await log.record(_make_entry(True, action="before"))

        reporter.start("case")
        await log.record(_make_entry(True, action="inside"))
        report = reporter.end()

        assert [e.action for e in report.entries] == ["inside"]

    async def test_report_is_snapshot(self):
        """end 後の記録は返却済みレポートに影響しないこと。"""
        log = ActionLogger()
        reporter = TestCaseReporter(log)
        reporter.start("case")
        await log.record(_make_entry(True))
        report = reporter.end()

        await log.record(_make_entry(False))

        assert report.total_actions == 1


# ---------------------------------------------------------------------------
# 集計
# ---------------------------------------------------------------------------

class TestAggregation:
    """TestCaseReport.from_entries() のテスト。"""

    def test_counts_and_verdict(self):
        """成功数・失敗数・合計時間・判定が集計されること。"""
        report = _make_report(True, True, False)

        assert report.success_count == 2
        assert report.failure_count == 1
        assert report.total_actions == 3
        assert report.total_duration_ms == pytest.approx(30.0)
        assert report.verdict is TestVerdict.FAILED
        assert not report.passed

    def test_empty_case_passes(self):
        """操作のないテストケースは passed になること。"""
        report = TestCaseReport.from_entries("empty", [])

        assert report.total_actions == 0
        assert report.passed

    @given(st.lists(st.booleans(), max_size=30))
    def test_verdict_matches_failures(self, outcomes):
        """判定は失敗が 1 件以上のときに限り failed となること。"""
        entries = [_make_entry(ok, duration_ms=1.0) for ok in outcomes]

        report = TestCaseReport.from_entries("prop", entries)

        assert report.success_count + report.failure_count == report.total_actions
        assert report.total_actions == len(outcomes)
        assert report.passed == all(outcomes)


# ---------------------------------------------------------------------------
# ReportWriter
# ---------------------------------------------------------------------------

class TestReportWriter:
    """ReportWriter のテスト。"""

    def test_write_json(self, tmp_path: Path):
        """JSON レポートに集計とエントリが含まれること。"""
        report = _make_report(True, False)

        path = ReportWriter().write_json(report, tmp_path, "login")

        assert path == tmp_path / "login.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["name"] == "Login flow"
        assert data["verdict"] == "failed"
        assert data["summary"] == {"total": 2, "passed": 1, "failed": 1}
        assert data["entries"][1]["suggestions"] == ['[name="item"]']

    def test_load_report_roundtrip(self, tmp_path: Path):
        """JSON から読み戻したレポートが元と等価であること。"""
        report = _make_report(True, False)
        path = ReportWriter().write_json(report, tmp_path, "login")

        assert load_report(path) == report

    def test_write_html(self, tmp_path: Path):
        """HTML レポートに名前・エラー・提案が含まれること。"""
        report = _make_report(True, False)

        path = ReportWriter().write_html(report, tmp_path, "login")

        html = path.read_text(encoding="utf-8")
        assert path.suffix == ".html"
        assert "Login flow" in html
        assert "timed out after 200ms" in html
        assert "[name=&#34;item&#34;]" in html or '[name="item"]' in html

    def test_write_junit_xml(self, tmp_path: Path):
        """JUnit XML で失敗した操作に failure 要素が付くこと。"""
        report = _make_report(True, False)

        path = ReportWriter().write_junit_xml(report, tmp_path, "login")

        root = ET.parse(path).getroot()
        suite = root.find("testsuite")
        assert suite is not None
        assert suite.get("tests") == "2"
        assert suite.get("failures") == "1"
        cases = suite.findall("testcase")
        assert [c.get("name") for c in cases] == ["0000-click", "0001-click"]
        assert cases[0].find("failure") is None
        failure = cases[1].find("failure")
        assert failure is not None
        assert "Suggestions: [name=\"item\"]" in failure.text
        assert "Screenshot: shots/0000_failure-click.png" in failure.text

    def test_write_multiple_formats(self, tmp_path: Path):
        """複数形式を指定順に出力し、ファイル名の語幹が共通であること。"""
        paths = ReportWriter().write(_make_report(True), tmp_path, ["json", "html", "junit"])

        assert [p.suffix for p in paths] == [".json", ".html", ".xml"]
        assert len({p.stem for p in paths}) == 1
        assert paths[0].stem.startswith("Login-flow-")

    def test_unknown_format_rejected(self, tmp_path: Path):
        """未知の形式は ValueError になること。"""
        with pytest.raises(ValueError, match="Unknown report format"):
            ReportWriter().write(_make_report(True), tmp_path, ["pdf"])


# ---------------------------------------------------------------------------
# サマリー
# ---------------------------------------------------------------------------

class TestSummary:
    """render_summary() / build_report_dict() のテスト。"""

    def test_passed_summary(self):
        summary = render_summary(_make_report(True, True), [Path("out/login.json")])

        assert summary.splitlines()[0] == "Test case completed: PASSED"
        assert "Total actions: 2" in summary
        assert "Successful: 2" in summary
        assert "Failed: 0" in summary
        assert "Duration: 20ms" in summary
        assert "Report saved: " in summary

    def test_failed_summary(self):
        summary = render_summary(_make_report(False))

        assert summary.startswith("Test case completed: FAILED")
        assert "Report saved" not in summary

    def test_report_dict_has_summary(self):
        data = build_report_dict(_make_report(True, False, False))

        assert data["summary"]["failed"] == 2
        assert data["verdict"] == "failed"
