"""
CLI テスト — typer.testing.CliRunner を使用した CLI コマンドのテスト

実際のブラウザ起動や MCP サーバーの実行は行わず、モックで代替する。
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from bdm.cli import app
from bdm.core.action_log import ActionLogEntry
from bdm.core.locator import Locator
from bdm.core.reporting import ReportWriter, TestCaseReport

runner = CliRunner()


def _write_report_json(directory: Path, *successes: bool) -> Path:
    entries = [
        ActionLogEntry(
            action="click",
            locator=Locator.of("#buy"),
            success=ok,
            duration_ms=15.0,
            error=None if ok else "Waiting for element to be clickable timed out after 100ms",
        )
        for ok in successes
    ]
    report = TestCaseReport.from_entries("Checkout", entries)
    return ReportWriter().write_json(report, directory, "checkout")


# ===========================================================================
# report コマンド
# ===========================================================================

class TestReportCommand:
    """report コマンドのテスト。"""

    def test_generates_html(self, tmp_path: Path) -> None:
        """JSON と同じディレクトリに HTML が生成される。"""
        report_json = _write_report_json(tmp_path, True, True)

        result = runner.invoke(app, ["report", str(report_json)])

        assert result.exit_code == 0
        assert (tmp_path / "checkout.html").exists()
        assert "Checkout: PASSED" in result.output

    def test_generates_junit_only(self, tmp_path: Path) -> None:
        """--no-html --junit で JUnit XML のみを出力先に生成する。"""
        report_json = _write_report_json(tmp_path, True, False)
        out_dir = tmp_path / "out"

        result = runner.invoke(
            app, ["report", str(report_json), "--no-html", "--junit", "-o", str(out_dir)],
        )

        assert result.exit_code == 0
        assert not (out_dir / "checkout.html").exists()
        suite = ET.parse(out_dir / "checkout.xml").getroot().find("testsuite")
        assert suite is not None
        assert suite.get("failures") == "1"
        assert "Checkout: FAILED" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["report", str(tmp_path / "nope.json")])

        assert result.exit_code == 1

    def test_no_format_selected(self, tmp_path: Path) -> None:
        report_json = _write_report_json(tmp_path, True)

        result = runner.invoke(app, ["report", str(report_json), "--no-html"])

        assert result.exit_code == 1

    def test_broken_json(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")

        result = runner.invoke(app, ["report", str(broken)])

        assert result.exit_code == 1


# ===========================================================================
# serve コマンド
# ===========================================================================

class TestServeCommand:
    """serve コマンドのテスト。"""

    def test_unknown_browser(self) -> None:
        result = runner.invoke(app, ["serve", "--browser", "opera"])

        assert result.exit_code == 1

    def test_serve_builds_config(self, tmp_path: Path) -> None:
        """CLI オプションが設定に反映されてサーバーが起動される。"""
        server = MagicMock()
        with patch.dict("os.environ", {}, clear=True), \
                patch("bdm.mcp.server.create_server", return_value=server) as create:
            result = runner.invoke(app, [
                "serve", "--browser", "firefox", "--headed",
                "--artifacts-dir", str(tmp_path), "--timeout", "2500",
                "--report-formats", "json,junit",
            ])

        assert result.exit_code == 0
        config = create.call_args.kwargs["config"]
        assert config.browser == "firefox"
        assert config.headed is True
        assert config.artifacts_dir == str(tmp_path)
        assert config.default_timeout_ms == 2500
        assert config.report_formats == ["json", "junit"]
        server.run.assert_called_once_with()
