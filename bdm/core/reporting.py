"""
Reporter — テストケースの開始・終了とレポート生成

start_test_case / end_test_case の間に記録された操作ログを集計し、
合否判定付きの TestCaseReport を生成する。
生成したレポートは ReportWriter で JSON / HTML / JUnit XML に書き出せる。

主な機能:
  - TestCaseReporter: Idle → Active → Idle のライフサイクル管理
  - TestCaseReport: 集計結果（成功数・失敗数・合計時間・判定）
  - ReportWriter: JSON / HTML（Jinja2）/ JUnit XML 出力
  - render_summary(): エージェントに返すテキストサマリー
"""

from __future__ import annotations

import enum
import json
import logging
import time
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from jinja2 import Environment, FileSystemLoader
from pydantic import BaseModel, ConfigDict, Field

from .action_log import ActionLogEntry, ActionLogger
from .artifacts import sanitize_name
from .errors import NoActiveTestCaseError, TestCaseAlreadyActiveError

logger = logging.getLogger(__name__)

# テンプレートディレクトリのパス
_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

REPORT_FORMATS = ("json", "html", "junit")


# ---------------------------------------------------------------------------
# レポートモデル
# ---------------------------------------------------------------------------

class TestVerdict(str, enum.Enum):
    """テストケースの判定。"""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"


class TestCaseReport(BaseModel):
    """テストケースの集計結果。

    verdict は failure_count > 0 のときに限り failed となる。
    """

    __test__ = False

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    started_at: datetime
    finished_at: datetime
    entries: tuple[ActionLogEntry, ...] = ()
    success_count: int = 0
    failure_count: int = 0
    total_actions: int = 0
    total_duration_ms: float = 0.0
    verdict: TestVerdict = TestVerdict.PASSED

    @classmethod
    def from_entries(
        cls,
        name: str,
        entries: Sequence[ActionLogEntry],
        *,
        description: Optional[str] = None,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
    ) -> TestCaseReport:
        """ログエントリを畳み込んでレポートを生成する。"""
        success_count = sum(1 for e in entries if e.success)
        failure_count = len(entries) - success_count
        now = datetime.now(timezone.utc)
        return cls(
            name=name,
            description=description,
            started_at=started_at or now,
            finished_at=finished_at or now,
            entries=tuple(entries),
            success_count=success_count,
            failure_count=failure_count,
            total_actions=len(entries),
            total_duration_ms=sum(e.duration_ms for e in entries),
            verdict=TestVerdict.FAILED if failure_count > 0 else TestVerdict.PASSED,
        )

    @property
    def passed(self) -> bool:
        return self.verdict is TestVerdict.PASSED


# ---------------------------------------------------------------------------
# TestCaseReporter 本体
# ---------------------------------------------------------------------------

class TestCaseReporter:
    """ActionLogger の記録範囲を 1 テストケースとして管理する。

    同時にアクティブになれるテストケースは 1 つだけ。
    """

    __test__ = False

    def __init__(self, action_logger: ActionLogger) -> None:
        self._log = action_logger
        self._name: Optional[str] = None
        self._description: Optional[str] = None
        self._started_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        """テストケースが実行中かどうか。"""
        return self._name is not None

    @property
    def current_name(self) -> Optional[str]:
        """実行中のテストケース名。Idle 時は None。"""
        return self._name

    def start(self, name: str, description: Optional[str] = None) -> None:
        """テストケースを開始し、操作ログをクリアする。

        Raises:
            TestCaseAlreadyActiveError: 既にテストケースが実行中の場合
            ValueError: name が空の場合
        """
        if self._name is not None:
            raise TestCaseAlreadyActiveError(self._name)
        if not name or not name.strip():
            raise ValueError("test case name must not be empty")

        self._log.reset()
        self._name = name
        self._description = description
        self._started_at = datetime.now(timezone.utc)
        logger.info("テストケースを開始しました: %s", name)

    def end(self) -> TestCaseReport:
        """テストケースを終了し、レポートを返す。

        Raises:
            NoActiveTestCaseError: テストケースが開始されていない場合
        """
        if self._name is None:
            raise NoActiveTestCaseError()

        report = TestCaseReport.from_entries(
            self._name,
            self._log.snapshot(),
            description=self._description,
            started_at=self._started_at,
        )
        self._name = None
        self._description = None
        self._started_at = None

        logger.info(
            "テストケースを終了しました: %s（%s, 成功 %d / 失敗 %d）",
            report.name, report.verdict.value, report.success_count, report.failure_count,
        )
        return report


# ---------------------------------------------------------------------------
# ReportWriter
# ---------------------------------------------------------------------------

class ReportWriter:
    """TestCaseReport をファイルに書き出す。"""

    def write(
        self,
        report: TestCaseReport,
        output_dir: Path,
        formats: Iterable[str] = ("json",),
    ) -> list[Path]:
        """指定形式のレポートをまとめて生成する。

        Args:
            report: テストケースレポート
            output_dir: 出力先ディレクトリ
            formats: json / html / junit の組み合わせ

        Returns:
            生成されたファイルのパス（formats の順）

        Raises:
            ValueError: 未知の形式が指定された場合
        """
        stem = self._file_stem(report)
        paths: list[Path] = []
        for fmt in formats:
            if fmt == "json":
                paths.append(self.write_json(report, output_dir, stem))
            elif fmt == "html":
                paths.append(self.write_html(report, output_dir, stem))
            elif fmt == "junit":
                paths.append(self.write_junit_xml(report, output_dir, stem))
            else:
                raise ValueError(
                    f"Unknown report format: {fmt!r} (use {', '.join(REPORT_FORMATS)})"
                )
        return paths

    # -------------------------------------------------------------------
    # JSON レポート
    # -------------------------------------------------------------------

    def write_json(
        self, report: TestCaseReport, output_dir: Path, stem: Optional[str] = None,
    ) -> Path:
        """JSON レポートを生成する。"""
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{stem or self._file_stem(report)}.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(build_report_dict(report), f, ensure_ascii=False, indent=2)

        logger.info("JSON レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # HTML レポート
    # -------------------------------------------------------------------

    def write_html(
        self, report: TestCaseReport, output_dir: Path, stem: Optional[str] = None,
    ) -> Path:
        """Jinja2 テンプレート（templates/report.html.j2）で HTML レポートを生成する。"""
        output_dir.mkdir(parents=True, exist_ok=True)

        env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=True,
        )
        template = env.get_template("report.html.j2")
        html_content = template.render(report=build_report_dict(report))

        output_path = output_dir / f"{stem or self._file_stem(report)}.html"
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(html_content)

        logger.info("HTML レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # JUnit XML レポート
    # -------------------------------------------------------------------

    def write_junit_xml(
        self, report: TestCaseReport, output_dir: Path, stem: Optional[str] = None,
    ) -> Path:
        """JUnit XML レポートを生成する。

        テストケースを testsuite、各操作を testcase として出力する。
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        testsuites = ET.Element("testsuites")
        testsuite = ET.SubElement(testsuites, "testsuite")
        testsuite.set("name", report.name)
        testsuite.set("tests", str(report.total_actions))
        testsuite.set("failures", str(report.failure_count))
        testsuite.set("time", f"{report.total_duration_ms / 1000:.3f}")
        testsuite.set("timestamp", report.started_at.isoformat())

        for index, entry in enumerate(report.entries):
            testcase = ET.SubElement(testsuite, "testcase")
            testcase.set("name", f"{index:04d}-{entry.action}")
            testcase.set("classname", report.name)
            testcase.set("time", f"{entry.duration_ms / 1000:.3f}")

            if not entry.success:
                message = entry.error or "action failed"
                failure = ET.SubElement(testcase, "failure")
                failure.set("message", message)
                lines = [message]
                if entry.suggestions:
                    lines.append("Suggestions: " + "; ".join(entry.suggestions))
                if entry.screenshot_path:
                    lines.append(f"Screenshot: {entry.screenshot_path}")
                failure.text = "\n".join(lines)

        tree = ET.ElementTree(testsuites)
        output_path = output_dir / f"{stem or self._file_stem(report)}.xml"
        ET.indent(tree, space="  ")
        tree.write(str(output_path), encoding="unicode", xml_declaration=True)

        logger.info("JUnit XML レポートを生成しました: %s", output_path)
        return output_path

    @staticmethod
    def _file_stem(report: TestCaseReport) -> str:
        name = sanitize_name(report.name) or "test-case"
        return f"{name}-{int(time.time() * 1000)}"


# ---------------------------------------------------------------------------
# 変換ヘルパー
# ---------------------------------------------------------------------------

def build_report_dict(report: TestCaseReport) -> dict[str, Any]:
    """TestCaseReport をレポート用辞書に変換する。"""
    data = report.model_dump(mode="json")
    data["summary"] = {
        "total": report.total_actions,
        "passed": report.success_count,
        "failed": report.failure_count,
    }
    return data


def load_report(path: Path) -> TestCaseReport:
    """JSON レポートファイルから TestCaseReport を復元する。"""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    data.pop("summary", None)
    return TestCaseReport.model_validate(data)


def render_summary(report: TestCaseReport, paths: Sequence[Path] = ()) -> str:
    """エージェント向けのテキストサマリーを生成する。"""
    result = "PASSED" if report.passed else "FAILED"
    lines = [
        f"Test case completed: {result}",
        f"Name: {report.name}",
        f"Total actions: {report.total_actions}",
        f"Successful: {report.success_count}",
        f"Failed: {report.failure_count}",
        f"Duration: {report.total_duration_ms:.0f}ms",
    ]
    for path in paths:
        lines.append(f"Report saved: {path}")
    return "\n".join(lines)
