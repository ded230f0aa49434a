"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

bdm コマンドとして以下のサブコマンドを提供する:
  - serve: MCP サーバー起動（stdio）
  - report: 保存済み JSON レポートから HTML / JUnit XML を再生成
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import typer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "bdm — 診断付きブラウザ操作 MCP サーバー\n\n"
        "  bdm serve                  MCP サーバーを起動\n"
        "  bdm report <report.json>   レポートを HTML / JUnit XML に変換\n"
    ),
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# serve コマンド
# ---------------------------------------------------------------------------

@app.command()
def serve(
    browser: Optional[str] = typer.Option(
        None, "--browser", "-b", help="既定のブラウザ (chrome / edge / firefox / webkit)",
    ),
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（デフォルト: ヘッドレス）",
    ),
    artifacts_dir: Optional[str] = typer.Option(
        None, "--artifacts-dir", help="成果物ディレクトリ（デフォルト: artifacts）",
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="要素待機の既定タイムアウト（ミリ秒）",
    ),
    report_formats: Optional[str] = typer.Option(
        None, "--report-formats", help="レポート形式 json,html,junit のカンマ区切り",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="DEBUG ログを出力する"),
) -> None:
    """MCP サーバーを stdio で起動する。"""
    from .mcp.config import apply_cli_args, load_config_from_env, setup_logging
    from .mcp.server import create_server
    from .mcp.session import BROWSER_TYPES

    setup_logging(verbose)

    if browser is not None and browser not in BROWSER_TYPES:
        typer.echo(
            f"エラー: 未対応のブラウザです: {browser}（{', '.join(BROWSER_TYPES)}）",
            err=True,
        )
        raise typer.Exit(code=1)

    config = load_config_from_env()
    config = apply_cli_args(
        config,
        argparse.Namespace(
            browser=browser,
            headed=headed is True,
            headless=headed is False,
            artifacts_dir=artifacts_dir,
            timeout=timeout,
            report_formats=report_formats,
        ),
    )

    server = create_server(config=config)
    server.run()


# ---------------------------------------------------------------------------
# report コマンド
# ---------------------------------------------------------------------------

@app.command()
def report(
    report_json: Path = typer.Argument(..., help="end_test_case が出力した JSON レポート"),
    html: bool = typer.Option(True, "--html/--no-html", help="HTML レポートを生成する"),
    junit: bool = typer.Option(False, "--junit", help="JUnit XML レポートを生成する"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="出力先（デフォルト: JSON と同じディレクトリ）",
    ),
) -> None:
    """保存済み JSON レポートから HTML / JUnit XML レポートを再生成する。"""
    from .core.reporting import ReportWriter, load_report

    if not report_json.exists():
        typer.echo(f"エラー: {report_json} が見つかりません", err=True)
        raise typer.Exit(code=1)

    formats = [fmt for fmt, enabled in (("html", html), ("junit", junit)) if enabled]
    if not formats:
        typer.echo("エラー: --html または --junit を指定してください", err=True)
        raise typer.Exit(code=1)

    try:
        test_report = load_report(report_json)
        writer = ReportWriter()
        target_dir = output_dir or report_json.parent
        for fmt in formats:
            if fmt == "html":
                path = writer.write_html(test_report, target_dir, report_json.stem)
            else:
                path = writer.write_junit_xml(test_report, target_dir, report_json.stem)
            typer.echo(f"{fmt.upper()} レポートを生成しました: {path}")
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    verdict = "PASSED" if test_report.passed else "FAILED"
    typer.echo(
        f"{test_report.name}: {verdict} "
        f"(成功 {test_report.success_count} / 失敗 {test_report.failure_count})"
    )


if __name__ == "__main__":
    app()
