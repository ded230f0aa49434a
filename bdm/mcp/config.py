"""
MCP サーバー設定

ServerConfig は次の順で組み立てる（後勝ち）:
  1. ServerConfig のデフォルト値
  2. BDM_* 環境変数（load_config_from_env）
  3. コマンドライン引数（apply_cli_args）

| 環境変数            | 項目               | 既定値    |
|---------------------|--------------------|-----------|
| BDM_BROWSER         | browser            | chrome    |
| BDM_HEADED          | headed             | false     |
| BDM_VIEWPORT_WIDTH  | viewport_width     | 1920      |
| BDM_VIEWPORT_HEIGHT | viewport_height    | 1080      |
| BDM_ARTIFACTS_DIR   | artifacts_dir      | artifacts |
| BDM_DEFAULT_TIMEOUT | default_timeout_ms | 10000     |
| BDM_POLL_INTERVAL   | poll_interval_ms   | 100       |
| BDM_REPORT_FORMATS  | report_formats     | json      |

不正な値は WARNING を出して無視する（起動は止めない）。
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..core.reporting import REPORT_FORMATS
from .session import BROWSER_TYPES

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """サーバー全体で共有する既定値。

    ツール呼び出しで個別に指定された値はこちらより優先される。
    """

    browser: str = "chrome"
    headed: bool = False
    viewport_width: int = 1920
    viewport_height: int = 1080
    artifacts_dir: str = "artifacts"
    default_timeout_ms: int = 10000
    poll_interval_ms: int = 100
    report_formats: list[str] = field(default_factory=lambda: ["json"])


# ---------------------------------------------------------------------------
# 値の解析
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes"}


def _parse_positive(value: str) -> Optional[int]:
    try:
        number = int(value)
    except ValueError:
        return None
    return number if number > 0 else None


def _parse_browser(value: str) -> Optional[str]:
    return value if value in BROWSER_TYPES else None


def parse_report_formats(value: str) -> Optional[list[str]]:
    """"json,html" のようなカンマ区切りを list にする。

    空、または未知の形式が 1 つでも含まれていれば None。
    """
    names = [part.strip() for part in value.split(",")]
    names = [n for n in names if n]
    if names and all(n in REPORT_FORMATS for n in names):
        return names
    return None


def parse_window_size(value: str) -> tuple[int, int]:
    """"1280x720" を (1280, 720) にする。大文字の X も受け付ける。

    Raises:
        ValueError: WIDTHxHEIGHT 形式でない、または 0 以下を含む場合
    """
    parts = str(value).lower().split("x")
    size = [_parse_positive(p) for p in parts] if len(parts) == 2 else []
    if len(size) != 2 or None in size:
        raise ValueError(f"Invalid window size: {value!r} (expected WIDTHxHEIGHT)")
    return size[0], size[1]


# ---------------------------------------------------------------------------
# 環境変数
# ---------------------------------------------------------------------------

# 環境変数名 → (ServerConfig の属性名, 変換関数)。変換関数が None を返したら不正値
_ENV_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "BDM_BROWSER": ("browser", _parse_browser),
    "BDM_HEADED": ("headed", _parse_bool),
    "BDM_VIEWPORT_WIDTH": ("viewport_width", _parse_positive),
    "BDM_VIEWPORT_HEIGHT": ("viewport_height", _parse_positive),
    "BDM_ARTIFACTS_DIR": ("artifacts_dir", str),
    "BDM_DEFAULT_TIMEOUT": ("default_timeout_ms", _parse_positive),
    "BDM_POLL_INTERVAL": ("poll_interval_ms", _parse_positive),
    "BDM_REPORT_FORMATS": ("report_formats", parse_report_formats),
}


def load_config_from_env() -> ServerConfig:
    """BDM_* 環境変数を読み込んだ ServerConfig を返す。"""
    config = ServerConfig()
    for key, (attr, convert) in _ENV_FIELDS.items():
        raw = os.environ.get(key)
        if raw is None:
            continue
        value = convert(raw)
        if value is None:
            logger.warning("環境変数 %s=%r は使えないため既定値を使います", key, raw)
            continue
        setattr(config, attr, value)

    logger.debug("環境変数から設定を構築: %s", config)
    return config


# ---------------------------------------------------------------------------
# ログ
# ---------------------------------------------------------------------------

def setup_logging(verbose: bool = False) -> None:
    """ルートロガーを stderr 出力で設定する。verbose なら DEBUG。"""
    # stdout は MCP の stdio トランスポートが使う
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


# ---------------------------------------------------------------------------
# コマンドライン引数
# ---------------------------------------------------------------------------

def build_cli_parser() -> argparse.ArgumentParser:
    """`python -m bdm.mcp` 用の引数パーサー。"""
    parser = argparse.ArgumentParser(
        prog="bdm-mcp",
        description="Browser automation MCP server that explains why elements were not found",
    )
    parser.add_argument("--browser", choices=sorted(BROWSER_TYPES),
                        help="browser used when start_browser omits one")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--headed", action="store_true", help="show the browser window")
    mode.add_argument("--headless", action="store_true", help="hide the browser window")
    parser.add_argument("--viewport", metavar="WIDTHxHEIGHT", help="default viewport size")
    parser.add_argument("--artifacts-dir", metavar="DIR",
                        help="where screenshots and reports are written")
    parser.add_argument("--timeout", type=int, metavar="MS",
                        help="default element wait timeout in milliseconds")
    parser.add_argument("--report-formats", metavar="LIST",
                        help="comma separated subset of json,html,junit")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable DEBUG logging")
    return parser


def apply_cli_args(config: ServerConfig, args: Any) -> ServerConfig:
    """指定された引数だけで config を上書きして返す。

    args は argparse.Namespace 互換であればよい（属性が無ければ未指定扱い）。
    """
    def given(name: str) -> Any:
        return getattr(args, name, None)

    if given("browser"):
        config.browser = given("browser")

    # 両方立っている場合はヘッドレスを優先する
    if given("headless"):
        config.headed = False
    elif given("headed"):
        config.headed = True

    if given("viewport") is not None:
        try:
            config.viewport_width, config.viewport_height = parse_window_size(given("viewport"))
        except ValueError as exc:
            logger.warning("--viewport を無視します: %s", exc)

    if given("artifacts_dir") is not None:
        config.artifacts_dir = given("artifacts_dir")

    timeout = given("timeout")
    if timeout is not None:
        if timeout > 0:
            config.default_timeout_ms = timeout
        else:
            logger.warning("--timeout=%s は 0 以下のため無視します", timeout)

    if given("report_formats") is not None:
        formats = parse_report_formats(given("report_formats"))
        if formats:
            config.report_formats = formats
        else:
            logger.warning("--report-formats=%r は使えないため無視します", given("report_formats"))

    return config
