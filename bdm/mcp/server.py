"""
bdm MCP Server — 診断付きブラウザ操作サーバー

FastMCP を使用して、AI エージェントがブラウザを操作し、
失敗時の診断情報とテストケース単位の合否レポートを得られる MCP サーバーを提供する。

ツール定義は以下のモジュールに分離:
  - tools_browser: セッション・遷移・ページ情報・スクリプト実行
  - tools_element: 要素操作（click, type_text, get_text, wait_for_element 等）
  - tools_testing: テストケース管理・商品検証

本モジュールはサーバー生成と共有コンテキストの構築を担当する。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from fastmcp import FastMCP

from ..core.artifacts import ArtifactsManager
from ..core.context import AutomationContext
from .config import ServerConfig, load_config_from_env
from .session import BrowserSession
from .tools_browser import register_browser_tools
from .tools_element import register_element_tools
from .tools_testing import register_testing_tools

logger = logging.getLogger(__name__)


def create_context(config: ServerConfig) -> AutomationContext:
    """サーバー設定から AutomationContext を生成する。"""
    return AutomationContext(
        artifacts=ArtifactsManager(base_dir=Path(config.artifacts_dir)),
        default_timeout_ms=config.default_timeout_ms,
        poll_interval_ms=config.poll_interval_ms,
    )


def create_server(
    config: Optional[ServerConfig] = None,
    context: Optional[AutomationContext] = None,
    session_factory: Callable[[], BrowserSession] = BrowserSession,
) -> FastMCP:
    """bdm MCP サーバーを生成する。

    Args:
        config: サーバー設定。None の場合は環境変数から読み込む。
        context: 共有コンテキスト。None の場合は config から生成する。
        session_factory: start_browser で使う BrowserSession の生成関数

    Returns:
        設定済みの FastMCP サーバーインスタンス
    """
    if config is None:
        config = load_config_from_env()
    if context is None:
        context = create_context(config)

    mcp = FastMCP("bdm-browser")

    register_browser_tools(mcp, context, config, session_factory)
    register_element_tools(mcp, context)
    register_testing_tools(mcp, context, config)

    logger.info("MCP サーバーを生成しました")
    return mcp

