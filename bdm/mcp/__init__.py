"""
bdm MCP Server パッケージ

AI エージェントがブラウザを操作し、失敗時の診断情報と
テストケースレポートを得られる MCP (Model Context Protocol) サーバーを提供する。

主な構成:
  - server: FastMCP サーバー本体
  - tools_browser: セッション・遷移・スクリプト実行ツール
  - tools_element: 要素操作ツール
  - tools_testing: テストケース管理・商品検証ツール
  - session: Playwright ブラウザセッション管理
  - config: 環境変数・CLI 引数からの設定読み込み
"""

from __future__ import annotations


def create_server(config=None):  # type: ignore[no-untyped-def]
    """bdm MCP サーバーを生成する（遅延インポート）。

    `python -m bdm.mcp.server` 実行時の RuntimeWarning を回避するため、
    server モジュールの import をここで遅延させる。

    Args:
        config: ServerConfig インスタンス（None で環境変数から読み込み）

    Returns:
        設定済みの FastMCP サーバーインスタンス
    """
    from .server import create_server as _create
    return _create(config=config)


__all__ = [
    "create_server",
]
