"""
bdm — Browser Diagnostics MCP

ブラウザ操作（遷移・要素探索・クリック・入力・待機・スクリーンショット・
スクリプト実行）を MCP ツールとして公開し、失敗時の診断情報と
テストケース単位の合否レポートを提供する。
"""

__version__ = "0.1.0"
