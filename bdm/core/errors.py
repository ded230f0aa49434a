"""
エラー定義 — bdm コアの例外階層

要素解決・待機・テストケース管理で送出される例外を定義する。
全ての例外は BdmError を基底とし、MCP ツール層でまとめて捕捉できる。

主な例外:
  - SessionNotStartedError: アクティブなセッションがない
  - UnsupportedLocatorStrategyError: 未対応のロケータ戦略
  - InvalidTimeoutError: 0 以下のタイムアウト
  - ElementNotFoundError: タイムアウトまでに要素が見つからない
  - TestCaseAlreadyActiveError / NoActiveTestCaseError: テストケースのライフサイクル違反
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .locator import Locator


class BdmError(Exception):
    """bdm の全例外の基底クラス。"""


class SessionNotStartedError(BdmError):
    """ブラウザセッションが開始されていない状態で操作が要求された。"""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message or "Browser not started. Please start the browser first."
        )


class SessionAlreadyActiveError(BdmError):
    """既にアクティブなセッションがある状態で新しいセッションが登録された。"""

    def __init__(self) -> None:
        super().__init__(
            "A browser session is already active. Close it before starting another."
        )


class UnsupportedLocatorStrategyError(BdmError, ValueError):
    """ロケータ戦略が css / xpath / id / className / tagName 以外。"""

    def __init__(self, strategy: object) -> None:
        self.strategy = strategy
        super().__init__(
            f"Unsupported locator strategy: {strategy!r}. "
            "Use one of: css, xpath, id, className, tagName."
        )


class InvalidTimeoutError(BdmError, ValueError):
    """タイムアウト（またはポーリング間隔）が 0 以下、または有限の数値でない。"""

    def __init__(self, name: str, value: float) -> None:
        self.value = value
        super().__init__(f"{name} must be a positive number of milliseconds, got {value}")


class ElementNotFoundError(BdmError):
    """要素解決がタイムアウトした。

    失敗理由に加えて、代替セレクタの提案とページ上のテキストを保持する。
    """

    def __init__(
        self,
        locator: Locator,
        error: str,
        suggestions: Sequence[str] = (),
        available_text: Sequence[str] = (),
    ) -> None:
        self.locator = locator
        self.error = error
        self.suggestions = tuple(suggestions)
        self.available_text = tuple(available_text)
        super().__init__(
            format_not_found_message(error, self.suggestions, self.available_text)
        )


class TestCaseAlreadyActiveError(BdmError):
    """テストケース実行中に start が呼ばれた。"""

    __test__ = False

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Test case '{name}' is already active. End it before starting another."
        )


class NoActiveTestCaseError(BdmError):
    """テストケースが開始されていない状態で end が呼ばれた。"""

    def __init__(self) -> None:
        super().__init__("No active test case. Please start a test case first.")


def format_not_found_message(
    error: str,
    suggestions: Sequence[str],
    available_text: Sequence[str],
    text_limit: int = 5,
) -> str:
    """要素未検出時の人間向けメッセージを組み立てる。

    空の項目は行ごと省略する。

    Args:
        error: 待機エンジンが返した失敗理由
        suggestions: 代替セレクタの提案
        available_text: ページ上のテキストのサンプル
        text_limit: メッセージに含めるテキストの最大件数

    Returns:
        複数行のメッセージ
    """
    lines = [f"Failed to find element: {error}"]
    if suggestions:
        lines.append(f"Suggestions: {'; '.join(suggestions)}")
    if available_text:
        lines.append(f"Available text: {', '.join(available_text[:text_limit])}")
    return "\n".join(lines)
