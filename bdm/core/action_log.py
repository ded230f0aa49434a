"""
ActionLogger — 実行した操作の追記専用ログ

ツール呼び出しごとに ActionLogEntry を記録する。
失敗した操作の記録時には、セッションがあればスクリーンショットを撮って
エントリに添付する（ベストエフォート）。

主な機能:
  - ActionLogEntry: 1 操作の不変な記録
  - ActionLogger.record(): 追記（失敗時スクリーンショット付き）
  - ActionLogger.snapshot(): 記録済みエントリの読み取り専用コピー
  - ActionLogger.reset(): 新しいテストケース開始時のクリア
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from .artifacts import ScreenshotSink
from .locator import Locator
from .session import SessionHandle

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ログエントリ
# ---------------------------------------------------------------------------

class ActionLogEntry(BaseModel):
    """1 操作の実行記録。記録後は変更しない。"""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow, description="記録時刻（UTC）")
    action: str = Field(..., description="操作種別（click, navigate 等）")
    locator: Optional[Locator] = Field(default=None, description="対象要素のロケータ")
    success: bool = Field(..., description="成功したか")
    duration_ms: float = Field(default=0.0, ge=0, description="所要時間（ミリ秒）")
    screenshot_path: Optional[str] = Field(default=None, description="失敗時スクリーンショット")
    error: Optional[str] = Field(default=None, description="エラーメッセージ")
    suggestions: tuple[str, ...] = Field(default=(), description="代替セレクタの提案")
    details: dict[str, Any] = Field(default_factory=dict, description="補足情報")


# ---------------------------------------------------------------------------
# ActionLogger 本体
# ---------------------------------------------------------------------------

class ActionLogger:
    """ActionLogEntry の追記専用シーケンス。

    Args:
        sink: 失敗時スクリーンショットの保存先
        session_provider: 現在のセッションを返す関数（なければ None を返す）
    """

    def __init__(
        self,
        sink: Optional[ScreenshotSink] = None,
        session_provider: Optional[Callable[[], Optional[SessionHandle]]] = None,
    ) -> None:
        self._entries: list[ActionLogEntry] = []
        self._sink = sink
        self._session_provider = session_provider

    def __len__(self) -> int:
        return len(self._entries)

    async def record(self, entry: ActionLogEntry) -> ActionLogEntry:
        """エントリを追記する。

        失敗エントリでセッションがある場合は、追記前にスクリーンショットを撮り
        パスを添付する。撮影に失敗してもエントリはそのまま追記し、例外は送出しない。

        Args:
            entry: 追記するエントリ

        Returns:
            追記されたエントリのコピー（スクリーンショットパス付きの場合あり）
        """
        if not entry.success and entry.screenshot_path is None:
            path = await self._capture_failure_screenshot(entry.action)
            if path is not None:
                entry = entry.model_copy(update={"screenshot_path": path})

        stored = entry.model_copy(deep=True)
        self._entries.append(stored)
        logger.debug(
            "操作を記録しました: %s success=%s (%.0fms)",
            stored.action, stored.success, stored.duration_ms,
        )
        return stored.model_copy(deep=True)

    def snapshot(self) -> tuple[ActionLogEntry, ...]:
        """記録済みエントリを記録順で返す。

        details の dict は frozen でも書き換えられるため、毎回 deep copy を渡す。
        """
        return tuple(entry.model_copy(deep=True) for entry in self._entries)

    def reset(self) -> None:
        """全エントリを破棄する。"""
        self._entries.clear()

    # -------------------------------------------------------------------
    # 内部ヘルパー
    # -------------------------------------------------------------------

    async def _capture_failure_screenshot(self, action: str) -> Optional[str]:
        if self._sink is None or self._session_provider is None:
            return None
        session = self._session_provider()
        if session is None:
            return None

        try:
            data = await session.screenshot()
            path = self._sink.save_screenshot(data, label=f"failure-{action}")
            return str(path)
        except Exception as exc:
            logger.warning("失敗時スクリーンショットの保存に失敗しました: %s", exc)
            return None
