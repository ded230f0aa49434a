"""
AutomationContext — コア操作が共有する状態の入れ物

セッションハンドル（最大 1 つ）、ActionLogger、TestCaseReporter、
成果物の保存先、待機の既定値をまとめて保持する。
コア操作はグローバル変数ではなくこのコンテキストを受け取る。
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from .action_log import ActionLogEntry, ActionLogger
from .artifacts import ArtifactsManager
from .errors import SessionAlreadyActiveError, SessionNotStartedError
from .locator import Locator
from .reporting import TestCaseReporter
from .session import SessionHandle
from .waits import DEFAULT_POLL_INTERVAL_MS

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000


class AutomationContext:
    """ブラウザ自動操作の実行コンテキスト。

    Attributes:
        artifacts: スクリーンショット・レポートの保存先
        action_log: 操作ログ
        reporter: テストケースのライフサイクル管理
        default_timeout_ms: 要素待機の既定タイムアウト
        poll_interval_ms: 要素待機のポーリング間隔
        lock: コマンドを直列化するためのロック
    """

    def __init__(
        self,
        artifacts: Optional[ArtifactsManager] = None,
        default_timeout_ms: float = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    ) -> None:
        self._session: Optional[SessionHandle] = None
        self.artifacts = artifacts if artifacts is not None else ArtifactsManager()
        self.action_log = ActionLogger(
            sink=self.artifacts,
            session_provider=lambda: self._session,
        )
        self.reporter = TestCaseReporter(self.action_log)
        self.default_timeout_ms = default_timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.lock = asyncio.Lock()

    # -------------------------------------------------------------------
    # セッション
    # -------------------------------------------------------------------

    @property
    def session(self) -> Optional[SessionHandle]:
        """登録中のセッション。なければ None。"""
        return self._session

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def require_session(self) -> SessionHandle:
        """登録中のセッションを返す。

        Raises:
            SessionNotStartedError: セッションが登録されていない場合
        """
        if self._session is None:
            raise SessionNotStartedError()
        return self._session

    def attach(self, session: SessionHandle) -> None:
        """セッションを登録する。

        Raises:
            SessionAlreadyActiveError: 既に登録済みの場合
        """
        if self._session is not None:
            raise SessionAlreadyActiveError()
        self._session = session
        logger.info("セッションを登録しました: %s", session.session_id)

    def detach(self) -> Optional[SessionHandle]:
        """セッションの登録を解除して返す。"""
        session, self._session = self._session, None
        if session is not None:
            logger.info("セッションの登録を解除しました: %s", session.session_id)
        return session

    # -------------------------------------------------------------------
    # 操作ログ
    # -------------------------------------------------------------------

    async def log_action(
        self,
        action: str,
        success: bool,
        duration_ms: float,
        *,
        locator: Optional[Locator] = None,
        error: Optional[str] = None,
        suggestions: tuple[str, ...] | list[str] = (),
        **details: Any,
    ) -> ActionLogEntry:
        """ActionLogEntry を生成して記録する。"""
        entry = ActionLogEntry(
            action=action,
            locator=locator,
            success=success,
            duration_ms=max(duration_ms, 0.0),
            error=error,
            suggestions=tuple(suggestions),
            details=details,
        )
        return await self.action_log.record(entry)


def elapsed_ms(start: float) -> float:
    """time.perf_counter() の開始値からの経過ミリ秒。"""
    return (time.perf_counter() - start) * 1000
