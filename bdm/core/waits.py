"""
待機エンジン — 要素が条件を満たすまでのポーリング

Predicate をセッションに対して一定間隔で評価し、
待機条件（present / visible / clickable）を満たした時点で Found を、
タイムアウトに達した時点で TimedOut を返す。

主な機能:
  - wait_for_element: 単一の Predicate に対する待機
  - wait_for_any: 複数 Predicate を順に試すフォールバック待機

TimedOut の自動リトライは行わない。リトライ方針は呼び出し側で組み立てる。
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .errors import InvalidTimeoutError
from .locator import Predicate
from .session import ElementRef, SessionHandle

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 100


# ---------------------------------------------------------------------------
# 待機条件 / 結果
# ---------------------------------------------------------------------------

class WaitCondition(str, enum.Enum):
    """要素が到達すべき状態。"""

    PRESENT = "present"
    VISIBLE = "visible"
    CLICKABLE = "clickable"


@dataclass(frozen=True)
class Found:
    """条件を満たす要素が見つかった。

    Attributes:
        element: 要素参照（同一コマンド内でのみ有効）
        elapsed_ms: 待機開始からの経過時間
        index: wait_for_any で一致した Predicate の位置
    """

    element: ElementRef
    elapsed_ms: float
    index: int = 0


@dataclass(frozen=True)
class TimedOut:
    """タイムアウトまでに条件を満たす要素が見つからなかった。

    Attributes:
        elapsed_ms: 待機開始からの経過時間
        timeout_ms: 指定されたタイムアウト
        condition: 待機条件
        last_error: ポーリング中に最後に発生したエラー（あれば）
    """

    elapsed_ms: float
    timeout_ms: float
    condition: WaitCondition
    last_error: Optional[str] = None

    @property
    def message(self) -> str:
        """失敗理由の文字列。"""
        msg = (
            f"Waiting for element to be {self.condition.value} "
            f"timed out after {self.timeout_ms:.0f}ms"
        )
        if self.last_error:
            msg += f" (last error: {self.last_error})"
        return msg


WaitOutcome = Union[Found, TimedOut]


# ---------------------------------------------------------------------------
# 条件判定
# ---------------------------------------------------------------------------

async def _satisfies(element: ElementRef, condition: WaitCondition) -> bool:
    """要素が待機条件を満たすか判定する。"""
    if condition is WaitCondition.PRESENT:
        return True
    if not await element.is_visible():
        return False
    if condition is WaitCondition.VISIBLE:
        return True
    return await element.is_enabled()


def _validate_positive(name: str, value: float) -> None:
    if value is None or not math.isfinite(value) or value <= 0:
        raise InvalidTimeoutError(name, value)


# ---------------------------------------------------------------------------
# 待機
# ---------------------------------------------------------------------------

async def wait_for_element(
    session: SessionHandle,
    predicate: Predicate,
    condition: WaitCondition = WaitCondition.VISIBLE,
    timeout_ms: float = 10000,
    poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> WaitOutcome:
    """要素が待機条件を満たすまで待機する。

    ポーリング間隔ごとに session.locate() で要素を探し、条件を判定する。
    ポーリング中の一時的なエラーはログに残して継続する。

    Args:
        session: ブラウザセッション
        predicate: 検索条件
        condition: 待機条件
        timeout_ms: タイムアウト（ミリ秒）
        poll_interval_ms: ポーリング間隔（ミリ秒）

    Returns:
        Found または TimedOut

    Raises:
        InvalidTimeoutError: timeout_ms / poll_interval_ms が 0 以下の場合
    """
    _validate_positive("timeout", timeout_ms)
    _validate_positive("poll interval", poll_interval_ms)
    condition = WaitCondition(condition)

    start = time.perf_counter()
    deadline_sec = timeout_ms / 1000.0
    poll_sec = poll_interval_ms / 1000.0
    last_error: Optional[str] = None
    attempts = 0

    while True:
        attempts += 1
        try:
            element = await session.locate(predicate)
            if element is not None and await _satisfies(element, condition):
                elapsed = time.perf_counter() - start
                logger.debug(
                    "要素が %s になりました: %s（%.0fms, %d 回目）",
                    condition.value, predicate.engine_selector, elapsed * 1000, attempts,
                )
                return Found(element=element, elapsed_ms=elapsed * 1000)
        except Exception as exc:
            last_error = str(exc)
            logger.debug("要素の探索中にエラー: %s", exc)

        elapsed = time.perf_counter() - start
        if elapsed >= deadline_sec:
            logger.debug(
                "要素の待機がタイムアウトしました: %s（%d 回試行）",
                predicate.engine_selector, attempts,
            )
            return TimedOut(
                elapsed_ms=elapsed * 1000,
                timeout_ms=timeout_ms,
                condition=condition,
                last_error=last_error,
            )

        await asyncio.sleep(min(poll_sec, deadline_sec - elapsed))


async def wait_for_any(
    session: SessionHandle,
    predicates: Sequence[Predicate],
    condition: WaitCondition = WaitCondition.VISIBLE,
    timeout_ms: float = 10000,
    poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> WaitOutcome:
    """複数の Predicate を順に試し、最初に見つかった要素を返す。

    各 Predicate はそれぞれ timeout_ms まで待機する。

    Returns:
        一致した位置を index に持つ Found、または最後の TimedOut

    Raises:
        ValueError: predicates が空の場合
    """
    if not predicates:
        raise ValueError("predicates must not be empty")

    outcome: WaitOutcome | None = None
    for index, predicate in enumerate(predicates):
        outcome = await wait_for_element(
            session, predicate, condition, timeout_ms, poll_interval_ms,
        )
        if isinstance(outcome, Found):
            return Found(element=outcome.element, elapsed_ms=outcome.elapsed_ms, index=index)
        logger.info("候補 %d が見つかりません: %s", index + 1, predicate.engine_selector)

    assert outcome is not None
    return outcome
