"""
要素解決 — ロケータ解決・待機・診断・記録の組み立て

(ロケータ, 待機条件, タイムアウト) から要素を解決し、
見つからなければ診断情報付きの ElementNotFound を返す。
全ての試行は find_element として操作ログに記録される。

主な機能:
  - resolve_element(): 単一ロケータの解決
  - resolve_first(): 複数ロケータを順に試すフォールバック解決
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .context import AutomationContext, elapsed_ms
from .diagnostics import diagnose
from .errors import ElementNotFoundError, format_not_found_message
from .locator import Locator, resolve
from .session import ElementRef
from .waits import Found, WaitCondition, wait_for_any, wait_for_element

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 解決結果
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ElementFound:
    """要素が見つかった。"""

    element: ElementRef
    locator: Locator
    elapsed_ms: float

    found = True

    def unwrap(self) -> ElementRef:
        return self.element


@dataclass(frozen=True)
class ElementNotFound:
    """要素が見つからなかった。診断情報を保持する。"""

    locator: Locator
    error: str
    suggestions: tuple[str, ...] = ()
    available_text: tuple[str, ...] = ()
    elapsed_ms: float = 0.0

    found = False

    def explain(self) -> str:
        """人間向けの失敗説明。"""
        return format_not_found_message(self.error, self.suggestions, self.available_text)

    def unwrap(self) -> ElementRef:
        raise ElementNotFoundError(
            self.locator, self.error, self.suggestions, self.available_text,
        )


ElementResolutionResult = Union[ElementFound, ElementNotFound]


# ---------------------------------------------------------------------------
# パブリック API
# ---------------------------------------------------------------------------

async def resolve_element(
    ctx: AutomationContext,
    locator: Locator,
    condition: WaitCondition | str = WaitCondition.PRESENT,
    timeout_ms: Optional[float] = None,
) -> ElementResolutionResult:
    """ロケータから要素を解決する。

    Args:
        ctx: 実行コンテキスト
        locator: 対象要素のロケータ
        condition: 待機条件
        timeout_ms: タイムアウト（None でコンテキストの既定値）

    Returns:
        ElementFound または ElementNotFound

    Raises:
        SessionNotStartedError: セッションがない場合
        UnsupportedLocatorStrategyError: 未対応の戦略の場合（診断なし）
        InvalidTimeoutError: タイムアウトが 0 以下の場合
    """
    session = ctx.require_session()
    predicate = resolve(locator)
    timeout = ctx.default_timeout_ms if timeout_ms is None else timeout_ms

    start = time.perf_counter()
    outcome = await wait_for_element(
        session, predicate, WaitCondition(condition), timeout, ctx.poll_interval_ms,
    )

    if isinstance(outcome, Found):
        duration = elapsed_ms(start)
        await ctx.log_action("find_element", True, duration, locator=locator)
        return ElementFound(element=outcome.element, locator=locator, elapsed_ms=duration)

    diagnostics = await diagnose(locator, session)
    duration = elapsed_ms(start)
    logger.info("要素が見つかりません: %s（%s）", locator.describe(), outcome.message)
    await ctx.log_action(
        "find_element", False, duration,
        locator=locator,
        error=outcome.message,
        suggestions=diagnostics.suggestions,
    )
    return ElementNotFound(
        locator=locator,
        error=outcome.message,
        suggestions=diagnostics.suggestions,
        available_text=diagnostics.available_text,
        elapsed_ms=duration,
    )


async def resolve_first(
    ctx: AutomationContext,
    locators: Sequence[Locator],
    condition: WaitCondition | str = WaitCondition.CLICKABLE,
    timeout_ms: Optional[float] = None,
) -> ElementResolutionResult:
    """複数のロケータを順に試し、最初に解決できた要素を返す。

    全て失敗した場合は先頭のロケータについて診断する。

    Raises:
        ValueError: locators が空の場合
        SessionNotStartedError / UnsupportedLocatorStrategyError / InvalidTimeoutError
    """
    if not locators:
        raise ValueError("at least one locator is required")

    session = ctx.require_session()
    # 戦略の検証は待機より先に全候補について行う
    predicates = [resolve(loc) for loc in locators]
    timeout = ctx.default_timeout_ms if timeout_ms is None else timeout_ms

    start = time.perf_counter()
    outcome = await wait_for_any(
        session, predicates, WaitCondition(condition), timeout, ctx.poll_interval_ms,
    )

    if isinstance(outcome, Found):
        locator = locators[outcome.index]
        duration = elapsed_ms(start)
        await ctx.log_action(
            "find_element", True, duration,
            locator=locator, attempts=outcome.index + 1,
        )
        return ElementFound(element=outcome.element, locator=locator, elapsed_ms=duration)

    primary = locators[0]
    diagnostics = await diagnose(primary, session)
    error = f"None of {len(locators)} locators matched. {outcome.message}"
    duration = elapsed_ms(start)
    await ctx.log_action(
        "find_element", False, duration,
        locator=primary,
        error=error,
        suggestions=diagnostics.suggestions,
        attempts=len(locators),
    )
    return ElementNotFound(
        locator=primary,
        error=error,
        suggestions=diagnostics.suggestions,
        available_text=diagnostics.available_text,
        elapsed_ms=duration,
    )
