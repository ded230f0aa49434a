"""
ツール共通処理 — 失敗の記録とロケータ生成

各 MCP ツールは例外を外に出さず、"Error: ..." 形式の文字列を返す。
失敗は操作ログに記録する（要素未検出は要素解決側で記録済み）。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..core.context import AutomationContext, elapsed_ms
from ..core.errors import ElementNotFoundError
from ..core.locator import Locator

logger = logging.getLogger(__name__)

LOCATOR_METHODS = ("css", "xpath", "id", "className", "tagName")


def make_locator(selector: str, method: str) -> Locator:
    """ツール引数から Locator を生成する。

    Raises:
        ValueError: セレクタが空の場合
    """
    try:
        return Locator.of(selector, method)
    except ValidationError:
        raise ValueError("Selector cannot be empty") from None


async def record_failure(
    ctx: AutomationContext,
    action: str,
    start: float,
    exc: BaseException,
    *,
    locator: Optional[Locator] = None,
    **details: Any,
) -> str:
    """ツールの失敗を操作ログに記録し、エージェント向けのメッセージを返す。

    ElementNotFoundError は要素解決時に記録済みなので再記録しない。
    """
    if not isinstance(exc, ElementNotFoundError):
        logger.warning("%s に失敗しました: %s", action, exc)
        await ctx.log_action(
            action, False, elapsed_ms(start),
            locator=locator, error=str(exc), **details,
        )
    return f"Error: {exc}"
