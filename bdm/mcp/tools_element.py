"""
要素操作ツール — クリック・入力・テキスト取得・待機・要素一覧

ロケータ（selector + method）で要素を解決して操作する。
要素が見つからない場合は代替セレクタの提案とページ上のテキストを返す。

主なツール:
  - click / click_with_fallback: クリック
  - type_text: テキスト入力
  - get_text: テキスト取得
  - wait_for_element: 条件付き待機
  - scan_page_elements: ページ上の要素一覧
"""

from __future__ import annotations

import json
import logging
import time
from typing import Literal, Optional

from fastmcp import FastMCP

from ..core.context import AutomationContext, elapsed_ms
from ..core.locator import Locator
from ..core.resolver import resolve_element, resolve_first
from ..core.waits import WaitCondition
from .tool_support import make_locator, record_failure

logger = logging.getLogger(__name__)

LocatorMethod = Literal["css", "xpath", "id", "className", "tagName"]

SCAN_LIMIT = 50

_INTERACTIVE_SELECTOR = (
    'input, button, select, textarea, a[href], [onclick], [role="button"], [tabindex]'
)

# 要素ごとに tag / id / class / text / type と推奨セレクタを返す
_SCAN_SCRIPT = """
const [selector, limit] = [arguments[0], arguments[1]];
return Array.from(document.querySelectorAll(selector)).slice(0, limit).map(el => {
  const tag = el.tagName.toLowerCase();
  const id = el.getAttribute('id');
  const cls = (el.getAttribute('class') || '').trim();
  const text = (el.innerText || el.textContent || '').trim().substring(0, 50);
  return {
    tag: tag,
    id: id || null,
    class: cls || null,
    text: text || null,
    type: el.getAttribute('type') || null,
    selector: id ? '#' + id : (cls ? '.' + cls.split(/\\s+/)[0] : tag),
  };
});
"""


def register_element_tools(mcp: FastMCP, ctx: AutomationContext) -> None:
    """要素操作ツールを MCP サーバーに登録する。

    Args:
        mcp: FastMCP サーバーインスタンス
        ctx: 実行コンテキスト
    """

    # -------------------------------------------------------------------
    # 操作ツール
    # -------------------------------------------------------------------

    @mcp.tool
    async def click(
        selector: str,
        method: LocatorMethod = "css",
        timeout: Optional[int] = None,
    ) -> str:
        """Click an element.

        Args:
            selector: Element selector
            method: Locator strategy (css, xpath, id, className, tagName)
            timeout: Wait timeout in milliseconds. None uses server config.

        Returns:
            Status message, or failure explanation with suggestions
        """
        async with ctx.lock:
            start = time.perf_counter()
            locator: Optional[Locator] = None
            try:
                locator = make_locator(selector, method)
                result = await resolve_element(ctx, locator, WaitCondition.CLICKABLE, timeout)
                await result.unwrap().click()
            except Exception as exc:
                return await record_failure(ctx, "click", start, exc, locator=locator)

            await ctx.log_action("click", True, elapsed_ms(start), locator=locator)
            return f"Successfully clicked element with {method} selector: {selector}"

    @mcp.tool
    async def click_with_fallback(
        selectors: list[str],
        method: LocatorMethod = "css",
        timeout: Optional[int] = None,
    ) -> str:
        """Click the first element matched by a list of candidate selectors.

        Each candidate is waited on in order with the full timeout.

        Args:
            selectors: Candidate selectors, tried top to bottom
            method: Locator strategy for all candidates
            timeout: Wait timeout per candidate in milliseconds

        Returns:
            Status message naming the selector that matched
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                locators = [make_locator(s, method) for s in selectors]
                result = await resolve_first(ctx, locators, WaitCondition.CLICKABLE, timeout)
                await result.unwrap().click()
            except Exception as exc:
                return await record_failure(
                    ctx, "click_with_fallback", start, exc, selectors=list(selectors),
                )

            await ctx.log_action(
                "click_with_fallback", True, elapsed_ms(start), locator=result.locator,
            )
            return (
                f"Successfully clicked element with {method} selector: "
                f"{result.locator.selector}"
            )

    @mcp.tool
    async def type_text(
        selector: str,
        text: str,
        method: LocatorMethod = "css",
        timeout: Optional[int] = None,
        clear: bool = True,
    ) -> str:
        """Type text into an input element.

        Args:
            selector: Element selector
            text: Text to type
            method: Locator strategy
            timeout: Wait timeout in milliseconds
            clear: Clear the field before typing

        Returns:
            Status message
        """
        async with ctx.lock:
            start = time.perf_counter()
            locator: Optional[Locator] = None
            try:
                locator = make_locator(selector, method)
                result = await resolve_element(ctx, locator, WaitCondition.VISIBLE, timeout)
                element = result.unwrap()
                if clear:
                    await element.fill(text)
                else:
                    await element.type(text)
            except Exception as exc:
                return await record_failure(ctx, "type_text", start, exc, locator=locator)

            await ctx.log_action("type_text", True, elapsed_ms(start), locator=locator)
            return f'Successfully typed "{text}" into element with {method} selector: {selector}'

    @mcp.tool
    async def get_text(
        selector: str,
        method: LocatorMethod = "css",
        timeout: Optional[int] = None,
    ) -> str:
        """Get the visible text of an element.

        Args:
            selector: Element selector
            method: Locator strategy
            timeout: Wait timeout in milliseconds

        Returns:
            Text content
        """
        async with ctx.lock:
            start = time.perf_counter()
            locator: Optional[Locator] = None
            try:
                locator = make_locator(selector, method)
                result = await resolve_element(ctx, locator, WaitCondition.PRESENT, timeout)
                text = await result.unwrap().inner_text()
            except Exception as exc:
                return await record_failure(ctx, "get_text", start, exc, locator=locator)

            await ctx.log_action("get_text", True, elapsed_ms(start), locator=locator)
            return f"Text content: {text}"

    @mcp.tool
    async def wait_for_element(
        selector: str,
        method: LocatorMethod = "css",
        timeout: Optional[int] = None,
        condition: Literal["present", "visible", "clickable"] = "visible",
    ) -> str:
        """Wait for an element to be present, visible or clickable.

        Args:
            selector: Element selector
            method: Locator strategy
            timeout: Wait timeout in milliseconds
            condition: State to wait for

        Returns:
            Status message
        """
        async with ctx.lock:
            start = time.perf_counter()
            locator: Optional[Locator] = None
            try:
                locator = make_locator(selector, method)
                result = await resolve_element(ctx, locator, condition, timeout)
                result.unwrap()
            except Exception as exc:
                return await record_failure(
                    ctx, "wait_for_element", start, exc, locator=locator,
                )

            await ctx.log_action(
                "wait_for_element", True, elapsed_ms(start),
                locator=locator, condition=condition,
            )
            return f'Element with {method} selector "{selector}" is now {condition}'

    # -------------------------------------------------------------------
    # 要素一覧
    # -------------------------------------------------------------------

    @mcp.tool
    async def scan_page_elements(
        include_interactive_only: bool = True,
        output_format: Literal["json", "list"] = "list",
    ) -> str:
        """List elements on the current page with a suggested selector for each.

        Args:
            include_interactive_only: Only inputs, buttons, links and similar
            output_format: json or list

        Returns:
            Element list (first 50 elements)
        """
        async with ctx.lock:
            start = time.perf_counter()
            selector = _INTERACTIVE_SELECTOR if include_interactive_only else "*"
            try:
                elements = await ctx.require_session().execute_script(
                    _SCAN_SCRIPT, selector, SCAN_LIMIT,
                )
            except Exception as exc:
                return await record_failure(ctx, "scan_page_elements", start, exc)

            elements = list(elements or [])
            await ctx.log_action(
                "scan_page_elements", True, elapsed_ms(start), element_count=len(elements),
            )
            if output_format == "json":
                body = json.dumps(elements, ensure_ascii=False, indent=2)
            else:
                body = "\n".join(f"{el['tag']}: {el['selector']}" for el in elements)
            return f"Found {len(elements)} elements\n\n{body}"
