"""
ブラウザ操作ツール — セッション開始・終了・遷移・ページ情報・スクリプト実行

MCP サーバーに登録するブラウザ単位の操作ツールを定義する。

主なツール:
  - start_browser / close_browser: セッションのライフサイクル
  - navigate: URL への遷移
  - get_page_title / get_current_url: ページ情報
  - take_screenshot: スクリーンショット
  - execute_script: JavaScript 実行
"""

from __future__ import annotations

import base64
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from fastmcp import FastMCP

from ..core.context import AutomationContext, elapsed_ms
from .config import ServerConfig, parse_window_size
from .session import BrowserSession
from .tool_support import record_failure

logger = logging.getLogger(__name__)


def register_browser_tools(
    mcp: FastMCP,
    ctx: AutomationContext,
    config: ServerConfig,
    session_factory: Callable[[], BrowserSession] = BrowserSession,
) -> None:
    """ブラウザ操作ツールを MCP サーバーに登録する。

    Args:
        mcp: FastMCP サーバーインスタンス
        ctx: 実行コンテキスト
        config: サーバー設定（ブラウザの既定値）
        session_factory: BrowserSession の生成関数
    """

    # -------------------------------------------------------------------
    # ライフサイクル
    # -------------------------------------------------------------------

    @mcp.tool
    async def start_browser(
        browser: Optional[str] = None,
        headless: Optional[bool] = None,
        window_size: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """Start a new browser session. An existing session is closed first.

        Args:
            browser: chrome, edge, firefox or webkit. None uses server config.
            headless: Run browser without a window. None uses server config.
            window_size: Viewport as WIDTHxHEIGHT (e.g. 1920x1080)
            user_agent: Custom user agent string

        Returns:
            Status message
        """
        async with ctx.lock:
            start = time.perf_counter()
            effective_browser = browser or config.browser
            effective_headless = headless if headless is not None else not config.headed
            try:
                if window_size:
                    width, height = parse_window_size(window_size)
                else:
                    width, height = config.viewport_width, config.viewport_height

                previous = ctx.detach()
                if previous is not None:
                    logger.info("既存のセッションを終了して再起動します")
                    await previous.close()

                session = session_factory()
                await session.launch(
                    browser=effective_browser,
                    headless=effective_headless,
                    viewport_width=width,
                    viewport_height=height,
                    user_agent=user_agent,
                )
                ctx.attach(session)
            except Exception as exc:
                return await record_failure(
                    ctx, "start_browser", start, exc, browser=effective_browser,
                )

            await ctx.log_action(
                "start_browser", True, elapsed_ms(start),
                browser=effective_browser, window_size=f"{width}x{height}",
            )
            return (
                f"Successfully started {effective_browser} browser "
                f"with window size {width}x{height}"
            )

    @mcp.tool
    async def close_browser() -> str:
        """Close the browser session.

        Returns:
            Status message
        """
        async with ctx.lock:
            session = ctx.detach()
            if session is None:
                return "Error: No browser session to close."
            await session.close()
            return "Browser session closed successfully"

    # -------------------------------------------------------------------
    # ナビゲーション / ページ情報
    # -------------------------------------------------------------------

    @mcp.tool
    async def navigate(url: str) -> str:
        """Navigate to a URL.

        Args:
            url: The URL to navigate to

        Returns:
            Status message
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                await ctx.require_session().navigate(url)
            except Exception as exc:
                return await record_failure(ctx, "navigate", start, exc, url=url)

            await ctx.log_action("navigate", True, elapsed_ms(start), url=url)
            return f"Successfully navigated to {url}"

    @mcp.tool
    async def get_page_title() -> str:
        """Get the current page title.

        Returns:
            Page title
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                title = await ctx.require_session().title()
            except Exception as exc:
                return await record_failure(ctx, "get_page_title", start, exc)

            await ctx.log_action("get_page_title", True, elapsed_ms(start), title=title)
            return f"Page title: {title}"

    @mcp.tool
    async def get_current_url() -> str:
        """Get the current page URL.

        Returns:
            Current URL
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                url = await ctx.require_session().current_url()
            except Exception as exc:
                return await record_failure(ctx, "get_current_url", start, exc)

            await ctx.log_action("get_current_url", True, elapsed_ms(start), url=url)
            return f"Current URL: {url}"

    # -------------------------------------------------------------------
    # スクリーンショット / スクリプト
    # -------------------------------------------------------------------

    @mcp.tool
    async def take_screenshot(path: Optional[str] = None, full_page: bool = False) -> str:
        """Take a screenshot of the current page.

        Args:
            path: File path to save the PNG. None returns base64 data.
            full_page: Capture the full scrollable page

        Returns:
            Saved path or base64 encoded PNG
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                data = await ctx.require_session().screenshot(full_page=full_page)
                if path:
                    target = Path(path)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(data)
            except Exception as exc:
                return await record_failure(ctx, "take_screenshot", start, exc, path=path)

            await ctx.log_action("take_screenshot", True, elapsed_ms(start), path=path)
            if path:
                return f"Screenshot saved to {path}"
            b64 = base64.b64encode(data).decode("ascii")
            return f"data:image/png;base64,{b64}"

    @mcp.tool
    async def execute_script(script: str, args: Optional[list[Any]] = None) -> str:
        """Execute JavaScript in the page.

        The script is a function body; use `return` to send back a value and
        arguments[0], arguments[1], ... to read args.

        Args:
            script: JavaScript function body
            args: Arguments passed to the script

        Returns:
            JSON encoded result
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                if not script.strip():
                    raise ValueError("Script cannot be empty")
                result = await ctx.require_session().execute_script(script, *(args or []))
            except Exception as exc:
                return await record_failure(ctx, "execute_script", start, exc)

            await ctx.log_action("execute_script", True, elapsed_ms(start))
            return (
                "Script executed successfully. Result: "
                f"{json.dumps(result, ensure_ascii=False, default=str)}"
            )
