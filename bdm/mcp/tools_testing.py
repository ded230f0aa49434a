"""
テスト支援ツール — テストケース管理・商品表示の検証

主なツール:
  - start_test_case / end_test_case: テストケースの開始と合否レポート生成
  - verify_product_presence: 商品名の表示確認（完全一致 / 部分一致）
  - get_all_products: ページ上の商品名一覧
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastmcp import FastMCP

from ..core.context import AutomationContext, elapsed_ms
from ..core.diagnostics import xpath_literal
from ..core.errors import BdmError
from ..core.locator import Locator, LocatorStrategy
from ..core.reporting import ReportWriter, render_summary
from ..core.resolver import resolve_element
from ..core.waits import WaitCondition
from .config import ServerConfig
from .tool_support import record_failure

logger = logging.getLogger(__name__)

# 商品名の候補セレクタ（最初に結果が得られたものを採用する）
PRODUCT_NAME_SELECTORS = (
    ".inventory_item_name",
    ".inventory_list .inventory_item_label a div",
    '[data-test*="item-name"]',
    ".product-name",
    ".item-name",
)

_PRODUCTS_SCRIPT = """
const selectors = arguments[0];
for (const selector of selectors) {
  const names = Array.from(document.querySelectorAll(selector))
    .map(el => (el.textContent || '').trim())
    .filter(text => text.length > 0);
  if (names.length > 0) return [...new Set(names)];
}
return [];
"""


def product_xpath(product_name: str, exact_match: bool) -> str:
    """商品名を検索する XPath を生成する。

    完全一致は前後の空白を除いたテキストの一致のみ、部分一致は contains() を使う。
    """
    literal = xpath_literal(product_name)
    if exact_match:
        return f"//*[normalize-space(text())={literal}]"
    return f"//*[contains(text(), {literal})]"


def register_testing_tools(
    mcp: FastMCP,
    ctx: AutomationContext,
    config: ServerConfig,
    writer: Optional[ReportWriter] = None,
) -> None:
    """テスト支援ツールを MCP サーバーに登録する。

    Args:
        mcp: FastMCP サーバーインスタンス
        ctx: 実行コンテキスト
        config: サーバー設定（レポート形式）
        writer: レポート出力（None で ReportWriter を使用）
    """
    report_writer = writer or ReportWriter()

    async def _list_products() -> list[str]:
        session = ctx.require_session()
        products = await session.execute_script(_PRODUCTS_SCRIPT, list(PRODUCT_NAME_SELECTORS))
        return [str(p) for p in (products or [])]

    # -------------------------------------------------------------------
    # テストケース管理
    # -------------------------------------------------------------------

    @mcp.tool
    async def start_test_case(test_name: str, description: Optional[str] = None) -> str:
        """Start a new test case. Clears the action log.

        Args:
            test_name: Name of the test case
            description: Description of the test case

        Returns:
            Status message
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                ctx.reporter.start(test_name, description)
            except (BdmError, ValueError) as exc:
                return f"Error: {exc}"

            await ctx.log_action(
                "start_test_case", True, elapsed_ms(start),
                test_name=test_name, description=description,
            )
            message = f'Started test case: "{test_name}"'
            if description:
                message += f"\nDescription: {description}"
            return message

    @mcp.tool
    async def end_test_case() -> str:
        """End the current test case and write its report.

        Returns:
            Pass/fail summary with report paths
        """
        async with ctx.lock:
            try:
                report = ctx.reporter.end()
            except BdmError as exc:
                return f"Error: {exc}"

            try:
                paths = report_writer.write(
                    report, ctx.artifacts.report_dir, config.report_formats,
                )
            except Exception as exc:
                logger.exception("レポートの書き出しに失敗しました")
                return render_summary(report) + f"\nReport could not be saved: {exc}"

            return render_summary(report, paths)

    # -------------------------------------------------------------------
    # 商品検証
    # -------------------------------------------------------------------

    @mcp.tool
    async def verify_product_presence(
        product_name: str,
        exact_match: bool = True,
        timeout: Optional[int] = None,
    ) -> str:
        """Verify that a product name is shown on the page.

        Args:
            product_name: Product name to look for
            exact_match: Match the whole text (ignoring surrounding whitespace)
                instead of a substring
            timeout: Wait timeout in milliseconds

        Returns:
            Verification result with the actual text, or available products
        """
        async with ctx.lock:
            start = time.perf_counter()
            details = {"product_name": product_name, "exact_match": exact_match}
            try:
                if not product_name.strip():
                    raise ValueError("Product name cannot be empty")
                locator = Locator.of(
                    product_xpath(product_name, exact_match), LocatorStrategy.XPATH,
                )
                result = await resolve_element(ctx, locator, WaitCondition.PRESENT, timeout)
                if result.found:
                    actual_text = (await result.unwrap().inner_text()).strip()
                else:
                    products = await _list_products()
            except Exception as exc:
                return await record_failure(
                    ctx, "verify_product_presence", start, exc, **details,
                )

            if result.found:
                await ctx.log_action(
                    "verify_product_presence", True, elapsed_ms(start),
                    locator=locator, actual_text=actual_text, **details,
                )
                return (
                    f'Product "{product_name}" found successfully!\n'
                    f'Actual text: "{actual_text}"'
                )

            lines = [f'Product "{product_name}" not found.']
            lines.append(f"Available products: {', '.join(products) or '(none)'}")
            if result.suggestions:
                lines.append(f"Suggestions: {'; '.join(result.suggestions)}")
            message = "\n".join(lines)
            await ctx.log_action(
                "verify_product_presence", False, elapsed_ms(start),
                locator=locator,
                error=message,
                suggestions=result.suggestions,
                available_products=products,
                **details,
            )
            return f"Error: {message}"

    @mcp.tool
    async def get_all_products() -> str:
        """List product names shown on the current page.

        Returns:
            Numbered product list
        """
        async with ctx.lock:
            start = time.perf_counter()
            try:
                products = await _list_products()
            except Exception as exc:
                return await record_failure(ctx, "get_all_products", start, exc)

            await ctx.log_action(
                "get_all_products", True, elapsed_ms(start), product_count=len(products),
            )
            listing = "\n".join(f"{i}. {p}" for i, p in enumerate(products, start=1))
            return f"Found {len(products)} products:\n{listing}"
