"""
Session — Playwright ブラウザセッション管理

start_browser ツールが生成し、AutomationContext に登録する
SessionHandle の Playwright 実装。

主な機能:
  - 起動: chrome / edge / firefox / webkit、ヘッドレス、ビューポート、User-Agent
  - 要素探索: Predicate の Playwright セレクタで query_selector
  - ページ操作: 遷移・スクリプト実行・テキスト収集・スクリーンショット
  - 終了: 例外が出ても Playwright を確実に停止する
"""

from __future__ import annotations

import enum
import logging
import uuid
from typing import TYPE_CHECKING, Any, Optional

from ..core.errors import SessionNotStartedError
from ..core.locator import Predicate

if TYPE_CHECKING:
    from playwright.async_api import Browser, ElementHandle, Page, Playwright

logger = logging.getLogger(__name__)

# ブラウザ種別 → (Playwright のブラウザタイプ名, channel)
BROWSER_TYPES: dict[str, tuple[str, Optional[str]]] = {
    "chrome": ("chromium", None),
    "edge": ("chromium", "msedge"),
    "firefox": ("firefox", None),
    "webkit": ("webkit", None),
}

# ページ上の可視テキストノードを文書順に列挙する
_PAGE_TEXT_SCRIPT = """() => {
  const skip = new Set(['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE']);
  const root = document.body || document.documentElement;
  if (!root) return [];
  const walker = document.createTreeWalker(root, NodeFilter.SHOW_TEXT);
  const texts = [];
  let node;
  while ((node = walker.nextNode())) {
    const parent = node.parentElement;
    if (parent && skip.has(parent.tagName)) continue;
    const text = (node.textContent || '').trim();
    if (text) texts.push(text);
  }
  return texts;
}"""

# `return ...` を含む関数本体を arguments 付きで実行する
_SCRIPT_WRAPPER = "(args) => (function() {{\n{body}\n}}).apply(null, args)"


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """BrowserSession のライフサイクル。

    IDLE → LAUNCHING → ACTIVE → CLOSING → CLOSED
    起動に失敗した場合は IDLE に戻る。
    """

    IDLE = "idle"
    LAUNCHING = "launching"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """1 つのブラウザ・1 つのページを持つセッション。

    Attributes:
        browser_kind: 起動したブラウザ種別（chrome / edge / firefox / webkit）
        viewport: (幅, 高さ)
    """

    def __init__(self) -> None:
        self._state = SessionState.IDLE
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None
        self._session_id = ""
        self.browser_kind: Optional[str] = None
        self.viewport: Optional[tuple[int, int]] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def page(self) -> Optional[Page]:
        """操作対象の Page。ACTIVE 以外では None。"""
        return self._page if self.is_active else None

    def _require_page(self) -> Page:
        if not self.is_active or self._page is None:
            raise SessionNotStartedError()
        return self._page

    # -------------------------------------------------------------------
    # ライフサイクル
    # -------------------------------------------------------------------

    async def launch(
        self,
        browser: str = "chrome",
        headless: bool = True,
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        user_agent: Optional[str] = None,
    ) -> None:
        """ブラウザを起動してページを 1 枚開く。

        Args:
            browser: chrome / edge / firefox / webkit
            headless: True でウィンドウを表示しない
            viewport_width: ページの幅（px）
            viewport_height: ページの高さ（px）
            user_agent: User-Agent の上書き

        Raises:
            RuntimeError: このインスタンスが起動済みの場合
            ValueError: 未対応のブラウザ種別の場合
        """
        if self.is_active:
            raise RuntimeError("このセッションは起動済みです。close() してから再起動してください。")
        if browser not in BROWSER_TYPES:
            raise ValueError(
                f"Unsupported browser: {browser!r} (use {', '.join(BROWSER_TYPES)})"
            )

        type_name, channel = BROWSER_TYPES[browser]
        launch_options: dict[str, Any] = {"headless": headless}
        if channel is not None:
            launch_options["channel"] = channel
        context_options: dict[str, Any] = {
            "viewport": {"width": viewport_width, "height": viewport_height},
        }
        if user_agent:
            context_options["user_agent"] = user_agent

        self._state = SessionState.LAUNCHING
        logger.info("%s を起動します（headless=%s）", browser, headless)
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            self._browser = await getattr(self._playwright, type_name).launch(**launch_options)
            context = await self._browser.new_context(**context_options)
            self._page = await context.new_page()
        except Exception:
            logger.exception("%s の起動に失敗しました", browser)
            await self._release()
            self._state = SessionState.IDLE
            raise

        self._session_id = uuid.uuid4().hex
        self.browser_kind = browser
        self.viewport = (viewport_width, viewport_height)
        self._state = SessionState.ACTIVE
        logger.info("セッションを開始しました: %s (%s)", self._session_id, browser)

    async def close(self) -> None:
        """ブラウザと Playwright を停止する。何度呼んでもよい。"""
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            return

        self._state = SessionState.CLOSING
        await self._release()
        self._state = SessionState.CLOSED
        logger.info("セッションを終了しました: %s", self._session_id or "(未起動)")

    async def _release(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        self._page = None
        try:
            if browser is not None:
                await browser.close()
        except Exception:
            logger.exception("ブラウザのクローズでエラーが発生しました")
        try:
            if playwright is not None:
                await playwright.stop()
        except Exception:
            logger.exception("Playwright の停止でエラーが発生しました")

    # -------------------------------------------------------------------
    # SessionHandle 実装
    # -------------------------------------------------------------------

    async def locate(self, predicate: Predicate) -> Optional[ElementHandle]:
        """Predicate に一致する最初の要素を返す。なければ None。"""
        return await self._require_page().query_selector(predicate.engine_selector)

    async def locate_all(self, predicate: Predicate) -> list[ElementHandle]:
        """Predicate に一致する全要素を返す。"""
        return await self._require_page().query_selector_all(predicate.engine_selector)

    async def execute_script(self, script: str, *args: Any) -> Any:
        """JavaScript の関数本体を実行し、return された値を返す。

        スクリプト内では arguments[0], arguments[1], ... で引数を参照できる。
        """
        page = self._require_page()
        return await page.evaluate(_SCRIPT_WRAPPER.format(body=script), list(args))

    async def page_text(self) -> list[str]:
        """ページ上の空でないテキストノードを文書順に返す。"""
        return await self._require_page().evaluate(_PAGE_TEXT_SCRIPT)

    async def screenshot(self, full_page: bool = False) -> bytes:
        return await self._require_page().screenshot(type="png", full_page=full_page)

    async def navigate(self, url: str) -> None:
        page = self._require_page()
        await page.goto(url)
        await page.wait_for_load_state("domcontentloaded")

    async def current_url(self) -> str:
        return self._require_page().url

    async def title(self) -> str:
        return await self._require_page().title()
