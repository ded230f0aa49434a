"""
テスト共通フィクスチャ・テストダブル定義

実際のブラウザは起動せず、SessionHandle を満たすインメモリの
FakeSession / FakeElement で要素探索やスクリーンショットを再現する。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from hypothesis import strategies as st

from bdm.core.artifacts import ArtifactsManager
from bdm.core.context import AutomationContext
from bdm.core.locator import Locator, Predicate


# ---------------------------------------------------------------------------
# テストダブル
# ---------------------------------------------------------------------------

class FakeElement:
    """ElementRef を満たす要素のテストダブル。"""

    def __init__(
        self,
        text: str = "",
        *,
        visible: bool = True,
        enabled: bool = True,
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        self.text = text
        self.visible = visible
        self.enabled = enabled
        self.attributes = attributes or {}
        self.clicks = 0
        self.value = ""

    async def is_visible(self) -> bool:
        return self.visible

    async def is_enabled(self) -> bool:
        return self.enabled

    async def click(self, **kwargs: Any) -> None:
        self.clicks += 1

    async def fill(self, value: str, **kwargs: Any) -> None:
        self.value = value

    async def type(self, text: str, **kwargs: Any) -> None:
        self.value += text

    async def inner_text(self, **kwargs: Any) -> str:
        return self.text

    async def get_attribute(self, name: str, **kwargs: Any) -> Optional[str]:
        return self.attributes.get(name)


class FakeSession:
    """SessionHandle を満たすブラウザセッションのテストダブル。

    elements は Playwright セレクタ文字列（engine_selector）をキーに持つ。
    appear_after で「N 回目の locate から見つかる」要素を表現できる。
    """

    def __init__(
        self,
        elements: Optional[dict[str, FakeElement]] = None,
        page_texts: Optional[list[str]] = None,
    ) -> None:
        self.elements: dict[str, FakeElement] = dict(elements or {})
        self.page_texts: list[str] = list(page_texts or [])
        self.appear_after: dict[str, int] = {}
        self.locate_calls: dict[str, int] = {}
        self.locate_error: Optional[Exception] = None
        self.page_text_error: Optional[Exception] = None
        self.page_text_calls = 0
        self.screenshot_bytes = b"\x89PNG fake"
        self.screenshot_error: Optional[Exception] = None
        self.script_handler: Optional[Callable[..., Any]] = None
        self.scripts: list[tuple[str, tuple[Any, ...]]] = []
        self.url = "about:blank"
        self.page_title = ""
        self.launched_with: Optional[dict[str, Any]] = None
        self.closed = False

    # ----- ライフサイクル（BrowserSession 互換） -----

    @property
    def session_id(self) -> str:
        return "fake-session"

    async def launch(self, **kwargs: Any) -> None:
        self.launched_with = kwargs

    async def close(self) -> None:
        self.closed = True

    # ----- SessionHandle -----

    async def locate(self, predicate: Predicate) -> Optional[FakeElement]:
        key = predicate.engine_selector
        self.locate_calls[key] = self.locate_calls.get(key, 0) + 1
        if self.locate_error is not None:
            raise self.locate_error
        if self.locate_calls[key] < self.appear_after.get(key, 0):
            return None
        return self.elements.get(key)

    async def locate_all(self, predicate: Predicate) -> list[FakeElement]:
        element = await self.locate(predicate)
        return [element] if element is not None else []

    async def execute_script(self, script: str, *args: Any) -> Any:
        self.scripts.append((script, args))
        if self.script_handler is not None:
            return self.script_handler(script, *args)
        return None

    async def page_text(self) -> list[str]:
        self.page_text_calls += 1
        if self.page_text_error is not None:
            raise self.page_text_error
        return list(self.page_texts)

    async def screenshot(self, full_page: bool = False) -> bytes:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        return self.screenshot_bytes

    async def navigate(self, url: str) -> None:
        self.url = url

    async def current_url(self) -> str:
        return self.url

    async def title(self) -> str:
        return self.page_title


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_session() -> FakeSession:
    """空のページを表す FakeSession。"""
    return FakeSession()


@pytest.fixture
def artifacts(tmp_path: Path) -> ArtifactsManager:
    """tmp_path 配下に成果物を保存する ArtifactsManager。"""
    return ArtifactsManager(base_dir=tmp_path / "artifacts")


@pytest.fixture
def ctx(artifacts: ArtifactsManager) -> AutomationContext:
    """短いタイムアウト・ポーリング間隔のコンテキスト（セッション未登録）。"""
    return AutomationContext(
        artifacts=artifacts, default_timeout_ms=200, poll_interval_ms=20,
    )


@pytest.fixture
def active_ctx(ctx: AutomationContext, fake_session: FakeSession) -> AutomationContext:
    """FakeSession を登録済みのコンテキスト。"""
    ctx.attach(fake_session)
    return ctx


# ---------------------------------------------------------------------------
# Hypothesis ストラテジー
# ---------------------------------------------------------------------------

SUPPORTED_STRATEGIES = ["css", "xpath", "id", "className", "tagName"]


def make_selector_strategy():
    """空でないセレクタ文字列を生成する Hypothesis ストラテジー。"""
    return st.text(
        alphabet=st.characters(blacklist_categories=("Cs",)),
        min_size=1,
        max_size=60,
    ).filter(lambda s: s.strip() != "")


def make_locator_strategy():
    """対応戦略の Locator を生成する Hypothesis ストラテジー。"""
    return st.builds(
        Locator,
        strategy=st.sampled_from(SUPPORTED_STRATEGIES),
        selector=make_selector_strategy(),
    )
