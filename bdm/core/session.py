"""
セッションハンドル — コアが利用するブラウザ操作の境界

コアはブラウザを起動・終了しない。外部で起動されたセッションを
SessionHandle プロトコル越しに利用するだけである。
Playwright 実装は bdm.mcp.session.BrowserSession にある。
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from .locator import Predicate


@runtime_checkable
class ElementRef(Protocol):
    """解決済み要素への参照。

    Playwright の ElementHandle はこのプロトコルを満たす。
    ページ遷移や再描画の後は無効になり得るため、コマンドをまたいで保持しない。
    """

    async def is_visible(self) -> bool: ...

    async def is_enabled(self) -> bool: ...

    async def click(self, **kwargs: Any) -> None: ...

    async def fill(self, value: str, **kwargs: Any) -> None: ...

    async def type(self, text: str, **kwargs: Any) -> None: ...

    async def inner_text(self, **kwargs: Any) -> str: ...

    async def get_attribute(self, name: str, **kwargs: Any) -> Optional[str]: ...


@runtime_checkable
class SessionHandle(Protocol):
    """リモートブラウザセッションの操作インターフェース。"""

    @property
    def session_id(self) -> str: ...

    async def locate(self, predicate: Predicate) -> Optional[ElementRef]: ...

    async def locate_all(self, predicate: Predicate) -> list[ElementRef]: ...

    async def execute_script(self, script: str, *args: Any) -> Any: ...

    async def page_text(self) -> list[str]: ...

    async def screenshot(self, full_page: bool = False) -> bytes: ...

    async def navigate(self, url: str) -> None: ...

    async def current_url(self) -> str: ...

    async def title(self) -> str: ...
