"""
ロケータ解決 — (戦略, セレクタ) から Playwright セレクタへの変換

MCP ツールが受け取るロケータ（css / xpath / id / className / tagName）を
Playwright のセレクタエンジン文字列に変換する。

主な機能:
  - LocatorStrategy: 対応するロケータ戦略の列挙
  - Locator: 不変のロケータ値（pydantic モデル）
  - resolve(): Locator → Predicate 変換（純粋関数）

未対応の戦略はここで UnsupportedLocatorStrategyError とし、
ブラウザへの問い合わせやエラー診断は行わない。
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnsupportedLocatorStrategyError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ロケータ戦略
# ---------------------------------------------------------------------------

class LocatorStrategy(str, enum.Enum):
    """要素の特定方式。"""

    CSS = "css"
    XPATH = "xpath"
    ID = "id"
    CLASS_NAME = "className"
    TAG_NAME = "tagName"


# ---------------------------------------------------------------------------
# ロケータ / 述語
# ---------------------------------------------------------------------------

class Locator(BaseModel):
    """(戦略, セレクタ) の組。

    strategy は受け取った文字列のまま保持する。
    未知の戦略は resolve() で検出する。
    """

    model_config = ConfigDict(frozen=True)

    strategy: str = Field(default=LocatorStrategy.CSS.value, description="ロケータ戦略")
    selector: str = Field(..., min_length=1, description="セレクタ文字列")

    @classmethod
    def of(cls, selector: str, strategy: str | LocatorStrategy = "css") -> Locator:
        """セレクタと戦略から Locator を生成する。"""
        if isinstance(strategy, LocatorStrategy):
            strategy = strategy.value
        return cls(strategy=strategy, selector=selector)

    def describe(self) -> str:
        """ログ・メッセージ用の表記（例: css "#login"）。"""
        return f'{self.strategy} "{self.selector}"'


@dataclass(frozen=True)
class Predicate:
    """セッションが評価できる検索条件。

    Attributes:
        strategy: 解決済みのロケータ戦略
        selector: 元のセレクタ文字列
        engine_selector: Playwright のセレクタエンジン文字列
    """

    strategy: LocatorStrategy
    selector: str
    engine_selector: str


# ---------------------------------------------------------------------------
# 戦略ごとの変換
# ---------------------------------------------------------------------------

_CSS_IDENT_SPECIAL = re.compile(r"([!\"#$%&'()*+,./:;<=>?@\[\\\]^`{|}~])")


def _css_escape_ident(value: str) -> str:
    """CSS 識別子中の特殊文字をエスケープする。"""
    escaped = _CSS_IDENT_SPECIAL.sub(r"\\\1", value)
    # 数字始まりの識別子はコードポイントでエスケープする
    if escaped[:1].isdigit():
        escaped = f"\\{ord(escaped[0]):x} {escaped[1:]}"
    return escaped


def _css_quote(value: str) -> str:
    """CSS 属性値用のダブルクォート文字列を返す。"""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _from_css(selector: str) -> str:
    return f"css={selector}"


def _from_xpath(selector: str) -> str:
    return f"xpath={selector}"


def _from_id(selector: str) -> str:
    return f"css=[id={_css_quote(selector)}]"


def _from_class_name(selector: str) -> str:
    # "btn primary" のような複合クラス名は .btn.primary として扱う
    classes = selector.split()
    return "css=" + "".join(f".{_css_escape_ident(c)}" for c in classes)


def _from_tag_name(selector: str) -> str:
    return f"css={selector.strip()}"


_BUILDERS: dict[LocatorStrategy, Callable[[str], str]] = {
    LocatorStrategy.CSS: _from_css,
    LocatorStrategy.XPATH: _from_xpath,
    LocatorStrategy.ID: _from_id,
    LocatorStrategy.CLASS_NAME: _from_class_name,
    LocatorStrategy.TAG_NAME: _from_tag_name,
}


# ---------------------------------------------------------------------------
# パブリック API
# ---------------------------------------------------------------------------

def parse_strategy(value: str | LocatorStrategy) -> LocatorStrategy:
    """文字列を LocatorStrategy に変換する。

    Raises:
        UnsupportedLocatorStrategyError: 対応していない戦略の場合
    """
    if isinstance(value, LocatorStrategy):
        return value
    try:
        return LocatorStrategy(value)
    except ValueError:
        raise UnsupportedLocatorStrategyError(value) from None


def resolve(locator: Locator) -> Predicate:
    """Locator を Predicate に変換する。

    同じ Locator からは常に等価な Predicate が得られる。副作用はない。

    Args:
        locator: 変換対象のロケータ

    Returns:
        Playwright セレクタを保持する Predicate

    Raises:
        UnsupportedLocatorStrategyError: 対応していない戦略の場合
    """
    strategy = parse_strategy(locator.strategy)
    builder = _BUILDERS.get(strategy)
    if builder is None:
        raise UnsupportedLocatorStrategyError(locator.strategy)

    engine_selector = builder(locator.selector)
    logger.debug("ロケータを解決しました: %s -> %s", locator.describe(), engine_selector)
    return Predicate(
        strategy=strategy,
        selector=locator.selector,
        engine_selector=engine_selector,
    )
