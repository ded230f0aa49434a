"""
エラー診断 — 要素解決失敗時の代替セレクタ提案とページテキスト収集

要素が見つからなかった場合に、失敗したセレクタとページの状態から
決定的なヒューリスティックで代替セレクタを提案する。

ヒューリスティック:
  - xpath でテキストを検索している場合
      部分一致（先頭の単語のみ）/ 大文字小文字を無視する translate() 版 /
      ページ上の類似テキスト（最大3件）
  - css の #id 参照 → [name="..."], [data-testid="..."]
  - css の .class 参照 → [class*="..."]
  - id / className 戦略も同じ属性セレクタを提案する

診断は補助情報であり、元の失敗を隠してはならない。
diagnose() は内部エラーを全て握りつぶし、空の結果に縮退する。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .locator import Locator
from .session import SessionHandle

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 8
MAX_SIMILAR_TEXT = 3
AVAILABLE_TEXT_LIMIT = 10
AVAILABLE_TEXT_MAX_LENGTH = 100

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"

# text() を引数に取る比較から文字列リテラルを取り出す
# 例: contains(text(),'Contact Us') / text()="Login" / contains(normalize-space(text()), 'x')
_XPATH_TEXT_LITERAL = re.compile(
    r"text\(\)\s*\)?\s*[,=]\s*(?P<q>['\"])(?P<text>.+?)(?P=q)"
)
# //div[...] の div 部分
_XPATH_LEADING_TAG = re.compile(r"^\s*//(?P<tag>[A-Za-z][\w\-]*|\*)\s*\[")
_CSS_ID_REF = re.compile(r"^#(?P<name>-?[A-Za-z_][\w\-]*)")
_CSS_CLASS_REF = re.compile(r"^\.(?P<name>-?[A-Za-z_][\w\-]*)")
_WHITESPACE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# 診断結果
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Diagnostics:
    """診断結果。

    Attributes:
        suggestions: 代替セレクタ・類似テキストの提案（順序保持）
        available_text: ページ上のテキストのサンプル
    """

    suggestions: tuple[str, ...] = ()
    available_text: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> Diagnostics:
        return cls()


# ---------------------------------------------------------------------------
# パブリック API
# ---------------------------------------------------------------------------

async def diagnose(locator: Locator, session: Optional[SessionHandle]) -> Diagnostics:
    """失敗したロケータの診断情報を生成する。

    例外は送出しない。ページが読めない場合などは空の診断を返す。

    Args:
        locator: 解決に失敗したロケータ
        session: ブラウザセッション（None の場合はセレクタのみから提案する）

    Returns:
        提案とページテキストのサンプル
    """
    try:
        page_text = await _read_page_text(session)
        suggestions = _dedupe(suggest_alternatives(locator, page_text))[:MAX_SUGGESTIONS]
    except Exception:
        logger.warning("診断情報の生成に失敗しました: %s", locator.describe(), exc_info=True)
        return Diagnostics.empty()

    available = await collect_available_text(session, page_text=page_text)
    return Diagnostics(suggestions=tuple(suggestions), available_text=available)


async def collect_available_text(
    session: Optional[SessionHandle],
    limit: int = AVAILABLE_TEXT_LIMIT,
    max_length: int = AVAILABLE_TEXT_MAX_LENGTH,
    *,
    page_text: Optional[Sequence[str]] = None,
) -> tuple[str, ...]:
    """ページ上の空でないテキストを重複なしで最大 limit 件返す。

    page_text を渡した場合はページを読み直さずにそれを使う。
    例外は送出しない。
    """
    try:
        if page_text is None:
            page_text = await _read_page_text(session)
        return summarize_text(page_text, limit, max_length)
    except Exception:
        logger.warning("ページテキストの取得に失敗しました", exc_info=True)
        return ()


def suggest_alternatives(locator: Locator, page_text: Sequence[str] = ()) -> list[str]:
    """ロケータから代替セレクタの候補を生成する。

    ヒューリスティックが該当しない場合は空リストを返す。

    Args:
        locator: 失敗したロケータ
        page_text: 類似テキスト検索に使うページ上のテキスト

    Returns:
        提案リスト（重複除去前）
    """
    strategy = locator.strategy
    selector = locator.selector.strip()

    if strategy == "xpath":
        return _suggest_for_xpath_text(selector, page_text)

    if strategy == "css":
        id_match = _CSS_ID_REF.match(selector)
        if id_match:
            return _attribute_alternatives(id_match.group("name"))
        class_match = _CSS_CLASS_REF.match(selector)
        if class_match:
            return [f'[class*="{class_match.group("name")}"]']
        return []

    if strategy == "id":
        return _attribute_alternatives(selector)

    if strategy == "className":
        first_class = selector.split()[0] if selector.split() else ""
        return [f'[class*="{first_class}"]'] if first_class else []

    return []


def summarize_text(
    texts: Iterable[str],
    limit: int = AVAILABLE_TEXT_LIMIT,
    max_length: int = AVAILABLE_TEXT_MAX_LENGTH,
) -> tuple[str, ...]:
    """テキストを正規化・重複除去・件数制限・切り詰めする。"""
    result: list[str] = []
    seen: set[str] = set()
    for raw in texts:
        if len(result) >= limit:
            break
        if not isinstance(raw, str):
            continue
        text = _truncate(_normalize(raw), max_length)
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return tuple(result)


def xpath_literal(value: str) -> str:
    """任意の文字列を XPath の文字列リテラルに変換する。"""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


# ---------------------------------------------------------------------------
# 内部ヘルパー
# ---------------------------------------------------------------------------

async def _read_page_text(session: Optional[SessionHandle]) -> list[str]:
    if session is None:
        return []
    texts = await session.page_text()
    return list(texts or [])


def _suggest_for_xpath_text(selector: str, page_text: Sequence[str]) -> list[str]:
    match = _XPATH_TEXT_LITERAL.search(selector)
    if match is None:
        return []
    target = match.group("text").strip()
    if not target:
        return []

    tag_match = _XPATH_LEADING_TAG.match(selector)
    tag = tag_match.group("tag") if tag_match else "*"

    first_token = target.split()[0]
    lowered = target.lower()
    suggestions = [
        f"//{tag}[contains(text(), {xpath_literal(first_token)})]",
        f"//{tag}[contains(translate(text(), '{_UPPER}', '{_LOWER}'), "
        f"{xpath_literal(lowered)})]",
    ]
    suggestions.extend(_similar_text(lowered, page_text))
    return suggestions


def _similar_text(lowered_target: str, page_text: Sequence[str]) -> list[str]:
    """小文字化したターゲットと相互に包含関係にあるページテキストを返す。

    包含判定は切り詰める前の全文で行い、返す時だけ切り詰める。
    """
    similar: list[str] = []
    seen: set[str] = set()
    for raw in page_text:
        if not isinstance(raw, str):
            continue
        candidate = _normalize(raw)
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        lowered = candidate.lower()
        if lowered_target in lowered or lowered in lowered_target:
            similar.append(_truncate(candidate, AVAILABLE_TEXT_MAX_LENGTH))
            if len(similar) >= MAX_SIMILAR_TEXT:
                break
    return similar


def _attribute_alternatives(name: str) -> list[str]:
    return [f'[name="{name}"]', f'[data-testid="{name}"]']


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
