"""
待機エンジンのユニットテスト

テスト対象:
  - wait_for_element(): present / visible / clickable の判定
  - タイムアウト時の TimedOut と経過時間
  - 0 以下のタイムアウトの拒否
  - wait_for_any(): フォールバックの順序と index
"""

from __future__ import annotations

import asyncio
import math

import pytest

from bdm.core.errors import InvalidTimeoutError
from bdm.core.locator import Locator, resolve
from bdm.core.waits import (
    Found,
    TimedOut,
    WaitCondition,
    wait_for_any,
    wait_for_element,
)
from conftest import FakeElement, FakeSession


def _make_predicate(selector: str = "#target", strategy: str = "css"):
    return resolve(Locator.of(selector, strategy))


# ---------------------------------------------------------------------------
# wait_for_element
# ---------------------------------------------------------------------------

class TestWaitForElement:
    """wait_for_element() のテスト。"""

    async def test_found_immediately(self):
        """既に存在する要素は最初のポーリングで見つかること。"""
        element = FakeElement("OK")
        session = FakeSession({"css=#target": element})

        outcome = await wait_for_element(
            session, _make_predicate(), WaitCondition.VISIBLE, timeout_ms=200, poll_interval_ms=20,
        )

        assert isinstance(outcome, Found)
        assert outcome.element is element
        assert outcome.elapsed_ms >= 0
        assert session.locate_calls["css=#target"] == 1

    async def test_found_after_polling(self):
        """遅れて現れる要素をポーリングで検出できること。"""
        session = FakeSession({"css=#target": FakeElement()})
        session.appear_after["css=#target"] = 3

        outcome = await wait_for_element(
            session, _make_predicate(), timeout_ms=1000, poll_interval_ms=10,
        )

        assert isinstance(outcome, Found)
        assert session.locate_calls["css=#target"] == 3

    async def test_timed_out_when_missing(self):
        """要素が存在しなければ TimedOut を返すこと。"""
        session = FakeSession()

        outcome = await wait_for_element(
            session, _make_predicate(), timeout_ms=100, poll_interval_ms=20,
        )

        assert isinstance(outcome, TimedOut)
        assert outcome.timeout_ms == 100
        assert outcome.elapsed_ms >= 99
        # タイムアウト + ポーリング間隔 + イベントループの揺らぎ
        assert outcome.elapsed_ms <= 100 + 20 + 80
        assert outcome.condition is WaitCondition.VISIBLE
        assert "timed out after 100ms" in outcome.message

    async def test_hidden_element_not_visible(self):
        """非表示の要素は visible を満たさないこと。"""
        session = FakeSession({"css=#target": FakeElement(visible=False)})

        outcome = await wait_for_element(
            session, _make_predicate(), WaitCondition.VISIBLE, timeout_ms=60, poll_interval_ms=20,
        )

        assert isinstance(outcome, TimedOut)

    async def test_hidden_element_is_present(self):
        """非表示の要素でも present は満たすこと。"""
        session = FakeSession({"css=#target": FakeElement(visible=False)})

        outcome = await wait_for_element(
            session, _make_predicate(), WaitCondition.PRESENT, timeout_ms=60, poll_interval_ms=20,
        )

        assert isinstance(outcome, Found)

    async def test_disabled_element_not_clickable(self):
        """無効化された要素は clickable を満たさないこと。"""
        session = FakeSession({"css=#target": FakeElement(enabled=False)})

        outcome = await wait_for_element(
            session, _make_predicate(), WaitCondition.CLICKABLE, timeout_ms=60, poll_interval_ms=20,
        )

        assert isinstance(outcome, TimedOut)
        assert outcome.condition is WaitCondition.CLICKABLE

    async def test_condition_accepts_string(self):
        """待機条件は文字列でも指定できること。"""
        session = FakeSession({"css=#target": FakeElement()})

        outcome = await wait_for_element(
            session, _make_predicate(), "clickable", timeout_ms=60, poll_interval_ms=20,
        )

        assert isinstance(outcome, Found)

    async def test_locate_errors_are_retried(self):
        """探索中の例外は握りつぶしてポーリングを継続し、最後のエラーを保持すること。"""
        session = FakeSession()
        session.locate_error = RuntimeError("stale frame")

        outcome = await wait_for_element(
            session, _make_predicate(), timeout_ms=60, poll_interval_ms=20,
        )

        assert isinstance(outcome, TimedOut)
        assert outcome.last_error == "stale frame"
        assert "last error: stale frame" in outcome.message
        assert session.locate_calls["css=#target"] >= 2


# ---------------------------------------------------------------------------
# タイムアウト値の検証
# ---------------------------------------------------------------------------

class TestTimeoutValidation:
    """タイムアウト・ポーリング間隔の検証テスト。"""

    @pytest.mark.parametrize("timeout", [0, -1, -1000])
    async def test_non_positive_timeout_rejected(self, timeout):
        """0 以下のタイムアウトは InvalidTimeoutError になること。"""
        session = FakeSession({"css=#target": FakeElement()})

        with pytest.raises(InvalidTimeoutError):
            await wait_for_element(session, _make_predicate(), timeout_ms=timeout)

        # 探索は一度も行われない
        assert session.locate_calls == {}

    @pytest.mark.parametrize("timeout", [math.nan, math.inf, -math.inf])
    async def test_non_finite_timeout_rejected(self, timeout):
        """NaN や無限大のタイムアウトは待機を始めずに拒否されること。"""
        session = FakeSession()

        with pytest.raises(InvalidTimeoutError):
            await asyncio.wait_for(
                wait_for_element(session, _make_predicate(), timeout_ms=timeout),
                timeout=1.0,
            )

        assert session.locate_calls == {}

    async def test_nan_poll_interval_rejected(self):
        with pytest.raises(InvalidTimeoutError):
            await wait_for_element(
                FakeSession(), _make_predicate(), timeout_ms=100, poll_interval_ms=math.nan,
            )

    async def test_non_positive_poll_interval_rejected(self):
        """0 以下のポーリング間隔は InvalidTimeoutError になること。"""
        session = FakeSession()

        with pytest.raises(InvalidTimeoutError):
            await wait_for_element(session, _make_predicate(), timeout_ms=100, poll_interval_ms=0)

    async def test_invalid_timeout_is_value_error(self):
        """InvalidTimeoutError は ValueError としても捕捉できること。"""
        with pytest.raises(ValueError):
            await wait_for_element(FakeSession(), _make_predicate(), timeout_ms=-5)


# ---------------------------------------------------------------------------
# wait_for_any
# ---------------------------------------------------------------------------

class TestWaitForAny:
    """wait_for_any() のテスト。"""

    async def test_second_candidate_matches(self):
        """最初の候補が無ければ次の候補で見つかり index が返ること。"""
        element = FakeElement("Submit")
        session = FakeSession({"css=.submit": element})
        predicates = [_make_predicate("#submit"), _make_predicate(".submit")]

        outcome = await wait_for_any(session, predicates, timeout_ms=50, poll_interval_ms=10)

        assert isinstance(outcome, Found)
        assert outcome.index == 1
        assert outcome.element is element

    async def test_first_candidate_wins(self):
        """両方存在する場合は先頭の候補が選ばれ、後続は評価されないこと。"""
        session = FakeSession({
            "css=#submit": FakeElement("a"),
            "css=.submit": FakeElement("b"),
        })
        predicates = [_make_predicate("#submit"), _make_predicate(".submit")]

        outcome = await wait_for_any(session, predicates, timeout_ms=50, poll_interval_ms=10)

        assert isinstance(outcome, Found)
        assert outcome.index == 0
        assert "css=.submit" not in session.locate_calls

    async def test_all_missing_returns_timed_out(self):
        """全候補が見つからなければ TimedOut を返すこと。"""
        session = FakeSession()
        predicates = [_make_predicate("#a"), _make_predicate("#b")]

        outcome = await wait_for_any(session, predicates, timeout_ms=40, poll_interval_ms=10)

        assert isinstance(outcome, TimedOut)
        assert set(session.locate_calls) == {"css=#a", "css=#b"}

    async def test_empty_predicates_rejected(self):
        """候補が空なら ValueError になること。"""
        with pytest.raises(ValueError):
            await wait_for_any(FakeSession(), [], timeout_ms=50)
