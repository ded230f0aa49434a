"""
bdm コア — 要素解決・診断・操作ログ・テストケースレポート

  - locator: ロケータ戦略と Playwright セレクタへの変換
  - waits: 待機条件のポーリング
  - diagnostics: 要素未検出時の代替セレクタ提案
  - action_log: 操作ログ
  - reporting: テストケースの集計とレポート出力
  - resolver: 上記を組み合わせた要素解決
"""

from .action_log import ActionLogEntry, ActionLogger
from .context import AutomationContext
from .diagnostics import Diagnostics, diagnose
from .errors import (
    BdmError,
    ElementNotFoundError,
    InvalidTimeoutError,
    NoActiveTestCaseError,
    SessionNotStartedError,
    TestCaseAlreadyActiveError,
    UnsupportedLocatorStrategyError,
)
from .locator import Locator, LocatorStrategy, Predicate, resolve
from .reporting import ReportWriter, TestCaseReport, TestCaseReporter, TestVerdict
from .resolver import ElementFound, ElementNotFound, resolve_element, resolve_first
from .waits import Found, TimedOut, WaitCondition, wait_for_element

__all__ = [
    "ActionLogEntry",
    "ActionLogger",
    "AutomationContext",
    "BdmError",
    "Diagnostics",
    "ElementFound",
    "ElementNotFound",
    "ElementNotFoundError",
    "Found",
    "InvalidTimeoutError",
    "Locator",
    "LocatorStrategy",
    "NoActiveTestCaseError",
    "Predicate",
    "ReportWriter",
    "SessionNotStartedError",
    "TestCaseAlreadyActiveError",
    "TestCaseReport",
    "TestCaseReporter",
    "TestVerdict",
    "TimedOut",
    "UnsupportedLocatorStrategyError",
    "WaitCondition",
    "diagnose",
    "resolve",
    "resolve_element",
    "resolve_first",
    "wait_for_element",
]
