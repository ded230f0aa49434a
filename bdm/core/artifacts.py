"""
成果物の保存先

1 回のサーバー実行につき run-YYYYMMDD-HHMMSS/ を 1 つ作り、
その下に失敗時スクリーンショットとテストケースレポートを置く。

    <base_dir>/run-20240501-093015/
        screenshots/0000_failure-click-1714523415123.png
        reports/login.json
"""

from __future__ import annotations

import itertools
import logging
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

_NON_FILENAME = re.compile(r"[^\w\-]+")

_SUBDIRS = ("screenshots", "reports")


def sanitize_name(name: str) -> str:
    """英数字・_・- 以外の連続をハイフン 1 つにし、両端のハイフンを落とす。"""
    return _NON_FILENAME.sub("-", name).strip("-")


class ScreenshotSink(Protocol):
    """ActionLogger がスクリーンショットを書き出す先。"""

    def save_screenshot(self, data: bytes, label: str = "failure") -> Path: ...


class ArtifactsManager:
    """実行ディレクトリの作成とファイル配置を受け持つ。

    ディレクトリは最初に必要になった時点で作る。
    """

    def __init__(self, base_dir: Path | str = "artifacts") -> None:
        self.base_dir = Path(base_dir)
        self.run_dir: Optional[Path] = None
        self._sequence = itertools.count()

    def __repr__(self) -> str:
        return f"ArtifactsManager(base_dir={self.base_dir!r}, run_dir={self.run_dir!r})"

    def create_run_dir(self, timestamp: Optional[datetime] = None) -> Path:
        """run-YYYYMMDD-HHMMSS/ とサブディレクトリを作り、そのパスを返す。"""
        stamp = (timestamp or datetime.now()).strftime("%Y%m%d-%H%M%S")
        run_dir = self.base_dir / f"run-{stamp}"
        for name in _SUBDIRS:
            (run_dir / name).mkdir(parents=True, exist_ok=True)
        self.run_dir = run_dir
        logger.info("成果物の出力先: %s", run_dir)
        return run_dir

    def _ensure_run_dir(self) -> Path:
        return self.run_dir if self.run_dir is not None else self.create_run_dir()

    @property
    def report_dir(self) -> Path:
        return self._ensure_run_dir() / "reports"

    def save_screenshot(self, data: bytes, label: str = "failure") -> Path:
        """PNG を screenshots/NNNN_<label>-<epoch_ms>.png として書き出す。"""
        target_dir = self._ensure_run_dir() / "screenshots"
        target_dir.mkdir(parents=True, exist_ok=True)

        stem = sanitize_name(label) or "screenshot"
        path = target_dir / f"{next(self._sequence):04d}_{stem}-{time.time_ns() // 1_000_000}.png"
        path.write_bytes(data)
        logger.debug("スクリーンショット保存: %s (%d bytes)", path, len(data))
        return path
