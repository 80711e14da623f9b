"""
プロジェクト向けの軽量ロギングユーティリティ。

要点:
- 各モジュールは `logging.getLogger(__name__)` でロガーを取得する。
- ホスト側（フレームループ/CLI）で設定が無い場合でも、妥当な最小構成を 1 度だけ適用する。
- `PSW_DEBUG_TRIGGERS` が有効なときは既定レベルを DEBUG に引き上げる。
"""

from __future__ import annotations

import logging

from . import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def resolve_level(level: int | str) -> int:
    """レベル指定（名前 or 数値）を `logging` の数値レベルへ解決する。"""
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_default_logging(level: int | str = "INFO") -> None:
    """最小限のロギング設定を 1 度だけ適用する。

    - ルートロガーにハンドラが既にあれば何もしない（no-op）
    - 上位のランナー/スクリプトから呼び出す想定
    """
    lvl = resolve_level(level)
    if settings.get().DEBUG_TRIGGERS:
        lvl = min(lvl, logging.DEBUG)

    root = logging.getLogger()
    if root.handlers:
        # Assume the host has configured logging
        return
    logging.basicConfig(level=lvl, format=LOG_FORMAT)


__all__ = ["setup_default_logging", "resolve_level", "LOG_FORMAT"]
