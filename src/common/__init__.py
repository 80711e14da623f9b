"""
どこで: `common` パッケージ。
何を: geometry/sweep 双方で使う軽量ユーティリティ（設定・環境変数・ロギング・レジストリ）。
なぜ: 幾何層とトリガ層から再利用する共通基盤を分離し、依存の向きを単純化するため。
"""

from .base_registry import BaseRegistry

__all__ = [
    "BaseRegistry",
]
