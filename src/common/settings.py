"""
どこで: `common.settings`
何を: プロセス全体の実行時設定（JIT 利用可否・フレーム予算・デバッグ）を環境変数から型付きで読み込む。
なぜ: `os.getenv` の散在を解消し、既定値/型の一貫性とテスト容易性を高めるため。

注意:
- エンジン固有のチューニング値（マージ距離など）は `sweep.config.EngineConfig` に置く。
  ここにはプロセス単位でしか意味を持たない値だけを置く。
"""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_float


@dataclass
class _Settings:
    # 幾何カーネル
    USE_NUMBA: bool = True

    # フレーム予算（超過時に警告ログ）
    FRAME_BUDGET_MS: float = 8.0

    # Misc
    DEBUG_TRIGGERS: bool = False


_settings = _Settings()


def reload_from_env() -> None:
    """環境変数から設定を再読込。

    - bool は `env_bool`、float は `env_float` を使用。
    - フレーム予算は 0 未満を 0 に丸める（0 は警告無効）。
    """
    _settings.USE_NUMBA = env_bool("PSW_USE_NUMBA", True)
    _settings.FRAME_BUDGET_MS = env_float("PSW_FRAME_BUDGET_MS", 8.0, min_value=0.0) or 0.0
    _settings.DEBUG_TRIGGERS = env_bool("PSW_DEBUG_TRIGGERS", False)


def get() -> _Settings:
    """現在の設定スナップショットを返す。"""
    return _settings


# 初期ロード
reload_from_env()


__all__ = ["get", "reload_from_env", "_Settings"]
