"""
どこで: `sweep.config`（エンジン設定）。
何を: `TriggerEngine` のチューニング値を保持する不変データクラスと、YAML 辞書からの構築。
なぜ: プロセス全体のデバッグフラグを廃し、設定をコンストラクタで明示的に受け渡すため。

変更は `TriggerEngine.update_config(**changes)` 経由でのみ行う（`dataclasses.replace` で新インスタンス）。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from common.config import load_config

MULTI_REVOLUTION_POLICIES = ("all", "arc")
PAN_MODES = ("sine", "stage")
PARAMETER_MODES = ("modulo", "random", "interpolation")

# 候補点の再計算が必要になるフィールド
GEOMETRY_FIELDS = frozenset({"merge_ratio"})


class InvalidEngineConfig(ValueError):
    """エンジン設定値が不正な場合に送出される例外。"""


@dataclass(frozen=True)
class EngineConfig:
    """トリガエンジンの設定。

    Attributes
    ----------
    merge_ratio : float
        マージ距離の外接半径比（threshold = radius * merge_ratio）。
    multi_revolution_policy : str
        1 フレームで 2π 以上回転したときの扱い。"all" は全候補を交差扱い、"arc" は最後の部分弧のみ。
    marker_lifetime : float
        HIT 後のマーカー寿命 [s]。
    max_velocity : float
        HIT 直後のマーカー速度（可視化用の減衰開始値）。
    frequency_mode, freq_min, freq_max : str, float, float
        距離→周波数の写像名と帯域 [Hz]。
    equal_temperament, reference_frequency : bool, float
        平均律への量子化と基準周波数（A4）。
    pan_mode, stage_width : str, float
        パン写像（"sine" or "stage"）とステージ幅。
    velocity_mode, velocity_min, velocity_max, velocity_modulo, velocity_phase
        イベント速度のパラメータモード。
    duration_mode, duration_min, duration_max, duration_modulo, duration_phase
        イベント長 [s] のパラメータモード。
    quantization : str | None
        "1/4", "1/8T" などの拍グリッド。None で無効。
    bpm : float
        量子化に用いるテンポ。
    use_numba : bool | None
        None のとき `common.settings.USE_NUMBA` に従う。
    """

    merge_ratio: float = 1e-3
    multi_revolution_policy: str = "all"
    marker_lifetime: float = 0.5
    max_velocity: float = 1.0

    frequency_mode: str = "inverse"
    freq_min: float = 110.0
    freq_max: float = 1760.0
    equal_temperament: bool = False
    reference_frequency: float = 440.0

    pan_mode: str = "sine"
    stage_width: float = 2.0

    velocity_mode: str = "modulo"
    velocity_min: float = 0.3
    velocity_max: float = 0.9
    velocity_modulo: int = 4
    velocity_phase: float = 0.0

    duration_mode: str = "modulo"
    duration_min: float = 0.1
    duration_max: float = 0.5
    duration_modulo: int = 3
    duration_phase: float = 0.0

    quantization: Optional[str] = None
    bpm: float = 120.0

    use_numba: Optional[bool] = None

    def __post_init__(self) -> None:
        _positive("merge_ratio", self.merge_ratio)
        _positive("marker_lifetime", self.marker_lifetime)
        _positive("max_velocity", self.max_velocity)
        _positive("freq_min", self.freq_min)
        _positive("freq_max", self.freq_max)
        _positive("reference_frequency", self.reference_frequency)
        _positive("stage_width", self.stage_width)
        _positive("bpm", self.bpm)
        if self.freq_min > self.freq_max:
            raise InvalidEngineConfig(
                f"freq_min must be <= freq_max: got {self.freq_min} > {self.freq_max}"
            )
        _choice("multi_revolution_policy", self.multi_revolution_policy, MULTI_REVOLUTION_POLICIES)
        _choice("pan_mode", self.pan_mode, PAN_MODES)
        _choice("velocity_mode", self.velocity_mode, PARAMETER_MODES)
        _choice("duration_mode", self.duration_mode, PARAMETER_MODES)

        # 写像名はレジストリに問い合わせる（循環 import 回避のため遅延）
        from .mapping import frequency_modes

        if (
            not isinstance(self.frequency_mode, str)
            or not self.frequency_mode
            or not frequency_modes.is_registered(self.frequency_mode)
        ):
            raise InvalidEngineConfig(
                f"unknown frequency_mode {self.frequency_mode!r}: choose from {sorted(frequency_modes.list_all())}"
            )

        for name in ("velocity_min", "velocity_max", "duration_min", "duration_max"):
            _finite(name, getattr(self, name))
        for name in ("velocity_phase", "duration_phase"):
            value = getattr(self, name)
            _finite(name, value)
            if not 0.0 <= float(value) <= 1.0:
                raise InvalidEngineConfig(f"{name} must be in [0, 1]: got {value!r}")
        for name in ("velocity_modulo", "duration_modulo"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidEngineConfig(f"{name} must be an integer >= 1: got {value!r}")

        if self.quantization is not None:
            from .quantize import parse_grid

            try:
                parse_grid(self.quantization)
            except ValueError as exc:
                raise InvalidEngineConfig(str(exc)) from exc

    # --- 構築/変更 ---
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EngineConfig":
        """辞書から構築する。未知キーは `InvalidEngineConfig`。"""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidEngineConfig(f"unknown engine config keys: {unknown}")
        return cls(**dict(data))

    def with_changes(self, **changes: Any) -> "EngineConfig":
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidEngineConfig(f"unknown engine config keys: {unknown}")
        return replace(self, **changes)

    def resolve_use_numba(self) -> bool:
        if self.use_numba is not None:
            return bool(self.use_numba)
        from common import settings

        return bool(settings.get().USE_NUMBA)


def _positive(name: str, value: Any) -> None:
    _finite(name, value)
    if float(value) <= 0.0:
        raise InvalidEngineConfig(f"{name} must be > 0: got {value!r}")


def _finite(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidEngineConfig(f"{name} must be a number: got {value!r}")
    if not math.isfinite(float(value)):
        raise InvalidEngineConfig(f"{name} must be finite: got {value!r}")


def _choice(name: str, value: Any, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise InvalidEngineConfig(f"{name} must be one of {choices}: got {value!r}")


def load_engine_config(root: Path | None = None) -> EngineConfig:
    """`configs/default.yaml`（+ ルート `config.yaml`）の `engine:` セクションから構築する。"""
    cfg = load_config(root)
    section = cfg.get("engine") or {}
    if not isinstance(section, Mapping):
        raise InvalidEngineConfig(f"'engine' section must be a mapping: got {type(section).__name__}")
    return EngineConfig.from_mapping(section)


__all__ = [
    "EngineConfig",
    "InvalidEngineConfig",
    "GEOMETRY_FIELDS",
    "MULTI_REVOLUTION_POLICIES",
    "PAN_MODES",
    "PARAMETER_MODES",
    "load_engine_config",
]
