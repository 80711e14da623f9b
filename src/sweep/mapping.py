"""
どこで: `sweep.mapping`（候補点 → トリガイベントの写像）。
何を: 距離→周波数、角度/位置→パン、点序数→速度/長さ（パラメータモード）の写像と、平均律量子化・音名。
なぜ: 交差判定とは独立に、発音パラメータの決め方を名前付き戦略として差し替え可能にするため。

写像はレジストリ（`common.base_registry.BaseRegistry`）に登録し、設定の文字列で選択する。
- frequency: "inverse"（既定, 中心に近いほど高い）, "linear", "distance"
- pan: "sine"（sin(角度位置)）, "stage"（x / (stage_width/2)）
- parameter: "modulo", "random", "interpolation"
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from common.base_registry import BaseRegistry
from common.types import Vec2
from geometry.candidates import CandidatePoint, PointKey, PointKind

if TYPE_CHECKING:
    from .config import EngineConfig

frequency_modes = BaseRegistry("frequency mode")
pan_modes = BaseRegistry("pan mode")
parameter_modes = BaseRegistry("parameter mode")

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

# LCG 定数（Numerical Recipes）
_LCG_A = 1664525
_LCG_C = 1013904223
_LCG_M = 2**32


# === 周波数 ===
@frequency_modes.register("inverse")
def inverse_frequency(distance: float, reference_radius: float, f_min: float, f_max: float) -> float:
    ratio = distance / reference_radius if reference_radius > 0.0 else 0.0
    return f_max - ratio * (f_max - f_min)


@frequency_modes.register("linear")
def linear_frequency(distance: float, reference_radius: float, f_min: float, f_max: float) -> float:
    ratio = distance / reference_radius if reference_radius > 0.0 else 0.0
    return f_min + ratio * (f_max - f_min)


@frequency_modes.register("distance")
def distance_frequency(distance: float, reference_radius: float, f_min: float, f_max: float) -> float:
    return distance


def map_frequency(
    distance: float,
    reference_radius: float,
    f_min: float,
    f_max: float,
    mode: str = "inverse",
) -> float:
    """登録済み写像で周波数を求め、[f_min, f_max] にクランプする。"""
    f = float(frequency_modes.get(mode)(distance, reference_radius, f_min, f_max))
    return min(f_max, max(f_min, f))


def quantize_to_equal_temperament(frequency: float, reference: float = 440.0) -> float:
    """12 平均律の最も近い音高へ丸める。0 以下・非有限はそのまま返す。"""
    if frequency <= 0.0 or not math.isfinite(frequency):
        return frequency
    semitones = round(12.0 * math.log2(frequency / reference))
    return reference * 2.0 ** (semitones / 12.0)


def note_name(frequency: float, reference: float = 440.0) -> Optional[str]:
    """周波数の音名（例: "A4", "C#5"）。0 以下・非有限は None。"""
    if frequency <= 0.0 or not math.isfinite(frequency):
        return None
    semitones = round(12.0 * math.log2(frequency / reference))
    # A4 は C0 から 9 + 4*12 半音
    from_c0 = semitones + 9 + 4 * 12
    octave = from_c0 // 12
    return f"{NOTE_NAMES[from_c0 % 12]}{octave}"


# === パン ===
@pan_modes.register("sine")
def sine_pan(x: float, y: float, angle: float, stage_width: float) -> float:
    return math.sin(angle)


@pan_modes.register("stage")
def stage_pan(x: float, y: float, angle: float, stage_width: float) -> float:
    half = stage_width * 0.5
    return max(-1.0, min(1.0, x / half))


# === パラメータモード ===
def seeded_random(seed: int) -> float:
    """点序数から決定的に [0, 1) の値を返す（LCG 1 ステップ、seed + 1 から開始）。"""
    return ((_LCG_A * (seed + 1) + _LCG_C) % _LCG_M) / _LCG_M


@parameter_modes.register("modulo")
def modulo_value(index: int, modulo: int, lo: float, hi: float) -> float:
    """N 点ごとに [hi, lo, lo, ...] を繰り返す（lo > hi なら反転）。"""
    a, b = min(lo, hi), max(lo, hi)
    if index == 0:
        return b
    value = b if index % modulo == 0 else a
    return a + b - value if lo > hi else value


@parameter_modes.register("random")
def random_value(index: int, modulo: int, lo: float, hi: float) -> float:
    a, b = min(lo, hi), max(lo, hi)
    r = seeded_random(index)
    return b - r * (b - a) if lo > hi else a + r * (b - a)


@parameter_modes.register("interpolation")
def interpolated_value(index: int, modulo: int, lo: float, hi: float) -> float:
    """N 点周期の正弦で lo..hi を往復する。"""
    a, b = min(lo, hi), max(lo, hi)
    if index == 0:
        return b
    position = (index % modulo) / modulo
    value = a + (math.sin(position * 2.0 * math.pi) + 1.0) * 0.5 * (b - a)
    return a + b - value if lo > hi else value


def parameter_value(mode: str, index: int, modulo: int, lo: float, hi: float, phase: float = 0.0) -> float:
    """位相シフト `floor(phase * modulo)` を適用してからパラメータモードを評価する。"""
    if phase > 0.0:
        index = index + math.floor(phase * modulo)
    return float(parameter_modes.get(mode)(index, modulo, lo, hi))


# === イベント ===
@dataclass(frozen=True)
class TriggerEvent:
    """音声/MIDI 側へ渡す 1 回分のトリガ。"""

    position: Vec2
    frequency: float
    pan: float
    source_kind: PointKind
    key: PointKey
    velocity: float
    duration: float
    note_name: Optional[str] = None
    time: float = 0.0


class TriggerMapper:
    """設定に従って候補点から `TriggerEvent` を組み立てる。

    `reference_radius` は幾何の再構築毎にエンジンが更新する（候補点の最大半径）。
    """

    def __init__(self, config: "EngineConfig", reference_radius: float = 1.0):
        self.config = config
        self.reference_radius = float(reference_radius)

    def frequency_for(self, candidate: CandidatePoint) -> tuple[float, Optional[str]]:
        cfg = self.config
        f = map_frequency(candidate.radius, self.reference_radius, cfg.freq_min, cfg.freq_max, cfg.frequency_mode)
        if not cfg.equal_temperament:
            return f, None
        f = quantize_to_equal_temperament(f, cfg.reference_frequency)
        return f, note_name(f, cfg.reference_frequency)

    def pan_for(self, candidate: CandidatePoint) -> float:
        cfg = self.config
        return float(pan_modes.get(cfg.pan_mode)(candidate.x, candidate.y, candidate.angle, cfg.stage_width))

    def __call__(self, candidate: CandidatePoint, now: float) -> TriggerEvent:
        cfg = self.config
        frequency, name = self.frequency_for(candidate)
        return TriggerEvent(
            position=candidate.position,
            frequency=frequency,
            pan=self.pan_for(candidate),
            source_kind=candidate.kind,
            key=candidate.key,
            velocity=parameter_value(
                cfg.velocity_mode, candidate.index, cfg.velocity_modulo, cfg.velocity_min, cfg.velocity_max, cfg.velocity_phase
            ),
            duration=parameter_value(
                cfg.duration_mode, candidate.index, cfg.duration_modulo, cfg.duration_min, cfg.duration_max, cfg.duration_phase
            ),
            note_name=name,
            time=now,
        )


__all__ = [
    "frequency_modes",
    "pan_modes",
    "parameter_modes",
    "NOTE_NAMES",
    "map_frequency",
    "quantize_to_equal_temperament",
    "note_name",
    "seeded_random",
    "modulo_value",
    "random_value",
    "interpolated_value",
    "parameter_value",
    "TriggerEvent",
    "TriggerMapper",
]
