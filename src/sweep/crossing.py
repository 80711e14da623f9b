"""
どこで: `sweep.crossing`（スイープ交差判定）。
何を: 前フレーム角/現フレーム角の間に掃かれた弧に入った候補点を求める。
なぜ: 固定された基準軸を回転する図形の特徴点が通過した瞬間を、フレーム単位で漏れなく検出するため。

判定規則（角度はすべて [0, 2π) に正規化して比較）:
- 非折り返し（cur >= prev）: prev < pos <= cur
- 折り返し（cur < prev）: pos > prev または pos <= cur
- 生の差分 `current - previous` が 0 以下・非有限: 何も交差しない。
- 生の差分が 2π 以上: policy "all" なら全候補、"arc" なら最後の部分弧のみで判定。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from geometry.candidates import CandidatePoint, PointKey

TWO_PI = 2.0 * math.pi


def normalize_angle(angle: float) -> float:
    """任意の大きさの角度を [0, 2π) に正規化する。"""
    a = math.fmod(angle, TWO_PI)
    if a < 0.0:
        a += TWO_PI
    # fmod の丸めで 2π ちょうどが残ることがある
    return 0.0 if a >= TWO_PI else a


def normalize_angles(angles: np.ndarray) -> np.ndarray:
    a = np.mod(np.asarray(angles, dtype=np.float64), TWO_PI)
    return np.where(a >= TWO_PI, 0.0, a)


@dataclass(frozen=True)
class RotationState:
    """スイープの回転角（ラジアン、非有界）。"""

    previous: float
    current: float

    @property
    def delta(self) -> float:
        return self.current - self.previous

    def advanced(self, angle: float) -> "RotationState":
        return RotationState(self.current, angle)


class CrossingDetector:
    """候補点集合に対する交差判定器。

    候補点の角度位置は `set_candidates` 時に一度だけ numpy 配列として前計算する。
    `detect` は候補を変更しない。
    """

    def __init__(self, policy: str = "all"):
        if policy not in ("all", "arc"):
            raise ValueError(f"policy must be 'all' or 'arc': got {policy!r}")
        self.policy = policy
        self._keys: tuple[PointKey, ...] = ()
        self._angles = np.empty(0, dtype=np.float64)

    def set_candidates(self, candidates: Sequence[CandidatePoint]) -> None:
        self._keys = tuple(c.key for c in candidates)
        if candidates:
            xy = np.array([(c.x, c.y) for c in candidates], dtype=np.float64)
            self._angles = normalize_angles(np.arctan2(xy[:, 1], xy[:, 0]))
        else:
            self._angles = np.empty(0, dtype=np.float64)

    @property
    def angles(self) -> np.ndarray:
        return self._angles

    def crossed_mask(self, rotation: RotationState) -> np.ndarray:
        n = self._angles.shape[0]
        delta = rotation.delta
        if n == 0 or not math.isfinite(delta) or delta <= 0.0:
            return np.zeros(n, dtype=bool)
        if delta >= TWO_PI and self.policy == "all":
            return np.ones(n, dtype=bool)
        prev = normalize_angle(rotation.previous)
        cur = normalize_angle(rotation.current)
        pos = self._angles
        if cur >= prev:
            return (pos > prev) & (pos <= cur)
        return (pos > prev) | (pos <= cur)

    def detect(self, rotation: RotationState) -> list[PointKey]:
        """掃かれた弧に入った候補のキーを候補順で返す。"""
        mask = self.crossed_mask(rotation)
        return [self._keys[i] for i in np.flatnonzero(mask)]


__all__ = ["TWO_PI", "normalize_angle", "normalize_angles", "RotationState", "CrossingDetector"]
