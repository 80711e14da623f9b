"""
どこで: `geometry.copies`（複製の静的レイアウト）。
何を: 共有ベースリングに適用する各複製の変換（一様スケール・回転オフセット）と、その配置計算。
なぜ: 呼び出し側が明示的な `Copy` 列を渡し、エンジンが描画シーンを探索しないで済むようにするため。

配置式（複製 i, 0 始まり）:
- scale = step_scale ** i * modulus_factor(i, modulus) * (alt_scale if (i + 1) % alt_step_n == 0 else 1)
- rotation = radians(i * angle_deg) + group_rotation
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from common.types import Ring


@dataclass(frozen=True)
class Copy:
    """ベースリングの 1 インスタンス（静的レイアウト。スイープ角とは無関係）。"""

    index: int
    scale: float = 1.0
    rotation: float = 0.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.scale) or not math.isfinite(self.rotation):
            raise ValueError(f"copy transform must be finite: scale={self.scale!r}, rotation={self.rotation!r}")

    def apply(self, ring: Ring) -> Ring:
        """リングにスケール → 回転の順で変換を適用した新しい配列を返す。"""
        pts = np.asarray(ring, dtype=np.float64)
        c = math.cos(self.rotation)
        s = math.sin(self.rotation)
        rot = np.array([[c, s], [-s, c]], dtype=np.float64)
        return (pts * self.scale) @ rot


def modulus_factor(index: int, modulus: int) -> float:
    """`1/m + (i mod m)(1 - 1/m)/(m - 1)`。m <= 1 のときは 1。"""
    if modulus <= 1:
        return 1.0
    base = 1.0 / modulus
    return base + (index % modulus) * (1.0 - base) / (modulus - 1)


def scale_factor_for_copy(
    index: int,
    step_scale: float = 1.0,
    modulus: int = 0,
    alt_step_n: int = 0,
    alt_scale: float = 1.0,
) -> float:
    scale = float(step_scale) ** index * modulus_factor(index, modulus)
    if alt_step_n > 0 and (index + 1) % alt_step_n == 0:
        scale *= float(alt_scale)
    return scale


def layout_copies(
    count: int,
    step_scale: float = 1.0,
    angle_deg: float = 0.0,
    modulus: int = 0,
    alt_step_n: int = 0,
    alt_scale: float = 1.0,
    group_rotation: float = 0.0,
) -> tuple[Copy, ...]:
    """`count` 個の複製を配置式どおりに並べたタプルを返す（count <= 0 なら空）。"""
    return tuple(
        Copy(
            index=i,
            scale=scale_factor_for_copy(i, step_scale, modulus, alt_step_n, alt_scale),
            rotation=math.radians(i * float(angle_deg)) + float(group_rotation),
        )
        for i in range(max(0, int(count)))
    )


__all__ = ["Copy", "modulus_factor", "scale_factor_for_copy", "layout_copies"]
