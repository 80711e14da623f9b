"""
どこで: `geometry.polygon`（頂点生成）。
何を: 正多角形/星形多角形 {n/k} の頂点リングを生成する。ユークリッド配置と辺の細分化も提供。
なぜ: 交点探索・頂点トリガの双方が同一の頂点列（描画順）を共有できるようにするため。

データ規約:
- リングは `(m, 2) float64` の ndarray。行 i → 行 i+1 が描画される辺で、末尾→先頭で暗黙に閉じる。
- 頂点 i の角度は `2πi/n`（+X 軸上に頂点 0 を置く）。
- 星形 {n/k} は `current = (current + k) mod n` の巡回順に並べた基点列を返す。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from common.types import Ring

logger = logging.getLogger(__name__)


class InvalidPolygonSpec(ValueError):
    """多角形パラメータが不正な場合に送出される例外。"""


@dataclass(frozen=True)
class PolygonSpec:
    """多角形の生成パラメータ。

    Attributes
    ----------
    n : int
        頂点数（3 以上）。
    k : int
        スキップ値（1 以上）。1 で正多角形、2 以上で星形 {n/k}。
    radius : float
        外接円の半径（正の有限値）。
    """

    n: int
    k: int = 1
    radius: float = 1.0

    def __post_init__(self) -> None:
        if isinstance(self.n, bool) or not isinstance(self.n, (int, np.integer)):
            raise InvalidPolygonSpec(f"n must be an integer: got {self.n!r}")
        if isinstance(self.k, bool) or not isinstance(self.k, (int, np.integer)):
            raise InvalidPolygonSpec(f"k must be an integer: got {self.k!r}")
        if self.n < 3:
            raise InvalidPolygonSpec(f"n must be >= 3: got {self.n}")
        if self.k <= 0:
            raise InvalidPolygonSpec(f"k must be >= 1: got {self.k}")
        if self.k % self.n == 0:
            raise InvalidPolygonSpec(f"k must not be a multiple of n: got {{{self.n}/{self.k}}}")
        radius = float(self.radius)
        if not math.isfinite(radius) or radius <= 0.0:
            raise InvalidPolygonSpec(f"radius must be a positive finite number: got {self.radius!r}")

    @property
    def is_star(self) -> bool:
        return self.k > 1


def base_points(n: int, radius: float) -> Ring:
    """円周上に等間隔な n 点を返す（角度 `2πi/n`）。"""
    t = np.arange(n, dtype=np.float64) * (2.0 * np.pi / n)
    return np.stack([np.cos(t) * radius, np.sin(t) * radius], axis=1)


def star_walk(n: int, k: int) -> list[int]:
    """星形 {n/k} の接続順（基点インデックス列）を返す。

    0 から `(current + k) mod n` を辿り、既訪問に戻った時点で止める。
    gcd(n, k) = 1 なら長さ n の単一サイクル、そうでなければ 1 成分（長さ n/gcd）のみ。
    """
    visited: set[int] = set()
    order: list[int] = []
    current = 0
    while current not in visited:
        visited.add(current)
        order.append(current)
        current = (current + k) % n
    return order


def generate_vertices(spec: PolygonSpec) -> Ring:
    """`PolygonSpec` から描画順の頂点リングを生成する。

    Parameters
    ----------
    spec : PolygonSpec
        検証済みの多角形パラメータ。

    Returns
    -------
    Ring
        `(m, 2)` の頂点配列。正多角形・互いに素な星形では m = n。

    Notes
    -----
    gcd(n, k) > 1 の星形は複合図形となるため、0 を含む 1 成分のみを返す（既定値への置換はしない）。
    """
    points = base_points(spec.n, float(spec.radius))
    if not spec.is_star:
        return points

    order = star_walk(spec.n, spec.k)
    if len(order) != spec.n:
        logger.debug(
            "compound star {%d/%d}: gcd=%d, returning one component of %d vertices",
            spec.n,
            spec.k,
            math.gcd(spec.n, spec.k),
            len(order),
        )
    return points[np.asarray(order, dtype=np.intp)]


def euclidean_pattern(n: int, pulses: int) -> list[bool]:
    """n ステップに `pulses` 個のオンセットをできるだけ均等に配置する。

    `floor(i * n / pulses)` に置くため、0 < pulses <= n で常にちょうど `pulses` 個になる。
    """
    if pulses <= 0:
        return [False] * n
    if pulses >= n:
        return [True] * n
    pattern = [False] * n
    for i in range(pulses):
        pattern[(i * n) // pulses] = True
    return pattern


def euclidean_vertices(spec: PolygonSpec, pulses: int) -> Ring:
    """ユークリッド配置で選ばれた基点のみからなるリングを返す（角度順）。"""
    if spec.is_star:
        raise InvalidPolygonSpec("euclidean vertex selection applies to regular polygons only")
    if pulses < 1 or pulses > spec.n:
        raise InvalidPolygonSpec(f"pulses must be in [1, {spec.n}]: got {pulses}")
    mask = np.asarray(euclidean_pattern(spec.n, pulses), dtype=bool)
    # 基点は 0..2π の角度順に並んでいるので、マスクで抜き出すだけで順序は保たれる
    return base_points(spec.n, float(spec.radius))[mask]


def subdivide_ring(ring: Ring, subdivisions: int) -> Ring:
    """各辺に `subdivisions - 1` 個の等間隔点を挿入したリングを返す。

    `subdivisions <= 1` のときは入力のコピーを返す。閉じ辺（末尾→先頭）も分割する。
    """
    pts = np.asarray(ring, dtype=np.float64)
    if subdivisions <= 1 or pts.shape[0] < 2:
        return pts.copy()
    nxt = np.roll(pts, -1, axis=0)
    t = (np.arange(subdivisions, dtype=np.float64) / subdivisions)[None, :, None]
    # (m, s, 2): 各辺の始点から t 刻みで補間し、行優先で平坦化する
    interp = pts[:, None, :] + (nxt - pts)[:, None, :] * t
    return interp.reshape(-1, 2)


__all__ = [
    "InvalidPolygonSpec",
    "PolygonSpec",
    "base_points",
    "star_walk",
    "generate_vertices",
    "euclidean_pattern",
    "euclidean_vertices",
    "subdivide_ring",
]
