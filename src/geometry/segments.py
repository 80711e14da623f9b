"""
どこで: `geometry.segments`（共有数値プリミティブ）。
何を: 2 線分の交点計算、点と線分の距離、辺集合同士の総当たり交差カーネル（numba）を提供。
なぜ: 星形の自己交差と複製間交差で同一の判定規則（分母閾値・パラメータ範囲）を共有するため。

判定規則:
- 分母 `(y4-y3)(x2-x1) - (x4-x3)(y2-y1)` の絶対値が `PARALLEL_EPS` 未満なら平行/共線として交差なし。
  共線で重なる線分は特別扱いしない（既知の制約）。
- `0 <= ua <= 1` かつ `0 <= ub <= 1` のときのみ交点を返す。
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit  # type: ignore[attr-defined]

from common.types import Ring, Vec2

PARALLEL_EPS = 1e-10


def segment_intersection(p1: Vec2, p2: Vec2, p3: Vec2, p4: Vec2) -> Vec2 | None:
    """線分 (p1, p2) と (p3, p4) の交点を返す。交差しなければ None。

    純関数（副作用なし）。重複除去や閾値判定は呼び出し側で行う。
    """
    x1, y1 = float(p1[0]), float(p1[1])
    x2, y2 = float(p2[0]), float(p2[1])
    x3, y3 = float(p3[0]), float(p3[1])
    x4, y4 = float(p4[0]), float(p4[1])

    denominator = (y4 - y3) * (x2 - x1) - (x4 - x3) * (y2 - y1)
    if abs(denominator) < PARALLEL_EPS:
        return None

    ua = ((x4 - x3) * (y1 - y3) - (y4 - y3) * (x1 - x3)) / denominator
    ub = ((x2 - x1) * (y1 - y3) - (y2 - y1) * (x1 - x3)) / denominator
    if ua < 0.0 or ua > 1.0 or ub < 0.0 or ub > 1.0:
        return None

    return (x1 + ua * (x2 - x1), y1 + ua * (y2 - y1))


def point_segment_distance(p: Vec2, v: Vec2, w: Vec2) -> float:
    """点 p と線分 vw の最短距離（射影パラメータを [0, 1] にクランプ）。"""
    px, py = float(p[0]), float(p[1])
    vx, vy = float(v[0]), float(v[1])
    wx, wy = float(w[0]), float(w[1])
    dx = wx - vx
    dy = wy - vy
    l2 = dx * dx + dy * dy
    if l2 == 0.0:
        return math.hypot(px - vx, py - vy)
    t = ((px - vx) * dx + (py - vy) * dy) / l2
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (vx + t * dx), py - (vy + t * dy))


def ring_edges(ring: Ring) -> tuple[np.ndarray, np.ndarray]:
    """リングの辺を (始点配列, 終点配列) として返す。辺 i は行 i → 行 (i+1) mod m。"""
    starts = np.ascontiguousarray(ring, dtype=np.float64)
    ends = np.ascontiguousarray(np.roll(starts, -1, axis=0))
    return starts, ends


def point_edges_distance(x: float, y: float, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
    """点 (x, y) から各辺（starts[i] → ends[i]）への距離をまとめて返す（`point_segment_distance` の配列版）。"""
    d = ends - starts
    l2 = d[:, 0] * d[:, 0] + d[:, 1] * d[:, 1]
    rel_x = x - starts[:, 0]
    rel_y = y - starts[:, 1]
    safe_l2 = np.where(l2 > 0.0, l2, 1.0)
    t = np.where(l2 > 0.0, (rel_x * d[:, 0] + rel_y * d[:, 1]) / safe_l2, 0.0)
    t = np.clip(t, 0.0, 1.0)
    return np.hypot(rel_x - t * d[:, 0], rel_y - t * d[:, 1])


def edge_lengths(ring: Ring) -> np.ndarray:
    starts, ends = ring_edges(ring)
    return np.hypot(ends[:, 0] - starts[:, 0], ends[:, 1] - starts[:, 1])


@njit(cache=True)
def _intersect_edge_sets_njit(
    a_start: np.ndarray,
    a_end: np.ndarray,
    b_start: np.ndarray,
    b_end: np.ndarray,
    eps: float,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """辺集合 A × B の交点を i 優先順で列挙する（`segment_intersection` と同一規則）。"""
    na = a_start.shape[0]
    nb = b_start.shape[0]
    out = np.empty((na * nb, 2), dtype=np.float64)
    ia = np.empty(na * nb, dtype=np.int64)
    ib = np.empty(na * nb, dtype=np.int64)
    count = 0
    for i in range(na):
        x1 = a_start[i, 0]
        y1 = a_start[i, 1]
        x2 = a_end[i, 0]
        y2 = a_end[i, 1]
        for j in range(nb):
            x3 = b_start[j, 0]
            y3 = b_start[j, 1]
            x4 = b_end[j, 0]
            y4 = b_end[j, 1]
            den = (y4 - y3) * (x2 - x1) - (x4 - x3) * (y2 - y1)
            if abs(den) < eps:
                continue
            ua = ((x4 - x3) * (y1 - y3) - (y4 - y3) * (x1 - x3)) / den
            ub = ((x2 - x1) * (y1 - y3) - (y2 - y1) * (x1 - x3)) / den
            if ua < 0.0 or ua > 1.0 or ub < 0.0 or ub > 1.0:
                continue
            out[count, 0] = x1 + ua * (x2 - x1)
            out[count, 1] = y1 + ua * (y2 - y1)
            ia[count] = i
            ib[count] = j
            count += 1
    return out[:count], ia[:count], ib[:count]


def _intersect_edge_sets_py(
    a_start: np.ndarray,
    a_end: np.ndarray,
    b_start: np.ndarray,
    b_end: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    points: list[Vec2] = []
    ia: list[int] = []
    ib: list[int] = []
    for i in range(a_start.shape[0]):
        for j in range(b_start.shape[0]):
            hit = segment_intersection(a_start[i], a_end[i], b_start[j], b_end[j])
            if hit is None:
                continue
            points.append(hit)
            ia.append(i)
            ib.append(j)
    return (
        np.asarray(points, dtype=np.float64).reshape(-1, 2),
        np.asarray(ia, dtype=np.int64),
        np.asarray(ib, dtype=np.int64),
    )


def intersect_edge_sets(
    a_start: np.ndarray,
    a_end: np.ndarray,
    b_start: np.ndarray,
    b_end: np.ndarray,
    *,
    use_numba: bool = True,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """辺集合 A と B の全交点を返す。

    Returns
    -------
    (points, ia, ib)
        `points (K, 2)` と、それぞれを生んだ A 側/B 側の辺インデックス。順序は (i, j) の辞書順。
    """
    if a_start.shape[0] == 0 or b_start.shape[0] == 0:
        empty = np.empty(0, dtype=np.int64)
        return np.empty((0, 2), dtype=np.float64), empty, empty.copy()
    if use_numba:
        return _intersect_edge_sets_njit(
            np.ascontiguousarray(a_start, dtype=np.float64),
            np.ascontiguousarray(a_end, dtype=np.float64),
            np.ascontiguousarray(b_start, dtype=np.float64),
            np.ascontiguousarray(b_end, dtype=np.float64),
            PARALLEL_EPS,
        )
    return _intersect_edge_sets_py(a_start, a_end, b_start, b_end)


__all__ = [
    "PARALLEL_EPS",
    "segment_intersection",
    "point_segment_distance",
    "point_edges_distance",
    "ring_edges",
    "edge_lengths",
    "intersect_edge_sets",
]
