"""
どこで: `geometry.star`（星形多角形の自己交差探索）。
何を: {n/k} の描画順リングから非隣接辺どうしの交点を求め、重複・頂点近傍・他辺近傍の点を捨てて返す。
なぜ: 星形の「内側の角」を追加のトリガ点として扱うため。

探索条件:
- `has_self_intersections(n, k)` が真（gcd(n, k) = 1 かつ 1 < k < n/2）のときだけ探索する。
- 辺 i と j（j >= i + 2、かつ折り返しの隣接対 (0, m-1) を除く）を対象にする。
- 閾値より短い辺は縮退辺として除外する。
- 各辺で端点に最も近い交点だけを残す（外形の内角 n 点）。{7/3} の内側の輪は返さない。
"""

from __future__ import annotations

import logging
import math
from numbers import Integral

import numpy as np

from common.types import Ring

from .candidates import CandidatePoint, PointAccumulator, PointKind
from .segments import edge_lengths, intersect_edge_sets, point_edges_distance, ring_edges

logger = logging.getLogger(__name__)


def has_self_intersections(n: object, k: object) -> bool:
    """{n/k} が自己交差を持つ単一サイクルの星形かどうか。整数でない/正でない入力は False。"""
    if isinstance(n, bool) or isinstance(k, bool):
        return False
    if not isinstance(n, Integral) or not isinstance(k, Integral):
        return False
    n_i = int(n)
    k_i = int(k)
    if n_i <= 0 or k_i <= 0:
        return False
    return math.gcd(n_i, k_i) == 1 and 1 < k_i and 2 * k_i < n_i


def _outline_corner_mask(
    hits: np.ndarray, ia: np.ndarray, ib: np.ndarray, starts: np.ndarray, ends: np.ndarray
) -> np.ndarray:
    """外形の内角にあたる交点のマスクを返す。

    各辺上の交点を「近い方の端点からの距離」で並べ、上位 2 点を残す（両端に 1 点ずつ）。
    交点を作る 2 辺の双方で上位 2 点に入るものだけが内角。
    """
    rank_ok = np.zeros(hits.shape[0], dtype=np.int64)
    for e in range(starts.shape[0]):
        idx = np.flatnonzero((ia == e) | (ib == e))
        if idx.size == 0:
            continue
        p = hits[idx]
        d = np.minimum(
            np.hypot(p[:, 0] - starts[e, 0], p[:, 1] - starts[e, 1]),
            np.hypot(p[:, 0] - ends[e, 0], p[:, 1] - ends[e, 1]),
        )
        rank_ok[idx[np.argsort(d, kind="stable")[:2]]] += 1
    return rank_ok == 2


def find_self_intersections(
    ring: Ring,
    k: int,
    threshold: float,
    *,
    use_numba: bool = True,
) -> list[CandidatePoint]:
    """星形リングの自己交差点を返す。

    Parameters
    ----------
    ring : Ring
        `generate_vertices` が返す描画順の頂点列（m = n 行）。
    k : int
        スキップ値。
    threshold : float
        マージ距離。重複・頂点近傍・他辺近傍の判定に共通で用いる。
    use_numba : bool
        辺集合の総当たりに numba カーネルを使うか。

    Returns
    -------
    list[CandidatePoint]
        `SELF_INTERSECTION` 種別の候補点（辺対 (i, j) の辞書順で採用された順）。
    """
    pts = np.asarray(ring, dtype=np.float64)
    m = int(pts.shape[0])
    if not has_self_intersections(m, k):
        return []

    starts, ends = ring_edges(pts)
    lengths = edge_lengths(pts)
    hits, ia, ib = intersect_edge_sets(starts, ends, starts, ends, use_numba=use_numba)

    keep = (ib >= ia + 2) & ~((ia == 0) & (ib == m - 1))
    keep &= (lengths[ia] >= threshold) & (lengths[ib] >= threshold)
    hits = hits[keep]
    ia = ia[keep]
    ib = ib[keep]
    corner = _outline_corner_mask(hits, ia, ib, starts, ends)
    hits = hits[corner]
    ia = ia[corner]
    ib = ib[corner]

    acc = PointAccumulator(threshold)
    rejected = 0
    for (x, y), i, j in zip(hits, ia, ib):
        if not (math.isfinite(x) and math.isfinite(y)):
            rejected += 1
            continue
        if np.min(np.hypot(pts[:, 0] - x, pts[:, 1] - y)) < threshold:
            rejected += 1
            continue
        dist = point_edges_distance(x, y, starts, ends)
        dist[[i, j]] = np.inf
        if np.min(dist) < threshold:
            rejected += 1
            continue
        if acc.add(x, y, PointKind.SELF_INTERSECTION) is None:
            rejected += 1

    logger.debug("star {%d/%d}: %d self-intersections (%d rejected)", m, k, len(acc), rejected)
    return list(acc.points())


__all__ = ["has_self_intersections", "find_self_intersections"]
