"""
どこで: `geometry.pairwise`（複製間の交差探索）。
何を: 各複製を自身のスケール/回転で変換し、全ての非順序対 (a, b) の辺どうしの交点を求める。
なぜ: 回転・拡大した複製が重なる位置をトリガ点として扱うため。

計算量は O(copies² × n²)。パラメータ変更時のみ呼ばれ、フレーム毎には実行しない。
辺ループは `segments.intersect_edge_sets`（numba カーネル）に委譲する。
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from common.types import Ring

from .candidates import CandidatePoint, PointAccumulator, PointKind
from .copies import Copy
from .segments import intersect_edge_sets, ring_edges

logger = logging.getLogger(__name__)


def _drop_degenerate(starts: np.ndarray, ends: np.ndarray, threshold: float) -> tuple[np.ndarray, np.ndarray]:
    lengths = np.hypot(ends[:, 0] - starts[:, 0], ends[:, 1] - starts[:, 1])
    mask = lengths >= threshold
    return starts[mask], ends[mask]


def find_pairwise_intersections(
    base_ring: Ring,
    copies: Sequence[Copy],
    threshold: float,
    *,
    enabled: bool = True,
    use_numba: bool = True,
) -> list[CandidatePoint]:
    """複製間の交点を `PAIRWISE_INTERSECTION` 種別の候補点として返す。

    複製が 2 未満、または無効化されている場合は空リストを返す。
    いずれかの複製の頂点から閾値以内の交点は捨てる。
    """
    if not enabled or len(copies) < 2:
        return []

    rings = [c.apply(base_ring) for c in copies]
    edges = [_drop_degenerate(*ring_edges(r), threshold) for r in rings]
    all_vertices = np.concatenate(rings, axis=0)

    acc = PointAccumulator(threshold)
    raw = 0
    for a in range(len(rings)):
        a_start, a_end = edges[a]
        for b in range(a + 1, len(rings)):
            b_start, b_end = edges[b]
            hits, _, _ = intersect_edge_sets(a_start, a_end, b_start, b_end, use_numba=use_numba)
            raw += int(hits.shape[0])
            for x, y in hits:
                if not (math.isfinite(x) and math.isfinite(y)):
                    continue
                d = np.hypot(all_vertices[:, 0] - x, all_vertices[:, 1] - y)
                if np.min(d) < threshold:
                    continue
                acc.add(x, y, PointKind.PAIRWISE_INTERSECTION)

    logger.debug("pairwise: %d copies, %d raw hits, %d retained", len(copies), raw, len(acc))
    return list(acc.points())


__all__ = ["find_pairwise_intersections"]
