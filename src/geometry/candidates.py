"""
どこで: `geometry.candidates`（トリガ候補点の表現と重複除去）。
何を: 候補点 `CandidatePoint`、由来種別 `PointKind`、マージ距離の算出、空間ハッシュによる近接判定。
なぜ: 頂点・自己交差・複製間交差を単一の集合に集め、閾値以内の点を 1 つに畳み込むため。

キーの規約:
- `key` は座標を量子 `q = threshold / 2` で丸めた整数組。保持される 2 点は必ず threshold 以上
  離れているため、同じキーを共有することはない。
- キーは回転に依存しないため、幾何の再構築をまたいで同一位置の点は同じキーを持つ。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from common.types import Vec2

DEFAULT_MERGE_RATIO = 1e-3

PointKey = tuple[int, int]


class PointKind(str, Enum):
    VERTEX = "vertex"
    SELF_INTERSECTION = "self_intersection"
    PAIRWISE_INTERSECTION = "pairwise_intersection"


@dataclass(frozen=True)
class CandidatePoint:
    """スイープ判定の対象となる固定点。

    Attributes
    ----------
    x, y : float
        ワールド座標（回転前）。
    kind : PointKind
        点の由来。
    key : PointKey
        丸め座標から導いた安定識別子。
    index : int
        現在の候補集合内での序数（パラメータモードの入力）。
    """

    x: float
    y: float
    kind: PointKind
    key: PointKey
    index: int = 0

    @property
    def position(self) -> Vec2:
        return (self.x, self.y)

    @property
    def radius(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def angle(self) -> float:
        """`atan2(y, x)` を [0, 2π) に正規化した角度位置。"""
        a = math.atan2(self.y, self.x)
        return a + 2.0 * math.pi if a < 0.0 else a

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def with_index(self, index: int) -> "CandidatePoint":
        return CandidatePoint(self.x, self.y, self.kind, self.key, index)


def merge_threshold(radius: float, ratio: float = DEFAULT_MERGE_RATIO) -> float:
    """外接半径に対するマージ距離（`radius * ratio`）。"""
    return float(radius) * float(ratio)


def point_key(x: float, y: float, threshold: float) -> PointKey:
    q = threshold * 0.5
    return (int(round(x / q)), int(round(y / q)))


class PointAccumulator:
    """閾値以内の近接点を畳み込みながら点を蓄積する。

    セル幅 = threshold の一様グリッドに点を登録し、近傍 3x3 セルのみを検査する。
    最初に追加された点が残り、後から来た近接点は捨てられる（追加順が結果を決める）。
    """

    def __init__(self, threshold: float):
        if not (threshold > 0.0) or not math.isfinite(threshold):
            raise ValueError(f"threshold must be a positive finite number: got {threshold!r}")
        self.threshold = float(threshold)
        self._cells: dict[tuple[int, int], list[int]] = {}
        self._points: list[CandidatePoint] = []

    def _cell(self, x: float, y: float) -> tuple[int, int]:
        return (math.floor(x / self.threshold), math.floor(y / self.threshold))

    def nearest_distance(self, x: float, y: float) -> float:
        """(x, y) から既存点までの最短距離（近傍セル内に無ければ inf）。"""
        cx, cy = self._cell(x, y)
        best = math.inf
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for idx in self._cells.get((cx + dx, cy + dy), ()):
                    p = self._points[idx]
                    d = math.hypot(p.x - x, p.y - y)
                    if d < best:
                        best = d
        return best

    def is_near(self, x: float, y: float) -> bool:
        return self.nearest_distance(x, y) < self.threshold

    def add(self, x: float, y: float, kind: PointKind) -> CandidatePoint | None:
        """近接点が無ければ追加して返す。畳み込まれた場合・非有限座標は None。"""
        x = float(x)
        y = float(y)
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        if self.is_near(x, y):
            return None
        point = CandidatePoint(x, y, kind, point_key(x, y, self.threshold), len(self._points))
        self._cells.setdefault(self._cell(x, y), []).append(len(self._points))
        self._points.append(point)
        return point

    def extend(self, points: Iterable[Vec2], kind: PointKind) -> list[CandidatePoint]:
        added: list[CandidatePoint] = []
        for x, y in points:
            p = self.add(x, y, kind)
            if p is not None:
                added.append(p)
        return added

    def points(self) -> tuple[CandidatePoint, ...]:
        return tuple(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[CandidatePoint]:
        return iter(self._points)


def dedupe(points: Iterable[Vec2], threshold: float, kind: PointKind) -> list[CandidatePoint]:
    """点列を閾値で畳み込み、`kind` の候補点として返す（追加順を保持）。"""
    acc = PointAccumulator(threshold)
    return acc.extend(points, kind)


__all__ = [
    "DEFAULT_MERGE_RATIO",
    "PointKey",
    "PointKind",
    "CandidatePoint",
    "merge_threshold",
    "point_key",
    "PointAccumulator",
    "dedupe",
]
