"""
どこで: `sweep.markers`（マーカーのライフサイクル管理）。
何を: 候補点ごとのトリガ状態（ACTIVE → HIT → EXPIRED）をスロットマップ上で保持し、交差集合を受けて遷移させる。
なぜ: 反復中に配列を切り詰める方式を避け、インデックス安定なアリーナでスロットを明示的に再利用するため。

フレーム内の順序（`apply`）:
1. 前フレーム以前に HIT したマーカーを dt だけ減衰（寿命 <= 0 で EXPIRED）。
2. 交差した候補ごとに ACTIVE マーカーを取り出し（無ければ生成）、HIT に遷移してイベントを 1 つ発行。
3. EXPIRED を一括除去してスロットを解放。

HIT したマーカーは再武装しない。同じ候補の次のパスでは新しいマーカーが生成される。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Iterable, Iterator, NamedTuple, Optional, Sequence, TypeVar

from common.types import Vec2
from geometry.candidates import CandidatePoint, PointKey, PointKind

from .mapping import TriggerEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MarkerState(str, Enum):
    ACTIVE = "active"
    HIT = "hit"
    EXPIRED = "expired"


@dataclass
class Marker:
    """1 候補点の実行時トリガ状態（`MarkerLifecycleManager` のみが変更する）。"""

    key: PointKey
    x: float
    y: float
    angle: float
    kind: PointKind
    lifetime: float
    initial_lifetime: float
    created_at: float
    state: MarkerState = MarkerState.ACTIVE
    velocity: float = 0.0
    frequency: float = 0.0
    pan: float = 0.0
    just_hit: bool = False

    @property
    def lifetime_fraction(self) -> float:
        if self.state is MarkerState.ACTIVE:
            return 1.0
        if self.initial_lifetime <= 0.0:
            return 0.0
        return max(0.0, min(1.0, self.lifetime / self.initial_lifetime))


class MarkerHandle(NamedTuple):
    slot: int
    generation: int


class MarkerArena(Generic[T]):
    """世代付きハンドルで要素を参照するスロットマップ。

    解放したスロットはフリーリストに積み、次の `insert` で再利用する。
    再利用時に世代を進めるため、古いハンドルでの参照は None になる。
    """

    def __init__(self) -> None:
        self._items: list[Optional[T]] = []
        self._generations: list[int] = []
        self._free: list[int] = []
        self._count = 0

    def insert(self, item: T) -> MarkerHandle:
        if self._free:
            slot = self._free.pop()
            self._items[slot] = item
        else:
            slot = len(self._items)
            self._items.append(item)
            self._generations.append(0)
        self._count += 1
        return MarkerHandle(slot, self._generations[slot])

    def get(self, handle: MarkerHandle) -> Optional[T]:
        slot, generation = handle
        if slot < 0 or slot >= len(self._items) or self._generations[slot] != generation:
            return None
        return self._items[slot]

    def remove(self, handle: MarkerHandle) -> Optional[T]:
        item = self.get(handle)
        if item is None:
            return None
        slot = handle.slot
        self._items[slot] = None
        self._generations[slot] += 1
        self._free.append(slot)
        self._count -= 1
        return item

    def items(self) -> Iterator[tuple[MarkerHandle, T]]:
        """占有スロットを slot 順に列挙する（列挙中の remove は呼び出し側で後回しにすること）。"""
        for slot, item in enumerate(self._items):
            if item is not None:
                yield MarkerHandle(slot, self._generations[slot]), item

    def retain(self, keep: Callable[[T], bool]) -> int:
        """`keep` が偽の要素を除去し、除去数を返す（O(capacity)）。"""
        doomed = [h for h, item in self.items() if not keep(item)]
        for h in doomed:
            self.remove(h)
        return len(doomed)

    @property
    def capacity(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return self._count


@dataclass(frozen=True)
class MarkerView:
    """可視化側へ渡すマーカーの読み取り専用スナップショット。"""

    position: Vec2
    state: MarkerState
    lifetime_fraction: float
    key: PointKey
    kind: PointKind
    velocity: float
    frequency: float
    pan: float
    just_hit: bool


EventFactory = Callable[[CandidatePoint, float], TriggerEvent]


class MarkerLifecycleManager:
    def __init__(self, lifetime: float = 0.5, max_velocity: float = 1.0):
        self.lifetime = float(lifetime)
        self.max_velocity = float(max_velocity)
        self._arena: MarkerArena[Marker] = MarkerArena()
        self._active: dict[PointKey, MarkerHandle] = {}

    @property
    def arena(self) -> MarkerArena[Marker]:
        return self._arena

    def __len__(self) -> int:
        return len(self._arena)

    def _new_marker(self, candidate: CandidatePoint, now: float) -> Marker:
        return Marker(
            key=candidate.key,
            x=candidate.x,
            y=candidate.y,
            angle=candidate.angle,
            kind=candidate.kind,
            lifetime=self.lifetime,
            initial_lifetime=self.lifetime,
            created_at=now,
        )

    def arm(self, candidates: Iterable[CandidatePoint], now: float = 0.0) -> None:
        """ACTIVE 集団を候補集合に合わせて作り直す（HIT マーカーは減衰を続ける）。"""
        for handle in self._active.values():
            self._arena.remove(handle)
        self._active.clear()
        for c in candidates:
            if c.key in self._active:
                continue
            self._active[c.key] = self._arena.insert(self._new_marker(c, now))

    def active_count(self) -> int:
        return len(self._active)

    def apply(
        self,
        crossed: Sequence[CandidatePoint],
        now: float,
        dt: float,
        make_event: EventFactory,
    ) -> list[TriggerEvent]:
        """交差集合を反映し、このフレームで発行したイベントを返す。"""
        # 1) 既存 HIT の減衰
        for _, marker in self._arena.items():
            if marker.state is not MarkerState.HIT:
                continue
            marker.just_hit = False
            if dt <= 0.0:
                continue
            marker.lifetime -= dt
            if marker.lifetime <= 0.0:
                marker.lifetime = 0.0
                marker.velocity = 0.0
                marker.state = MarkerState.EXPIRED
            else:
                marker.velocity = self.max_velocity * marker.lifetime / marker.initial_lifetime

        # 2) 交差 → HIT
        events: list[TriggerEvent] = []
        for c in crossed:
            handle = self._active.pop(c.key, None)
            marker = self._arena.get(handle) if handle is not None else None
            if marker is None:
                marker = self._new_marker(c, now)
                self._arena.insert(marker)
            event = make_event(c, now)
            marker.state = MarkerState.HIT
            marker.velocity = self.max_velocity
            marker.just_hit = True
            marker.lifetime = marker.initial_lifetime
            marker.frequency = event.frequency
            marker.pan = event.pan
            events.append(event)

        # 3) EXPIRED の除去
        purged = self._arena.retain(lambda m: m.state is not MarkerState.EXPIRED)
        if purged:
            logger.debug("purged %d expired markers (%d live)", purged, len(self._arena))
        return events

    def views(self, *, include_active: bool = False) -> list[MarkerView]:
        """生存マーカーのスナップショット。

        既定では減衰中（HIT）のものだけを返す。`include_active=True` で未通過の ACTIVE も含める。
        """
        return [
            MarkerView(
                position=(m.x, m.y),
                state=m.state,
                lifetime_fraction=m.lifetime_fraction,
                key=m.key,
                kind=m.kind,
                velocity=m.velocity,
                frequency=m.frequency,
                pan=m.pan,
                just_hit=m.just_hit,
            )
            for _, m in self._arena.items()
            if include_active or m.state is not MarkerState.ACTIVE
        ]

    def clear(self) -> None:
        self._arena = MarkerArena()
        self._active.clear()


__all__ = [
    "MarkerState",
    "Marker",
    "MarkerHandle",
    "MarkerArena",
    "MarkerView",
    "MarkerLifecycleManager",
]
