"""
どこで: `sweep.quantize`（拍グリッドへのトリガ量子化）。
何を: "1/4", "1/8T" などのグリッドに沿ってイベント時刻を吸着し、窓外のイベントは次のグリッド点まで保留する。
なぜ: 幾何由来の不規則なトリガを、テンポに同期したタイミングで鳴らせるようにするため。

時間の単位:
- 1 拍 = 960 tick、1 小節 = 4 拍。
- "1/d" = 小節 / d、"1/dT"（3 連）= 小節 / d × 2/3（四捨五入）。
- 即時発火の許容窓 = min(0.03 s, グリッド長 × 10%)。保留イベントの解放許容 = 2 ms。
"""

from __future__ import annotations

import heapq
import itertools
import logging
import re
from dataclasses import replace

from .mapping import TriggerEvent

logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 960
BEATS_PER_MEASURE = 4
TICKS_PER_MEASURE = TICKS_PER_BEAT * BEATS_PER_MEASURE

SNAP_WINDOW_MAX = 0.03
SNAP_WINDOW_RATIO = 0.1
RELEASE_TOLERANCE = 0.002

_GRID_RE = re.compile(r"^\s*1\s*/\s*(\d+)\s*(T?)\s*$", re.IGNORECASE)


def parse_grid(value: str) -> int:
    """グリッド表記を tick 数に変換する。不正な表記は ValueError。"""
    m = _GRID_RE.match(value) if isinstance(value, str) else None
    if m is None:
        raise ValueError(f"invalid quantization grid {value!r}: expected '1/<n>' or '1/<n>T'")
    denominator = int(m.group(1))
    if denominator <= 0:
        raise ValueError(f"invalid quantization grid {value!r}: denominator must be positive")
    if m.group(2):
        return int(round(TICKS_PER_MEASURE / denominator * 2.0 / 3.0))
    ticks = TICKS_PER_MEASURE / denominator
    return int(round(ticks)) if ticks >= 1.0 else 1


def seconds_to_ticks(seconds: float, bpm: float) -> float:
    return seconds * bpm / 60.0 * TICKS_PER_BEAT


def ticks_to_seconds(ticks: float, bpm: float) -> float:
    return ticks / TICKS_PER_BEAT * 60.0 / bpm


class TriggerQuantizer:
    """イベントをグリッドに吸着/保留する。

    `submit` は即時発火できるイベント（時刻をグリッド点に置換）を返し、できなければ保留して None。
    保留分は `release(now)` で時刻順に取り出す。
    """

    def __init__(self, grid: str, bpm: float):
        self.grid = grid
        self.grid_ticks = parse_grid(grid)
        self.bpm = float(bpm)
        self._pending: list[tuple[float, int, TriggerEvent]] = []
        self._seq = itertools.count()

    @property
    def grid_seconds(self) -> float:
        return ticks_to_seconds(self.grid_ticks, self.bpm)

    @property
    def snap_window(self) -> float:
        return min(SNAP_WINDOW_MAX, self.grid_seconds * SNAP_WINDOW_RATIO)

    def nearest_grid_time(self, now: float) -> float:
        ticks = seconds_to_ticks(now, self.bpm)
        return ticks_to_seconds(round(ticks / self.grid_ticks) * self.grid_ticks, self.bpm)

    def submit(self, event: TriggerEvent, now: float) -> TriggerEvent | None:
        nearest = self.nearest_grid_time(now)
        if abs(nearest - now) < self.snap_window:
            return replace(event, time=nearest)
        execute_at = nearest if nearest > now else nearest + self.grid_seconds
        heapq.heappush(self._pending, (execute_at, next(self._seq), event))
        return None

    def release(self, now: float) -> list[TriggerEvent]:
        out: list[TriggerEvent] = []
        while self._pending and self._pending[0][0] <= now + RELEASE_TOLERANCE:
            execute_at, _, event = heapq.heappop(self._pending)
            out.append(replace(event, time=execute_at))
        if out:
            logger.debug("released %d quantized triggers at t=%.4f", len(out), now)
        return out

    def pending_count(self) -> int:
        return len(self._pending)

    def clear(self) -> None:
        self._pending.clear()


__all__ = [
    "TICKS_PER_BEAT",
    "BEATS_PER_MEASURE",
    "TICKS_PER_MEASURE",
    "RELEASE_TOLERANCE",
    "parse_grid",
    "seconds_to_ticks",
    "ticks_to_seconds",
    "TriggerQuantizer",
]
