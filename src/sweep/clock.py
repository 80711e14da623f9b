"""
どこで: `sweep.clock`（フレーム駆動の補助）。
何を: `Tickable` Protocol、固定順序で Tickable を呼ぶ `FrameClock`、BPM から回転角を積算する `RotationClock`、
      それらとエンジンを束ねる `SweepDriver`。
なぜ: タイマやワーカを持たず、ホストのループから `tick(dt)` を呼ぶだけで 1 フレームが完結するようにするため。

回転速度は bpm / 240 回転/秒（1 小節 = 4 拍で 1 回転）。
"""

from __future__ import annotations

import math
import time
from typing import Callable, Optional, Protocol, Sequence

from .crossing import RotationState
from .engine import FrameResult, TriggerEngine
from .mapping import TriggerEvent
from .markers import MarkerView


class Tickable(Protocol):
    """1 フレーム分の更新を行うインターフェース。"""

    def tick(self, dt: float) -> None:
        """内部状態を `dt` 秒ぶん進める。"""


class FrameClock:
    """Tickable を登録順に呼ぶホスト側ループの補助。

    - `fixed_dt` を与えると `tick()` は実時間を測らずその刻みで進む（ヘッドレス実行・テスト用）。
    - `max_dt` を与えると 1 フレームの dt をその値で頭打ちにする。
    - 経過フレーム数と累積時間を保持する。
    """

    def __init__(
        self,
        tickables: Sequence[Tickable],
        *,
        fixed_dt: Optional[float] = None,
        max_dt: Optional[float] = None,
    ):
        if fixed_dt is not None and not (math.isfinite(fixed_dt) and fixed_dt > 0.0):
            raise ValueError(f"fixed_dt must be a positive finite number: got {fixed_dt!r}")
        self._tickables = tuple(tickables)
        self.fixed_dt = fixed_dt
        self.max_dt = max_dt
        self._last_time = time.perf_counter()
        self.frame_count = 0
        self.elapsed = 0.0

    def tick(self, dt: float | None = None) -> float:
        """1 フレーム進め、実際に配った dt を返す。"""
        if dt is None:
            if self.fixed_dt is not None:
                dt = self.fixed_dt
            else:
                now = time.perf_counter()
                dt = now - self._last_time
                self._last_time = now
        if self.max_dt is not None and dt > self.max_dt:
            dt = self.max_dt

        for t in self._tickables:
            t.tick(dt)
        self.frame_count += 1
        if math.isfinite(dt) and dt > 0.0:
            self.elapsed += dt
        return dt

    def run(self, frames: int) -> None:
        """`frames` 回 `tick()` する（`fixed_dt` 前提）。"""
        if self.fixed_dt is None:
            raise ValueError("run() requires fixed_dt")
        for _ in range(max(0, int(frames))):
            self.tick()


class RotationClock:
    """フレーム dt を非有界の回転角 [rad] に積算する。

    負・非有限の dt は無視する。`max_dt` を与えると 1 フレームの dt をその値で頭打ちにする
    （ホストが一時停止から復帰したときの巨大な dt 対策）。
    """

    def __init__(self, bpm: float = 120.0, *, max_dt: Optional[float] = None, angle: float = 0.0):
        if not (bpm > 0.0) or not math.isfinite(bpm):
            raise ValueError(f"bpm must be a positive finite number: got {bpm!r}")
        self.bpm = float(bpm)
        self.max_dt = max_dt
        self._angle = float(angle)

    @property
    def angle(self) -> float:
        return self._angle

    @property
    def angular_velocity(self) -> float:
        """角速度 [rad/s]。"""
        return 2.0 * math.pi * self.bpm / 240.0

    def advance(self, dt: float) -> RotationState:
        previous = self._angle
        if math.isfinite(dt) and dt > 0.0:
            if self.max_dt is not None:
                dt = min(dt, self.max_dt)
            self._angle = previous + self.angular_velocity * dt
        return RotationState(previous, self._angle)


EventSink = Callable[[Sequence[TriggerEvent]], None]
MarkerSink = Callable[[Sequence[MarkerView]], None]


class SweepDriver:
    """RotationClock とエンジンを束ね、結果をシンクへ流す Tickable。"""

    def __init__(
        self,
        engine: TriggerEngine,
        rotation: RotationClock,
        *,
        on_events: Optional[EventSink] = None,
        on_markers: Optional[MarkerSink] = None,
        start_time: float = 0.0,
    ):
        self.engine = engine
        self.rotation = rotation
        self._on_events = on_events
        self._on_markers = on_markers
        self._now = float(start_time)
        self.last_result: Optional[FrameResult] = None

    @property
    def now(self) -> float:
        return self._now

    def tick(self, dt: float) -> None:
        state = self.rotation.advance(dt)
        if math.isfinite(dt) and dt > 0.0:
            self._now += dt
        result = self.engine.tick(self._now, state)
        self.last_result = result
        if self._on_events is not None and result.events:
            self._on_events(result.events)
        if self._on_markers is not None:
            self._on_markers(result.markers)


__all__ = ["Tickable", "FrameClock", "RotationClock", "SweepDriver"]
