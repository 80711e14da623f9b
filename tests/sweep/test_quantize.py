from __future__ import annotations

import pytest

from geometry.candidates import PointKind
from sweep.mapping import TriggerEvent
from sweep.quantize import (
    RELEASE_TOLERANCE,
    TICKS_PER_BEAT,
    TriggerQuantizer,
    parse_grid,
    seconds_to_ticks,
    ticks_to_seconds,
)


def _ev(key: int, t: float = 0.0) -> TriggerEvent:
    return TriggerEvent(
        position=(1.0, 0.0),
        frequency=440.0,
        pan=0.0,
        source_kind=PointKind.VERTEX,
        key=(key, 0),
        velocity=1.0,
        duration=0.1,
        time=t,
    )


@pytest.mark.parametrize(
    "grid,ticks",
    [
        ("1/4", TICKS_PER_BEAT),
        ("1/8", TICKS_PER_BEAT // 2),
        ("1/16", TICKS_PER_BEAT // 4),
        ("1/1", TICKS_PER_BEAT * 4),
        ("1/8T", 320),
        ("1/4T", 640),
        (" 1 / 8t ", 320),
    ],
)
def test_parse_grid(grid: str, ticks: int) -> None:
    assert parse_grid(grid) == ticks


@pytest.mark.parametrize("grid", ["", "quarter", "1/0", "2/4", "1/-4", None])
def test_parse_grid_rejects_malformed(grid) -> None:
    with pytest.raises(ValueError):
        parse_grid(grid)


def test_tick_conversion_round_trip_at_120_bpm() -> None:
    # 120 BPM: 1 拍 = 0.5 s
    assert seconds_to_ticks(0.5, 120.0) == pytest.approx(TICKS_PER_BEAT)
    assert ticks_to_seconds(TICKS_PER_BEAT, 120.0) == pytest.approx(0.5)


def test_event_inside_window_fires_immediately_snapped() -> None:
    q = TriggerQuantizer("1/4", bpm=120.0)  # grid 0.5 s, window min(0.03, 0.05) = 0.03
    assert q.snap_window == pytest.approx(0.03)
    out = q.submit(_ev(1), now=1.01)
    assert out is not None
    assert out.time == pytest.approx(1.0)
    assert q.pending_count() == 0


def test_event_outside_window_is_queued_for_next_grid_point() -> None:
    q = TriggerQuantizer("1/4", bpm=120.0)
    # 最寄りは 1.0（過去）→ 次のグリッド 1.5 へ
    assert q.submit(_ev(1), now=1.1) is None
    # 最寄りは 1.5（未来）→ 1.5 へ
    assert q.submit(_ev(2), now=1.4) is None
    assert q.pending_count() == 2

    assert q.release(1.3) == []
    released = q.release(1.5 - RELEASE_TOLERANCE / 2)
    assert [e.key for e in released] == [(1, 0), (2, 0)]
    assert all(e.time == pytest.approx(1.5) for e in released)
    assert q.pending_count() == 0


def test_release_is_time_ordered() -> None:
    q = TriggerQuantizer("1/8", bpm=120.0)  # grid 0.25 s
    q.submit(_ev(1), now=0.6)  # → 0.75
    q.submit(_ev(2), now=0.35)  # → 0.5
    released = q.release(1.0)
    assert [e.key for e in released] == [(2, 0), (1, 0)]
    assert [e.time for e in released] == pytest.approx([0.5, 0.75])


def test_triplet_window_is_ten_percent_of_grid_when_small() -> None:
    q = TriggerQuantizer("1/16T", bpm=240.0)
    assert q.snap_window == pytest.approx(q.grid_seconds * 0.1)
    assert q.snap_window < 0.03


def test_clear_drops_pending() -> None:
    q = TriggerQuantizer("1/4", bpm=120.0)
    q.submit(_ev(1), now=1.2)
    q.clear()
    assert q.release(10.0) == []
