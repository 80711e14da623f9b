from __future__ import annotations

import math

import numpy as np
import pytest

from geometry.candidates import CandidatePoint, PointKind, point_key
from sweep.crossing import TWO_PI, CrossingDetector, RotationState, normalize_angle, normalize_angles


def _at(deg: float, radius: float = 1.0) -> CandidatePoint:
    a = math.radians(deg)
    x, y = radius * math.cos(a), radius * math.sin(a)
    return CandidatePoint(x, y, PointKind.VERTEX, point_key(x, y, 1e-3))


def _rot(prev_deg: float, cur_deg: float) -> RotationState:
    return RotationState(math.radians(prev_deg), math.radians(cur_deg))


def _detector(*degs: float, policy: str = "all") -> tuple[CrossingDetector, list[CandidatePoint]]:
    pts = [_at(d) for d in degs]
    det = CrossingDetector(policy)
    det.set_candidates(pts)
    return det, pts


@pytest.mark.parametrize(
    "angle,expected",
    [
        (0.0, 0.0),
        (TWO_PI, 0.0),
        (-math.pi / 2, 3 * math.pi / 2),
        (5 * math.pi, math.pi),
        (-4 * TWO_PI - 0.5, TWO_PI - 0.5),
    ],
)
def test_normalize_angle(angle: float, expected: float) -> None:
    assert normalize_angle(angle) == pytest.approx(expected)
    assert 0.0 <= normalize_angle(angle) < TWO_PI


def test_normalize_angles_array() -> None:
    out = normalize_angles(np.array([-0.1, 0.0, TWO_PI + 0.1]))
    np.testing.assert_allclose(out, [TWO_PI - 0.1, 0.0, 0.1])


def test_non_wrapping_arc() -> None:
    det, (p15, p25) = _detector(15.0, 25.0)
    assert det.detect(_rot(10.0, 20.0)) == [p15.key]


def test_wrapping_arc_through_zero() -> None:
    det, (p355, p5, p180) = _detector(355.0, 5.0, 180.0)
    crossed = set(det.detect(_rot(350.0, 370.0)))
    assert crossed == {p355.key, p5.key}


def test_arc_bounds_are_half_open() -> None:
    # prev < pos <= cur（0° の点は atan2 で厳密に 0）
    det, (p0,) = _detector(0.0)
    assert det.detect(RotationState(0.0, 0.5)) == []
    assert det.detect(RotationState(-0.5, 0.0)) == [p0.key]


def test_unbounded_angles_are_normalized() -> None:
    det, (p15,) = _detector(15.0)
    assert det.detect(_rot(10.0 + 720.0, 20.0 + 720.0)) == [p15.key]
    assert det.detect(_rot(10.0 - 360.0, 20.0 - 360.0)) == [p15.key]


@pytest.mark.parametrize("prev,cur", [(20.0, 10.0), (10.0, 10.0)])
def test_non_positive_delta_crosses_nothing(prev: float, cur: float) -> None:
    det, _ = _detector(15.0, 5.0, 355.0)
    assert det.detect(_rot(prev, cur)) == []


def test_non_finite_rotation_crosses_nothing() -> None:
    det, _ = _detector(15.0)
    assert det.detect(RotationState(0.0, float("nan"))) == []
    assert det.detect(RotationState(0.0, float("inf"))) == []


def test_multi_revolution_crosses_everything_by_default() -> None:
    det, pts = _detector(15.0, 100.0, 200.0, 300.0)
    assert det.detect(_rot(10.0, 10.0 + 360.0 * 3 + 1.0)) == [p.key for p in pts]


def test_multi_revolution_arc_policy_checks_final_partial_arc() -> None:
    det, (p15, p100) = _detector(15.0, 100.0, policy="arc")
    assert det.detect(_rot(10.0, 20.0 + 720.0)) == [p15.key]


def test_detect_does_not_mutate_candidates() -> None:
    det, pts = _detector(15.0, 25.0)
    before = det.angles.copy()
    det.detect(_rot(0.0, 400.0))
    np.testing.assert_array_equal(det.angles, before)
    assert pts[0].x == pytest.approx(math.cos(math.radians(15.0)))


def test_empty_candidates() -> None:
    det = CrossingDetector()
    det.set_candidates([])
    assert det.detect(_rot(0.0, 90.0)) == []


def test_invalid_policy() -> None:
    with pytest.raises(ValueError):
        CrossingDetector("some")


def test_rotation_state_advanced() -> None:
    r = RotationState(0.0, 1.0).advanced(2.5)
    assert (r.previous, r.current) == (1.0, 2.5)
    assert r.delta == pytest.approx(1.5)
