import math

import numpy as np
import pytest

hypothesis = pytest.importorskip("hypothesis", reason="hypothesis is a dev optional dependency")
from hypothesis import given, settings as hsettings, strategies as st  # type: ignore

from geometry.candidates import CandidatePoint, PointKind
from geometry.copies import layout_copies
from geometry.polygon import PolygonSpec
from sweep.config import EngineConfig
from sweep.crossing import TWO_PI, CrossingDetector, RotationState
from sweep.engine import LayerParams, build_candidates

# What this tests
# - 1 回転を任意の弧列に分割しても、各候補はちょうど 1 回だけ交差する（半開区間の規約）。
# - 任意の {n/k} と複製レイアウトで、候補キーは一意かつ座標は有限。


def _points(angles: list[float]) -> list[CandidatePoint]:
    return [
        CandidatePoint(math.cos(a), math.sin(a), PointKind.VERTEX, (i, 0), i)
        for i, a in enumerate(angles)
    ]


@given(
    angles=st.lists(st.floats(0.0, 6.28), min_size=1, max_size=12),
    weights=st.lists(st.integers(1, 50), min_size=1, max_size=20),
)
def test_one_revolution_crosses_each_candidate_once(angles, weights):
    det = CrossingDetector("all")
    det.set_candidates(_points(angles))
    total = sum(weights)
    counts = np.zeros(len(angles), dtype=int)
    prev = 0.0
    acc = 0
    for w in weights:
        acc += w
        cur = TWO_PI * (acc / total)
        counts += det.crossed_mask(RotationState(prev, cur))
        prev = cur
    assert (counts == 1).all()


@given(
    n=st.integers(3, 9),
    k_raw=st.integers(1, 8),
    count=st.integers(1, 3),
    step_scale=st.floats(0.5, 1.0),
    angle_deg=st.floats(0.0, 45.0),
)
@hsettings(deadline=None, max_examples=40)
def test_candidate_keys_are_unique_and_finite(n, k_raw, count, step_scale, angle_deg):
    k = 1 + (k_raw - 1) % (n - 1)
    params = LayerParams(
        PolygonSpec(n, k, 1.0),
        copies=layout_copies(count, step_scale, angle_deg),
        use_intersections=True,
        use_stars=True,
        use_cuts=True,
    )
    cands = build_candidates(params, EngineConfig(), use_numba=False)
    keys = [c.key for c in cands]
    assert len(keys) == len(set(keys))
    assert all(c.is_finite() for c in cands)
    assert [c.index for c in cands] == list(range(len(cands)))
    # 交点は外接円の内側に収まる
    assert max(c.radius for c in cands) <= 1.0 + 1e-9
