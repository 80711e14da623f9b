from __future__ import annotations

import math

import numpy as np
import pytest

from geometry.polygon import (
    InvalidPolygonSpec,
    PolygonSpec,
    base_points,
    euclidean_pattern,
    euclidean_vertices,
    generate_vertices,
    star_walk,
    subdivide_ring,
)


def test_base_points_on_circle_at_even_angles() -> None:
    pts = base_points(6, 2.0)
    assert pts.shape == (6, 2)
    np.testing.assert_allclose(np.hypot(pts[:, 0], pts[:, 1]), 2.0)
    angles = np.mod(np.arctan2(pts[:, 1], pts[:, 0]), 2 * math.pi)
    np.testing.assert_allclose(angles, np.arange(6) * (2 * math.pi / 6), atol=1e-12)


def test_regular_polygon_keeps_angle_order() -> None:
    ring = generate_vertices(PolygonSpec(4, 1, 1.0))
    np.testing.assert_allclose(ring, [[1, 0], [0, 1], [-1, 0], [0, -1]], atol=1e-12)


def test_star_walk_follows_skip() -> None:
    assert star_walk(5, 2) == [0, 2, 4, 1, 3]
    assert star_walk(7, 3) == [0, 3, 6, 2, 5, 1, 4]


def test_star_vertices_follow_walk_order() -> None:
    ring = generate_vertices(PolygonSpec(5, 2, 1.0))
    base = base_points(5, 1.0)
    np.testing.assert_allclose(ring, base[[0, 2, 4, 1, 3]])


def test_compound_star_returns_single_component() -> None:
    # {6/2} は三角形 2 つの複合。0 を含む成分のみ
    assert star_walk(6, 2) == [0, 2, 4]
    ring = generate_vertices(PolygonSpec(6, 2, 1.0))
    assert ring.shape == (3, 2)


@pytest.mark.parametrize(
    "n,k,radius",
    [
        (2, 1, 1.0),
        (0, 1, 1.0),
        (5, 0, 1.0),
        (5, -2, 1.0),
        (5, 5, 1.0),
        (5, 10, 1.0),
        (5, 2, 0.0),
        (5, 2, -1.0),
        (5, 2, float("nan")),
        (5, 2, float("inf")),
        (5.0, 2, 1.0),
        (True, 1, 1.0),
    ],
)
def test_invalid_spec_fails_fast(n, k, radius) -> None:
    with pytest.raises(InvalidPolygonSpec):
        PolygonSpec(n, k, radius)


def test_invalid_spec_is_value_error() -> None:
    assert issubclass(InvalidPolygonSpec, ValueError)


def test_is_star() -> None:
    assert PolygonSpec(5, 2).is_star
    assert not PolygonSpec(5, 1).is_star


@pytest.mark.parametrize("n", [3, 5, 8, 13])
def test_euclidean_pattern_has_exact_pulse_count(n: int) -> None:
    for pulses in range(1, n + 1):
        assert sum(euclidean_pattern(n, pulses)) == pulses


def test_euclidean_pattern_layout() -> None:
    assert euclidean_pattern(8, 3) == [True, False, True, False, False, True, False, False]
    assert euclidean_pattern(4, 0) == [False] * 4


def test_euclidean_vertices_selects_onsets() -> None:
    ring = euclidean_vertices(PolygonSpec(8, 1, 1.0), 3)
    base = base_points(8, 1.0)
    np.testing.assert_allclose(ring, base[[0, 2, 5]])


def test_euclidean_vertices_rejects_star_and_bad_pulses() -> None:
    with pytest.raises(InvalidPolygonSpec):
        euclidean_vertices(PolygonSpec(5, 2), 3)
    with pytest.raises(InvalidPolygonSpec):
        euclidean_vertices(PolygonSpec(5, 1), 0)
    with pytest.raises(InvalidPolygonSpec):
        euclidean_vertices(PolygonSpec(5, 1), 6)


def test_subdivide_ring_inserts_evenly_spaced_points() -> None:
    square = generate_vertices(PolygonSpec(4, 1, 1.0))
    out = subdivide_ring(square, 2)
    assert out.shape == (8, 2)
    np.testing.assert_allclose(out[0], square[0])
    np.testing.assert_allclose(out[1], (square[0] + square[1]) / 2)
    # 閉じ辺（末尾→先頭）の中点
    np.testing.assert_allclose(out[7], (square[3] + square[0]) / 2)


def test_subdivide_ring_noop_returns_copy() -> None:
    square = generate_vertices(PolygonSpec(4, 1, 1.0))
    out = subdivide_ring(square, 1)
    np.testing.assert_array_equal(out, square)
    assert out is not square
