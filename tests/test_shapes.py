from __future__ import annotations

import numpy as np
import pytest

from subpixel_fd.shapes import Ball, Box, volfrac

UNIT_SQUARE = (np.zeros(2), np.ones(2))


def test_axis_aligned_plane_through_center() -> None:
    assert volfrac(UNIT_SQUARE, np.array([1.0, 0.0]), np.array([0.5, 0.9])) == pytest.approx(0.5)
    assert volfrac(UNIT_SQUARE, np.array([-1.0, 0.0]), np.array([0.25, 0.0])) == pytest.approx(0.75)


def test_corner_triangle() -> None:
    n = np.array([1.0, 1.0]) / np.sqrt(2.0)
    assert volfrac(UNIT_SQUARE, n, np.array([0.25, 0.25])) == pytest.approx(0.125)
    assert volfrac(UNIT_SQUARE, -n, np.array([0.25, 0.25])) == pytest.approx(0.875)


def test_non_cubic_box() -> None:
    box = (np.array([0.0, 0.0]), np.array([2.0, 1.0]))
    assert volfrac(box, np.array([1.0, 0.0]), np.array([0.5, 0.3])) == pytest.approx(0.25)
    # Diagonal of the rectangle splits it in half.
    n = np.array([1.0, 2.0])
    assert volfrac(box, n, np.array([1.0, 0.5])) == pytest.approx(0.5)


def test_oblique_plane_through_cube_center() -> None:
    cube = (np.zeros(3), np.ones(3))
    n = np.array([0.2, -0.7, 0.4])
    assert volfrac(cube, n, np.full(3, 0.5)) == pytest.approx(0.5)


def test_plane_outside_box() -> None:
    n = np.array([1.0, 0.3])
    assert volfrac(UNIT_SQUARE, n, np.array([5.0, 0.0])) == 1.0
    assert volfrac(UNIT_SQUARE, n, np.array([-5.0, 0.0])) == 0.0


def test_fraction_bounds_and_complement() -> None:
    rng = np.random.default_rng(7)
    box = (np.array([0.0, -1.0, 2.0]), np.array([0.5, 1.0, 2.3]))
    for _ in range(50):
        n = rng.normal(size=3)
        r0 = box[0] + rng.uniform(size=3) * (box[1] - box[0])
        f = volfrac(box, n, r0)
        assert 0.0 <= f <= 1.0
        assert f + volfrac(box, -n, r0) == pytest.approx(1.0, abs=1e-9)


def test_nearly_axis_aligned_normal() -> None:
    n = np.array([1.0, 1e-9])
    assert volfrac(UNIT_SQUARE, n, np.array([0.3, 0.5])) == pytest.approx(0.3, abs=1e-6)


def test_box_surface_queries() -> None:
    box = Box([0.0, 0.0], [2.0, 2.0])
    r0, n = box.surfpt_nearby(np.array([0.8, 0.1]))
    assert np.allclose(r0, [1.0, 0.1])
    assert np.allclose(n, [1.0, 0.0])

    r0, n = box.surfpt_nearby(np.array([2.0, 2.0]))
    assert np.allclose(r0, [1.0, 1.0])
    assert np.allclose(n, np.array([1.0, 1.0]) / np.sqrt(2.0))

    r0, n = box.surfpt_nearby(np.array([-0.1, -0.9]))
    assert np.allclose(r0, [-0.1, -1.0])
    assert np.allclose(n, [0.0, -1.0])


def test_ball_surface_queries_and_containment() -> None:
    ball = Ball([1.0, 0.0, 0.0], 0.5)
    r0, n = ball.surfpt_nearby(np.array([1.2, 0.0, 0.0]))
    assert np.allclose(r0, [1.5, 0.0, 0.0])
    assert np.allclose(n, [1.0, 0.0, 0.0])
    pts = np.array([[1.0, 0.0, 0.0], [1.0, 0.6, 0.0], [1.3, 0.3, 0.0]])
    assert ball.contains(pts).tolist() == [True, False, True]


def test_invalid_shapes() -> None:
    with pytest.raises(ValueError):
        Box([0.0, 0.0], [1.0, 0.0])
    with pytest.raises(ValueError):
        Ball([0.0], -1.0)
