"""Shapes placed on the grid and the voxel volume-fraction query."""
from __future__ import annotations

import itertools
import math
from typing import Sequence

import numpy as np

# Normal components smaller than this (relative to the largest) are treated
# as zero by volfrac; keeps the inclusion-exclusion sum well conditioned.
NORMAL_REL_TOL = 1e-6


class Shape:
    """Base class: K-dimensional solid with a nearest-surface query."""

    K: int

    def contains(self, points: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def surfpt_nearby(self, x: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return (nearest surface point, unit outward normal there)."""
        raise NotImplementedError

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError


class Box(Shape):
    """Axis-aligned box given by its center and edge lengths."""

    def __init__(self, center: Sequence[float], size: Sequence[float]):
        self.center = np.asarray(center, dtype=float)
        self.size = np.asarray(size, dtype=float)
        if self.center.ndim != 1 or self.center.shape != self.size.shape:
            raise ValueError("Box center and size must be 1-D with matching length")
        if np.any(self.size <= 0.0):
            raise ValueError("Box edge lengths must be positive")
        self.K = self.center.size
        self.half = 0.5 * self.size

    def contains(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float)
        return np.all(np.abs(points - self.center) <= self.half, axis=-1)

    def surfpt_nearby(self, x: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=float)
        d = x - self.center
        slack = self.half - np.abs(d)
        if np.all(slack >= 0.0):
            # Inside or on the surface: project onto the closest face.
            k = int(np.argmin(slack))
            sgn = 1.0 if d[k] >= 0.0 else -1.0
            r0 = x.copy()
            r0[k] = self.center[k] + sgn * self.half[k]
            nout = np.zeros(self.K)
            nout[k] = sgn
            return r0, nout
        r0 = np.clip(x, self.center - self.half, self.center + self.half)
        v = x - r0
        return r0, v / np.linalg.norm(v)

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        return self.center - self.half, self.center + self.half

    def __repr__(self) -> str:
        return f"Box(center={self.center.tolist()}, size={self.size.tolist()})"


class Ball(Shape):
    """Disk / sphere (interval in 1-D)."""

    def __init__(self, center: Sequence[float], radius: float):
        self.center = np.asarray(center, dtype=float)
        if self.center.ndim != 1:
            raise ValueError("Ball center must be 1-D")
        if radius <= 0.0:
            raise ValueError("Ball radius must be positive")
        self.radius = float(radius)
        self.K = self.center.size

    def contains(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float)
        return np.sum((points - self.center) ** 2, axis=-1) <= self.radius ** 2

    def surfpt_nearby(self, x: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        v = np.asarray(x, dtype=float) - self.center
        nv = np.linalg.norm(v)
        if nv == 0.0:
            nout = np.zeros(self.K)
            nout[0] = 1.0
        else:
            nout = v / nv
        return self.center + self.radius * nout, nout

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        return self.center - self.radius, self.center + self.radius

    def __repr__(self) -> str:
        return f"Ball(center={self.center.tolist()}, radius={self.radius})"


def volfrac(bounds: tuple[np.ndarray, np.ndarray], nout: np.ndarray, r0: np.ndarray) -> float:
    """
    Fraction of the box `bounds = (lo, hi)` on the inner side of the plane
    through `r0` with outward normal `nout`, i.e. where (x - r0)·nout <= 0.

    The box is mapped onto the unit cube, axes with a negative normal
    component are mirrored so every coefficient is non-negative, and the
    volume of {y in [0,1]^m : c·y <= d} is evaluated by inclusion-exclusion
    over the cube vertices.
    """
    lo = np.asarray(bounds[0], dtype=float)
    hi = np.asarray(bounds[1], dtype=float)
    n = np.asarray(nout, dtype=float)
    c = n * (hi - lo)
    d = float(np.dot(n, np.asarray(r0, dtype=float) - lo))

    neg = c < 0.0
    d -= float(c[neg].sum())
    c = np.abs(c)

    cmax = c.max() if c.size else 0.0
    if cmax == 0.0:
        return 1.0 if d >= 0.0 else 0.0
    c = c[c > NORMAL_REL_TOL * cmax] / cmax
    d /= cmax

    m = c.size
    if d <= 0.0:
        return 0.0
    if d >= c.sum():
        return 1.0
    total = 0.0
    for vertex in itertools.product((0, 1), repeat=m):
        s = d - float(np.dot(c, vertex))
        if s > 0.0:
            total += (-1) ** sum(vertex) * s ** m
    frac = total / (math.factorial(m) * float(np.prod(c)))
    return min(max(frac, 0.0), 1.0)
