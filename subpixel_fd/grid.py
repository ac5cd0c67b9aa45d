"""
grid.py
-------
Staggered (Yee) grid bookkeeping.

Every axis carries two interleaved lattices: the primal lattice (the nodes
handed to `Grid`, whose first and last entries are the domain boundaries)
and the dual lattice (cell midpoints).  Per-parity quantities are stored as
2-tuples indexed by `GridType`, each holding one 1-D array per axis:

    grid.l[GridType.DUAL][0]   # x-locations of dual points, ghost excluded

Quantities with a ghost point have N+1 entries: the primal ghost is the
upper boundary node, the dual ghost sits below the first midpoint.
"""
from __future__ import annotations

from enum import Enum, IntEnum
from typing import Sequence

import numpy as np


class GridType(IntEnum):
    PRIM = 0
    DUAL = 1


class FieldKind(Enum):
    E = "E"
    H = "H"


PRIM, DUAL = GridType.PRIM, GridType.DUAL


def alter(gt: GridType) -> GridType:
    return DUAL if gt == PRIM else PRIM


def ft2gt(ft: FieldKind, boundft: FieldKind) -> GridType:
    """Parity of the voxel-corner lattice of field `ft` on a `boundft` boundary."""
    return PRIM if ft == boundft else DUAL


def gt_w(nw: int, gt0: Sequence[GridType]) -> tuple[GridType, ...]:
    """Parities of the location of field component `nw`."""
    return tuple(alter(g) if k == nw else GridType(g) for k, g in enumerate(gt0))


def component_grid_types(gt0: Sequence[GridType], kf: int) -> list[tuple[GridType, ...]]:
    """Locations of each field-component family.

    When the field and shape spaces differ (kf != K) the field is normal to
    every shape axis, so all components share the corner parities.
    """
    gt0 = tuple(GridType(g) for g in gt0)
    if kf == 1:
        return [gt0]
    if kf == len(gt0):
        return [gt_w(nw, gt0) for nw in range(kf)]
    return [gt0] * kf


def t_ind(per_parity, gts: Sequence[GridType]) -> tuple:
    """Pick, axis by axis, the entry of `per_parity` matching `gts`."""
    return tuple(per_parity[int(g)][k] for k, g in enumerate(gts))


class Grid:
    """
    Rectilinear K-dimensional grid (K = 1, 2, 3) with per-axis boundary
    conditions.  Axes flagged in `isbloch` are periodic with phase factor
    `bloch_phase` (= exp(-i k L)); the remaining axes are symmetry planes.
    """

    def __init__(self, lprim: Sequence[Sequence[float]],
                 isbloch: Sequence[bool] | None = None,
                 bloch_phase: Sequence[complex] | None = None):
        axes = [np.asarray(x, dtype=float) for x in lprim]
        if not 1 <= len(axes) <= 3:
            raise ValueError(f"grid must have 1 to 3 axes, got {len(axes)}")
        for k, x in enumerate(axes):
            if x.ndim != 1 or x.size < 2:
                raise ValueError(f"axis {k}: primal nodes must be 1-D with at least 2 entries")
            if np.any(np.diff(x) <= 0.0):
                raise ValueError(f"axis {k}: primal nodes must be strictly increasing")
        K = len(axes)
        if isbloch is None:
            isbloch = [False] * K
        if bloch_phase is None:
            bloch_phase = [1.0] * K
        if len(isbloch) != K or len(bloch_phase) != K:
            raise ValueError("isbloch and bloch_phase need one entry per axis")

        self.K = K
        self.N = tuple(x.size - 1 for x in axes)
        self.isbloch = tuple(bool(b) for b in isbloch)
        self.bloch_phase = tuple(complex(p) for p in bloch_phase)
        self.lprim = tuple(axes)
        self.L = tuple(float(x[-1] - x[0]) for x in axes)

        ldual = tuple(0.5 * (x[:-1] + x[1:]) for x in axes)

        l_prim = tuple(x[:-1] for x in axes)
        self.l = (l_prim, ldual)

        ghost_dual = []
        tau_dual = []
        dtau_dual = []
        tau_prim = []
        dtau_prim = []
        for k in range(K):
            xp, xd, Lk = axes[k], ldual[k], self.L[k]
            if self.isbloch[k]:
                g = xd[-1] - Lk
                tau_g = xd[-1]
                shift_d = Lk
                tau_end = xp[0]
                shift_p = -Lk
            else:
                g = 2.0 * xp[0] - xd[0]
                tau_g = xd[0]
                shift_d = 0.0
                tau_end = xp[-1]
                shift_p = 0.0
            ghost_dual.append(np.concatenate([[g], xd]))
            tau_dual.append(np.concatenate([[tau_g], xd]))
            dd = np.zeros(xd.size + 1)
            dd[0] = shift_d
            dtau_dual.append(dd)

            tp = xp.copy()
            tp[-1] = tau_end
            tau_prim.append(tp)
            dp = np.zeros(xp.size)
            dp[-1] = shift_p
            dtau_prim.append(dp)

        self.lghost = (tuple(axes), tuple(ghost_dual))
        self.tau_lghost = (tuple(tau_prim), tuple(tau_dual))
        self.dtau = (tuple(dtau_prim), tuple(dtau_dual))

        sigma_prim = []
        for k in range(K):
            s = np.ones(self.N[k], dtype=bool)
            if not self.isbloch[k]:
                s[0] = False
            sigma_prim.append(s)
        self.sigma = (tuple(sigma_prim), tuple(np.ones(n, dtype=bool) for n in self.N))

        # DUAL fields span one primal cell, PRIM fields span the gap between dual points.
        self.dl = (tuple(np.diff(g) for g in ghost_dual), tuple(np.diff(x) for x in axes))

    @staticmethod
    def uniform(shape: Sequence[int], lengths: Sequence[float], *,
                origin: Sequence[float] | None = None,
                isbloch: Sequence[bool] | None = None,
                bloch_phase: Sequence[complex] | None = None) -> "Grid":
        """Equally spaced grid of `shape` cells spanning `lengths`."""
        if len(shape) != len(lengths):
            raise ValueError("shape and lengths must have the same number of axes")
        if origin is None:
            origin = [0.0] * len(shape)
        lprim = [o + np.linspace(0.0, float(Lk), int(n) + 1)
                 for n, Lk, o in zip(shape, lengths, origin)]
        return Grid(lprim, isbloch=isbloch, bloch_phase=bloch_phase)

    def __repr__(self) -> str:
        return f"Grid(N={self.N}, L={self.L}, isbloch={self.isbloch})"
