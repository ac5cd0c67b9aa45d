"""Paint object indices and raw material samples onto grid lattices."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from .grid import Grid, GridType, alter, t_ind
from .material import LookupTables, Object


def _lattice_points(coords: Sequence[np.ndarray]) -> np.ndarray:
    mesh = np.meshgrid(*coords, indexing="ij")
    return np.stack(mesh, axis=-1)


def assign_objects(points: np.ndarray, objects: Sequence[Object]) -> np.ndarray:
    """Index of the last-placed object containing each point, shape points.shape[:-1]."""
    points = np.asarray(points, dtype=float)
    oind = np.full(points.shape[:-1], -1, dtype=np.intp)
    for n, obj in enumerate(objects):
        oind[obj.shape.contains(points)] = n
    if np.any(oind < 0):
        raise ValueError(
            f"{int(np.count_nonzero(oind < 0))} grid points are not covered by any object; "
            "place a background object spanning the whole domain first"
        )
    return oind


def corner_object_indices(grid: Grid, objects: Sequence[Object],
                          gt_cmp: Sequence[GridType]) -> np.ndarray:
    """Object indices at the corners of the voxels centred on `gt_cmp` points.

    Corners beyond the domain are mapped back by the boundary conditions
    before testing containment.
    """
    gt_corner = tuple(alter(g) for g in gt_cmp)
    return assign_objects(_lattice_points(t_ind(grid.tau_lghost, gt_corner)), objects)


def sample_param(param: np.ndarray, grid: Grid, objects: Sequence[Object],
                 tables: LookupTables, gt_cmp: Sequence[GridType],
                 entries: np.ndarray) -> None:
    """Write raw tensor entries selected by the boolean (Kf, Kf) mask `entries`
    at the field locations `gt_cmp` (first N points along each axis)."""
    oind = assign_objects(_lattice_points(t_ind(grid.l, gt_cmp)), objects)
    prm = tables.pind2matprm[tables.oind2pind[oind]]
    region = param[tuple(slice(0, n) for n in grid.N)]
    region[..., entries] = prm[..., entries]
