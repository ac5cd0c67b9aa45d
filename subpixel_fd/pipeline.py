"""End-to-end construction of the smoothed material operator on a grid."""
from __future__ import annotations

from typing import Sequence

import numpy as np
import scipy.sparse as sp

from .assignment import corner_object_indices, sample_param
from .grid import FieldKind, Grid, alter, component_grid_types, ft2gt, t_ind
from .material import Object, build_lookup_tables
from .param import param_arr2mat
from .smoothing import smooth_param


def build_param_array(grid: Grid, objects: Sequence[Object], kind: FieldKind,
                      boundft: FieldKind | Sequence[FieldKind], *,
                      kf: int | None = None,
                      field_ortho_shape: bool | None = None) -> tuple[np.ndarray, tuple, dict]:
    """
    Sample and smooth the eps (kind E) or mu (kind H) tensor array.

    `boundft` names, per axis or for all axes, the field whose tangential
    component vanishes on the domain boundary.  Returns the parameter array
    (shape (N+1)... x Kf x Kf), the corner parities gt0 and voxel counts.
    """
    kind = FieldKind(kind)
    if isinstance(boundft, (FieldKind, str)):
        boundft = [FieldKind(boundft)] * grid.K
    if len(boundft) != grid.K:
        raise ValueError("boundft needs one entry per axis")
    if kf is None:
        kf = grid.K
    gt0 = tuple(ft2gt(kind, FieldKind(b)) for b in boundft)

    tables = build_lookup_tables(objects, kind, kf)
    param = np.zeros(tuple(n + 1 for n in grid.N) + (kf, kf), dtype=complex)
    geometry = (grid.l, grid.lghost, grid.sigma, grid.dtau)
    stats = {"diagonal": 0, "offdiagonal": 0}

    # Diagonal entries: one voxel family per field component.
    families = component_grid_types(gt0, kf)
    oind_diag = []
    for nw, gt_cmp in enumerate(families):
        entries = np.zeros((kf, kf), dtype=bool)
        entries[nw, nw] = True
        sample_param(param, grid, objects, tables, gt_cmp, entries)
        oind_diag.append(corner_object_indices(grid, objects, gt_cmp))
    stats["diagonal"] = smooth_param(param, oind_diag, tables.oind2shp, tables.oind2pind,
                                     tables.pind2matprm, gt0, *geometry, kind,
                                     field_ortho_shape=field_ortho_shape)

    # Off-diagonal entries: shared family centred on the gt0 lattice.
    if kf >= 2:
        offdiag = ~np.eye(kf, dtype=bool)
        sample_param(param, grid, objects, tables, gt0, offdiag)
        oind_off = [corner_object_indices(grid, objects, gt0)]
        stats["offdiagonal"] = smooth_param(param, oind_off, tables.oind2shp, tables.oind2pind,
                                            tables.pind2matprm, gt0, *geometry, kind,
                                            field_ortho_shape=field_ortho_shape)
    return param, gt0, stats


def build_material_operator(grid: Grid, objects: Sequence[Object], kind: FieldKind,
                            boundft: FieldKind | Sequence[FieldKind], *,
                            kf: int | None = None,
                            field_ortho_shape: bool | None = None,
                            order_cmpfirst: bool = True) -> tuple[sp.csr_matrix, np.ndarray, dict]:
    """Smoothed parameter array assembled into a (Kf*M, Kf*M) sparse operator."""
    param, gt0, stats = build_param_array(grid, objects, kind, boundft, kf=kf,
                                          field_ortho_shape=field_ortho_shape)
    gt_in = tuple(alter(g) for g in gt0)
    matrix = param_arr2mat(param, gt0, grid.N, t_ind(grid.dl, gt_in), t_ind(grid.dl, gt0),
                           grid.isbloch, grid.bloch_phase, order_cmpfirst=order_cmpfirst)
    return matrix, param, stats
