"""
smoothing.py
------------
Subpixel smoothing of a material parameter array.

Each field component F_w sits at the centre of a voxel whose 2^K corners
lie on the complementary lattice.  Objects have already been painted on
those corners (`oind_cmp`), the last-placed object winning.  A voxel whose
corners all carry the same material keeps its raw sample.  Otherwise:

  - two materials, two objects: the foreground object's surface is queried
    for the nearest point and outward normal, the foreground volume
    fraction follows from the plane through that point, and Kottke's rule
    mixes the two tensors;
  - two materials spread over three or more objects: the normal is the sum
    of corner-to-centre directions of the foreground corners and the volume
    fraction is their share of the corners;
  - three or more materials, or a vanishing normal: plain arithmetic (E)
    or harmonic (H) mean over the corners.

Naming: `_cmp` arrays live on the field-component lattice (N points per
axis), `_c` arrays on the corner lattice (N+1 points, ghost included),
`_vxl` values belong to the voxel being processed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .grid import FieldKind, GridType, alter, component_grid_types, t_ind
from .material import MEAN_RULES, is_field_ortho_shape, kottke_avg_param
from .shapes import Shape, volfrac


@dataclass
class _ComponentGeometry:
    lcmp: tuple                 # voxel centres
    sigma_cmp: tuple            # False on symmetry planes
    lcmp_c: tuple               # voxel corners, untransformed
    dtau_c: tuple               # Bloch translation of each corner
    corners: np.ndarray         # (2^K, K) corner offsets
    nout_corners: np.ndarray    # (2^K, K) unit vectors corner -> centre


def corner_offsets(K: int) -> np.ndarray:
    return np.array(list(np.ndindex(*(2,) * K)), dtype=np.intp).reshape(2 ** K, K)


def count_diff(ind_c: np.ndarray, v: np.ndarray) -> tuple[int, int]:
    """Number of distinct values in `v` and the position in the sorted order
    `v[ind_c]` where the last new value starts (len(v) if uniform)."""
    sorted_v = v[ind_c]
    changes = np.flatnonzero(sorted_v[1:] != sorted_v[:-1]) + 1
    if changes.size == 0:
        return 1, v.size
    return changes.size + 1, int(changes[-1])


def mixed_voxels(oind_c: np.ndarray, oind2pind: np.ndarray, N: Sequence[int]) -> np.ndarray:
    """Indices (M_mixed, K) of voxels whose corners hold more than one material."""
    K = len(N)
    head = tuple(slice(0, n) for n in N)
    shifted = [tuple(slice(o, o + n) for o, n in zip(off, N)) for off in corner_offsets(K)[1:]]

    base = oind_c[head]
    multi_obj = np.zeros(tuple(N), dtype=bool)
    for sl in shifted:
        multi_obj |= oind_c[sl] != base

    # Different objects can still share a material.
    pind_c = oind2pind[oind_c]
    pbase = pind_c[head]
    multi_prm = np.zeros(tuple(N), dtype=bool)
    for sl in shifted:
        multi_prm |= pind_c[sl] != pbase
    return np.argwhere(multi_obj & multi_prm)


def kottke_input_simple(geom: _ComponentGeometry, fg_corners: np.ndarray) -> tuple[np.ndarray, float]:
    nout = geom.nout_corners[fg_corners].sum(axis=0)
    rvol = fg_corners.size / geom.corners.shape[0]
    return nout, rvol


def kottke_input_accurate(x0: np.ndarray, sigma_vxl: np.ndarray,
                          lvxl: tuple[np.ndarray, np.ndarray],
                          dfg: np.ndarray, shp_fg: Shape) -> tuple[np.ndarray, float]:
    """Outward normal and volume fraction of the foreground shape in the voxel.

    `dfg` moves the query into the domain when the foreground corner sits
    beyond a periodic boundary.  Normal components across a symmetry plane
    cancel against the mirror image and are dropped.
    """
    r0, nout = shp_fg.surfpt_nearby(x0 + dfg)
    r0 = r0 - dfg
    nout = np.where(sigma_vxl, nout, 0.0)
    rvol = 0.0
    if np.any(nout):
        rvol = volfrac(lvxl, nout, r0)
    return nout, rvol


def _smooth_param_vxl(ci: tuple, ind_c: np.ndarray, n_diffp: int,
                      pind_vxl: np.ndarray, oind_vxl: np.ndarray,
                      oind2shp: Sequence[Shape], oind2pind: np.ndarray,
                      pind2matprm: np.ndarray, geom: _ComponentGeometry,
                      mean_rule, field_ortho_shape: bool) -> np.ndarray:
    """Averaged tensor for a voxel holding exactly two material parameters."""
    ind_c1, ind_c2 = int(ind_c[-1]), int(ind_c[0])
    oind_c1, oind_c2 = oind_vxl[ind_c1], oind_vxl[ind_c2]
    group1, group2 = ind_c[n_diffp:], ind_c[:n_diffp]

    # A material group may still consist of several objects.
    with2objs = bool(np.all(oind_vxl[group1] == oind_c1) and np.all(oind_vxl[group2] == oind_c2))

    if oind_c1 > oind_c2:
        ind_fg, fg_corners = ind_c1, group1
        oind_fg, oind_bg = oind_c1, oind_c2
    else:
        ind_fg, fg_corners = ind_c2, group2
        oind_fg, oind_bg = oind_c2, oind_c1
    prm_fg = pind2matprm[oind2pind[oind_fg]]
    prm_bg = pind2matprm[oind2pind[oind_bg]]

    K = len(ci)
    if with2objs:
        x0 = np.array([geom.lcmp[k][ci[k]] for k in range(K)])
        sigma_vxl = np.array([geom.sigma_cmp[k][ci[k]] for k in range(K)])
        lvxl = (np.array([geom.lcmp_c[k][ci[k]] for k in range(K)]),
                np.array([geom.lcmp_c[k][ci[k] + 1] for k in range(K)]))
        ci_fg = np.asarray(ci) + geom.corners[ind_fg]
        dfg = np.array([geom.dtau_c[k][ci_fg[k]] for k in range(K)])
        nout, rvol = kottke_input_accurate(x0, sigma_vxl, lvxl, dfg, oind2shp[oind_fg])
    else:
        nout, rvol = kottke_input_simple(geom, fg_corners)

    if not np.any(nout):
        return mean_rule(pind2matprm[pind_vxl])
    if field_ortho_shape:
        return kottke_avg_param(prm_fg, prm_bg, rvol)
    return kottke_avg_param(prm_fg, prm_bg, rvol, nout)


def smooth_param(param: np.ndarray,
                 oind_cmp: Sequence[np.ndarray],
                 oind2shp: Sequence[Shape],
                 oind2pind: np.ndarray,
                 pind2matprm: np.ndarray,
                 gt0: Sequence[GridType],
                 l, lghost, sigma, dtau,
                 kind: FieldKind,
                 field_ortho_shape: bool | None = None) -> int:
    """
    Overwrite `param` (shape (N+1)... x Kf x Kf) in place with subpixel
    smoothed values and return the number of voxels overwritten.

    `oind_cmp` holds either Kf corner object-index arrays (one per field
    component; the diagonal entries are smoothed) or a single array shared
    by all components (the off-diagonal entries are smoothed, Kf >= 2).
    `l`, `lghost`, `sigma` and `dtau` are the per-parity grid quantities of
    `Grid`; `gt0` is the corner parity from `ft2gt`.
    """
    K = len(gt0)
    gt0 = tuple(GridType(g) for g in gt0)
    kind = FieldKind(kind)
    if param.ndim != K + 2:
        raise ValueError(f"parameter array must have {K + 2} dimensions, got {param.ndim}")
    kf = param.shape[-1]
    if param.shape[-2] != kf:
        raise ValueError(f"parameter tensors must be square, got {param.shape[-2:]}")
    nfam = len(oind_cmp)
    if nfam not in (kf, 1):
        raise ValueError(f"expected {kf} or 1 object-index arrays, got {nfam}")
    if pind2matprm.shape[1:] != (kf, kf):
        raise ValueError(f"material tensors must be {kf}x{kf}, got {pind2matprm.shape[1:]}")
    if field_ortho_shape is None:
        field_ortho_shape = is_field_ortho_shape(kf, K)
    if not field_ortho_shape and kf != K:
        raise ValueError("normal-dependent averaging needs the field and shape spaces to coincide")
    oind2pind = np.asarray(oind2pind)
    for oind_c in oind_cmp:
        if oind_c.size and (oind_c.min() < 0 or oind_c.max() >= oind2pind.size):
            raise ValueError("object index outside the object lookup tables")
    if oind2pind.size and (oind2pind.min() < 0 or oind2pind.max() >= pind2matprm.shape[0]):
        raise ValueError("parameter index outside the material lookup table")

    mean_rule = MEAN_RULES[kind]
    corners = corner_offsets(K)
    nout_corners = (1.0 - 2.0 * corners) / np.sqrt(K)
    offdiag = ~np.eye(kf, dtype=bool)

    if nfam == 1:
        families = [gt0]
    else:
        families = component_grid_types(gt0, kf)

    # Scratch buffers shared by every voxel.
    idx_vxl = np.empty(corners.shape[0], dtype=np.intp)
    pind_vxl = np.empty(corners.shape[0], dtype=oind2pind.dtype)

    nsmoothed = 0
    for nw, gt_cmp in enumerate(families):
        gt_cmp_c = tuple(alter(g) for g in gt_cmp)
        geom = _ComponentGeometry(
            lcmp=t_ind(l, gt_cmp),
            sigma_cmp=t_ind(sigma, gt_cmp),
            lcmp_c=t_ind(lghost, gt_cmp_c),
            dtau_c=t_ind(dtau, gt_cmp_c),
            corners=corners,
            nout_corners=nout_corners,
        )
        N = tuple(len(x) for x in geom.lcmp)
        shape_c = tuple(n + 1 for n in N)
        if param.shape[:K] != shape_c:
            raise ValueError(f"parameter array spatial shape {param.shape[:K]} != corner shape {shape_c}")
        oind_c = np.asarray(oind_cmp[nw])
        if oind_c.shape != shape_c:
            raise ValueError(f"object-index array {nw} has shape {oind_c.shape}, expected {shape_c}")

        oind_flat = oind_c.ravel()
        corner_flat = np.ravel_multi_index(tuple(corners.T), shape_c)
        oind_vxl = np.empty(corners.shape[0], dtype=oind_flat.dtype)

        for ci_arr in mixed_voxels(oind_c, oind2pind, N):
            ci = tuple(int(i) for i in ci_arr)
            np.add(corner_flat, np.ravel_multi_index(ci, shape_c), out=idx_vxl)
            np.take(oind_flat, idx_vxl, out=oind_vxl)
            np.take(oind2pind, oind_vxl, out=pind_vxl)

            ind_c = np.argsort(pind_vxl, kind="stable")
            nprm, n_diffp = count_diff(ind_c, pind_vxl)
            if nprm == 1:
                continue
            if nprm == 2:
                prm_vxl = _smooth_param_vxl(ci, ind_c, n_diffp, pind_vxl, oind_vxl,
                                            oind2shp, oind2pind, pind2matprm, geom,
                                            mean_rule, field_ortho_shape)
            else:
                prm_vxl = mean_rule(pind2matprm[pind_vxl])

            if nfam == kf:
                param[ci + (nw, nw)] = prm_vxl[nw, nw]
            else:
                cell = param[ci]
                cell[offdiag] = prm_vxl[offdiag]
            nsmoothed += 1
    return nsmoothed
