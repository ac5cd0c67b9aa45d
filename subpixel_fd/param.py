"""
param.py
--------
Turn a (smoothed) material parameter array into the sparse material
operator of the frequency-domain Maxwell system.

kdiag selects a cyclic band of the Kf x Kf tensor; for Kf = 3:

    kdiag = 0      kdiag = 1      kdiag = 2
    X . .          . X .          . . X
    . X .          . . X          X . .
    . . X          X . .          . X .

Diagonal entries live at their field component's own location.  Following
Oskooi et al. (Opt. Lett. 34, 2778, 2009) the off-diagonal entries live at
the voxel corners, so the input field is first averaged onto the corners
and the product is averaged back onto the output field's location:

    param_mat = P0 + sum_k Mout @ Pk @ Min

The input average is length weighted so that it approximates a line
integral on nonuniform grids.  The output average is a plain arithmetic
mean; the symmetrizing area factor applied on the left multiplies both
averaged fields by the same amount.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np
import scipy.sparse as sp

from .grid import DUAL, PRIM, GridType
from .mean import create_mean, dof_index


def _check_param(param: np.ndarray, N: Sequence[int]) -> int:
    K = len(N)
    if param.ndim != K + 2:
        raise ValueError(f"parameter array must have {K + 2} dimensions, got {param.ndim}")
    kf = param.shape[-1]
    if param.shape[-2] != kf:
        raise ValueError(f"parameter tensors must be square, got {param.shape[-2:]}")
    spatial = param.shape[:K]
    if spatial != tuple(N) and spatial != tuple(n + 1 for n in N):
        raise ValueError(f"parameter array spatial shape {spatial} does not match grid {tuple(N)}")
    return kf


def create_param_matrix(param: np.ndarray, kdiag: int, N: Sequence[int], *,
                        order_cmpfirst: bool = True) -> sp.csr_matrix:
    """Sparse matrix holding band `kdiag` of the tensor at every voxel.

    Row component r pairs with column component (r + kdiag) mod Kf.
    """
    N = tuple(int(n) for n in N)
    kf = _check_param(param, N)
    if not 0 <= kdiag < kf:
        raise ValueError(f"kdiag must lie in [0, {kf - 1}], got {kdiag}")
    m = int(np.prod(N))
    kfm = kf * m
    voxels = param[tuple(slice(0, n) for n in N)]
    vxl = np.arange(m)

    rows = np.empty(kfm, dtype=np.intp)
    cols = np.empty(kfm, dtype=np.intp)
    vals = np.empty(kfm, dtype=complex)
    for nv in range(kf):
        nw = (nv + kdiag) % kf
        span = slice(nv * m, (nv + 1) * m)
        rows[span] = dof_index(nv, vxl, kf, m, order_cmpfirst)
        cols[span] = dof_index(nw, vxl, kf, m, order_cmpfirst)
        vals[span] = voxels[..., nv, nw].ravel()

    return sp.coo_matrix((vals, (rows, cols)), shape=(kfm, kfm)).tocsr()


def param_arr2mat(param: np.ndarray,
                  gt0: Sequence[GridType],
                  N: Sequence[int],
                  dl: Sequence[np.ndarray],
                  dlp: Sequence[np.ndarray],
                  isbloch: Sequence[bool],
                  bloch_phase: Sequence[complex] | None = None,
                  *, order_cmpfirst: bool = True) -> sp.csr_matrix:
    """
    Assemble the material operator.

    `gt0` is the parity of the voxel corners (see `ft2gt`); `dl` holds the
    line segments of the input field locations and `dlp` those of the
    corners, one array of length N[k] per axis.
    """
    N = tuple(int(n) for n in N)
    K = len(N)
    if len(gt0) != K:
        raise ValueError("gt0 needs one entry per axis")
    kf = _check_param(param, N)
    if bloch_phase is None:
        bloch_phase = [1.0] * K

    # Input w-components are forward averaged along w when the corners are
    # dual, output components forward averaged when the corners are primal.
    isfwd_in = [GridType(g) == DUAL for g in gt0]
    isfwd_out = [GridType(g) == PRIM for g in gt0]

    param_mat = create_param_matrix(param, 0, N, order_cmpfirst=order_cmpfirst)
    if kf == 1:
        return param_mat

    Mout = create_mean(isfwd_out, N, isbloch=isbloch, bloch_phase=bloch_phase,
                       kf=kf, order_cmpfirst=order_cmpfirst)
    Min = create_mean(isfwd_in, N, dl, dlp, isbloch=isbloch, bloch_phase=bloch_phase,
                      kf=kf, order_cmpfirst=order_cmpfirst)
    for kdiag in range(1, kf):
        param_matk = create_param_matrix(param, kdiag, N, order_cmpfirst=order_cmpfirst)
        param_mat = param_mat + Mout @ param_matk @ Min
    return param_mat.tocsr()


def order_permutation(kf: int, m: int) -> np.ndarray:
    """Permutation p with A_block = A_cmp[p][:, p].

    p[m*c + v] = kf*v + c maps a block-major index onto the component-major
    index of the same degree of freedom.
    """
    return (kf * np.arange(m)[None, :] + np.arange(kf)[:, None]).ravel()
