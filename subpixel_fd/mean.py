"""Averaging operators that move field components between staggered lattices."""
from __future__ import annotations

from typing import Sequence

import numpy as np
import scipy.sparse as sp


def dof_index(cmp: int, vxl: np.ndarray, kf: int, m: int, order_cmpfirst: bool) -> np.ndarray:
    """Row/column index of component `cmp` at linear voxel index `vxl`."""
    if order_cmpfirst:
        return kf * vxl + cmp
    return m * cmp + vxl


def _mean_along(nw: int, isfwd: bool, N: Sequence[int],
                dl: np.ndarray | None, dlp: np.ndarray | None,
                isbloch: bool, phase: complex) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """COO triplets of the M x M operator averaging neighbours along axis `nw`."""
    N = tuple(int(n) for n in N)
    m = int(np.prod(N))
    lin = np.arange(m).reshape(N)
    step = -1 if isfwd else 1
    nbr = np.roll(lin, step, axis=nw)

    # Entries whose neighbour wrapped around the domain end.
    edge = [slice(None)] * len(N)
    edge[nw] = -1 if isfwd else 0
    wrap_factor = (1.0 / phase if isfwd else phase) if isbloch else 0.0
    coef_nbr = np.ones(N, dtype=complex)
    coef_nbr[tuple(edge)] = wrap_factor

    iw = np.indices(N)[nw]
    jw = np.roll(iw, step, axis=nw)
    if dl is None:
        w_self = np.full(N, 0.5)
        w_nbr = np.full(N, 0.5)
    else:
        dl = np.asarray(dl, dtype=complex)
        dlp = np.asarray(dlp, dtype=complex)
        w_self = dl[iw] / (2.0 * dlp[iw])
        w_nbr = dl[jw] / (2.0 * dlp[iw])

    rows = np.concatenate([lin.ravel(), lin.ravel()])
    cols = np.concatenate([lin.ravel(), nbr.ravel()])
    vals = np.concatenate([np.asarray(w_self, dtype=complex).ravel(),
                           (w_nbr * coef_nbr).ravel()])
    keep = vals != 0
    return rows[keep], cols[keep], vals[keep]


def create_mean(isfwd: Sequence[bool], N: Sequence[int],
                dl: Sequence[np.ndarray] | None = None,
                dlp: Sequence[np.ndarray] | None = None,
                isbloch: Sequence[bool] | None = None,
                bloch_phase: Sequence[complex] | None = None,
                *, kf: int | None = None,
                order_cmpfirst: bool = True) -> sp.csr_matrix:
    """
    Block-diagonal averaging operator of size (kf*M, kf*M), M = prod(N).

    When kf equals the number of axes, component w is averaged along axis w,
    forward (f[i] + f[i+1]) / 2 if isfwd[w] else backward (f[i-1] + f[i]) / 2.
    Otherwise the components do not vary along their own direction and every
    block is the identity.

    With `dl` (segments of the input locations) and `dlp` (segments of the
    output locations) the average becomes a line-integral average
    (dl[i] f[i] + dl[j] f[j]) / (2 dlp[i]).
    """
    K = len(N)
    N = tuple(int(n) for n in N)
    if len(isfwd) != K:
        raise ValueError("isfwd needs one entry per axis")
    if (dl is None) != (dlp is None):
        raise ValueError("dl and dlp must be given together")
    if dl is not None:
        for k in range(K):
            if len(dl[k]) != N[k] or len(dlp[k]) != N[k]:
                raise ValueError(f"axis {k}: line segments must have {N[k]} entries")
    if isbloch is None:
        isbloch = [False] * K
    if bloch_phase is None:
        bloch_phase = [1.0] * K
    if kf is None:
        kf = K
    m = int(np.prod(N))

    rows, cols, vals = [], [], []
    for nw in range(kf):
        if kf == K:
            r, c, v = _mean_along(nw, bool(isfwd[nw]), N,
                                  None if dl is None else dl[nw],
                                  None if dlp is None else dlp[nw],
                                  bool(isbloch[nw]), complex(bloch_phase[nw]))
        else:
            r = c = np.arange(m)
            v = np.ones(m, dtype=complex)
        rows.append(dof_index(nw, r, kf, m, order_cmpfirst))
        cols.append(dof_index(nw, c, kf, m, order_cmpfirst))
        vals.append(v)

    return sp.coo_matrix(
        (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
        shape=(kf * m, kf * m),
    ).tocsr()
