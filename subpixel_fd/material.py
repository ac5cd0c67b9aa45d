"""
material.py
-----------
Materials, placed objects, and the rules that mix two or more material
parameter tensors inside one voxel.

Kottke's rule (Kottke, Farjadpour & Johnson, PRE 77, 036611, 2008) rotates
both tensors into a frame whose first axis is the interface normal, averages
the "tau" transforms of the rotated tensors weighted by the volume fraction
and transforms back.  For an isotropic pair this reduces to the harmonic
mean for the normal component and the arithmetic mean for the tangential
ones.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import scipy.linalg as sla

from .grid import FieldKind
from .shapes import Shape


@dataclass(frozen=True)
class Material:
    """Scalar, diagonal (vector) or full-matrix eps and mu."""
    name: str
    eps: object = 1.0
    mu: object = 1.0

    def param(self, kind: FieldKind, kf: int) -> np.ndarray:
        """Kf x Kf complex tensor of eps (kind E) or mu (kind H)."""
        raw = self.eps if kind == FieldKind.E else self.mu
        return param_tensor(raw, kf)


@dataclass(frozen=True)
class Object:
    shape: Shape
    material: Material


@dataclass
class LookupTables:
    oind2shp: list[Shape]
    oind2pind: np.ndarray
    pind2matprm: np.ndarray
    materials: list[Material] = field(default_factory=list)


def param_tensor(raw, kf: int) -> np.ndarray:
    arr = np.asarray(raw, dtype=complex)
    if arr.ndim == 0:
        return arr * np.eye(kf, dtype=complex)
    if arr.ndim == 1:
        if arr.size != kf:
            raise ValueError(f"diagonal material parameter needs {kf} entries, got {arr.size}")
        return np.diag(arr)
    if arr.shape != (kf, kf):
        raise ValueError(f"material parameter tensor must be {kf}x{kf}, got {arr.shape}")
    return arr.copy()


def build_lookup_tables(objects: Sequence[Object], kind: FieldKind, kf: int) -> LookupTables:
    """Object index -> shape, object index -> param index -> tensor.

    Objects whose materials carry identical tensors for `kind` share a
    parameter index, so a voxel split between them counts as uniform.
    """
    if not objects:
        raise ValueError("at least one object is required")
    oind2shp = []
    oind2pind = np.empty(len(objects), dtype=np.intp)
    tensors: list[np.ndarray] = []
    materials: list[Material] = []
    for oind, obj in enumerate(objects):
        prm = obj.material.param(kind, kf)
        for pind, known in enumerate(tensors):
            if np.array_equal(known, prm):
                break
        else:
            pind = len(tensors)
            tensors.append(prm)
            materials.append(obj.material)
        oind2shp.append(obj.shape)
        oind2pind[oind] = pind
    return LookupTables(oind2shp, oind2pind, np.stack(tensors), materials)


def is_field_ortho_shape(kf: int, k: int) -> bool:
    """True when the field is always tangential to shape boundaries.

    Orthogonal field and shape subspaces need kf + k <= 3, which for the
    supported equations means kf != k; kf == k == 1 is treated the same way
    (1-D slab with the field along the slab surface).
    """
    return kf != k or kf == 1


def _normal_frame(nout: np.ndarray) -> np.ndarray:
    n = np.asarray(nout, dtype=float)
    n = n / np.linalg.norm(n)
    tangents = sla.null_space(n[None, :])
    return np.column_stack([n, tangents])


def _tau_trans(p: np.ndarray) -> np.ndarray:
    p11 = p[0, 0]
    tau = np.empty_like(p)
    tau[0, 0] = -1.0 / p11
    tau[0, 1:] = p[0, 1:] / p11
    tau[1:, 0] = p[1:, 0] / p11
    tau[1:, 1:] = p[1:, 1:] - np.outer(p[1:, 0], p[0, 1:]) / p11
    return tau


def _tau_inv_trans(tau: np.ndarray) -> np.ndarray:
    t11 = tau[0, 0]
    p = np.empty_like(tau)
    p[0, 0] = -1.0 / t11
    p[0, 1:] = -tau[0, 1:] / t11
    p[1:, 0] = -tau[1:, 0] / t11
    p[1:, 1:] = tau[1:, 1:] - np.outer(tau[1:, 0], tau[0, 1:]) / t11
    return p


def kottke_avg_param(prm_fg: np.ndarray, prm_bg: np.ndarray, rvol: float,
                     nout: np.ndarray | None = None) -> np.ndarray:
    """
    Effective tensor of a voxel filled by `prm_fg` with volume fraction
    `rvol` and by `prm_bg` elsewhere.

    With `nout` (the foreground's outward normal, same dimension as the
    tensors) the full Kottke rule is applied.  Without it the field is
    taken to be tangential to the interface and the tensors are averaged
    arithmetically.
    """
    prm_fg = np.asarray(prm_fg, dtype=complex)
    prm_bg = np.asarray(prm_bg, dtype=complex)
    if nout is None:
        return rvol * prm_fg + (1.0 - rvol) * prm_bg
    if np.size(nout) != prm_fg.shape[0]:
        raise ValueError("normal-dependent averaging needs the normal in the tensor space")
    S = _normal_frame(nout)
    tau_fg = _tau_trans(S.T @ prm_fg @ S)
    tau_bg = _tau_trans(S.T @ prm_bg @ S)
    tau_avg = rvol * tau_fg + (1.0 - rvol) * tau_bg
    return S @ _tau_inv_trans(tau_avg) @ S.T


def amean_param(prms: np.ndarray) -> np.ndarray:
    """Arithmetic mean of a stack of tensors, shape (n, Kf, Kf)."""
    return np.mean(np.asarray(prms, dtype=complex), axis=0)


def hmean_param(prms: np.ndarray) -> np.ndarray:
    """Harmonic mean of a stack of tensors; singular entries raise LinAlgError."""
    prms = np.asarray(prms, dtype=complex)
    return np.linalg.inv(np.mean(np.linalg.inv(prms), axis=0))


MEAN_RULES = {
    FieldKind.E: amean_param,
    FieldKind.H: hmean_param,
}
