"""
Subpixel smoothing of material tensors on a Yee grid and assembly of the
sparse material operator for frequency-domain Maxwell solvers.
"""
from .grid import DUAL, PRIM, FieldKind, Grid, GridType, alter, ft2gt, gt_w
from .material import Material, Object, amean_param, build_lookup_tables, hmean_param, kottke_avg_param
from .mean import create_mean
from .param import create_param_matrix, order_permutation, param_arr2mat
from .pipeline import build_material_operator, build_param_array
from .shapes import Ball, Box, volfrac
from .smoothing import smooth_param

__all__ = [
    "DUAL",
    "PRIM",
    "Ball",
    "Box",
    "FieldKind",
    "Grid",
    "GridType",
    "Material",
    "Object",
    "alter",
    "amean_param",
    "build_lookup_tables",
    "build_material_operator",
    "build_param_array",
    "create_mean",
    "create_param_matrix",
    "ft2gt",
    "gt_w",
    "hmean_param",
    "kottke_avg_param",
    "order_permutation",
    "param_arr2mat",
    "smooth_param",
    "volfrac",
]
