from __future__ import annotations

import numpy as np
import pytest

from subpixel_fd.grid import (
    DUAL,
    PRIM,
    FieldKind,
    Grid,
    alter,
    component_grid_types,
    ft2gt,
    gt_w,
    t_ind,
)


def test_parity_helpers() -> None:
    assert alter(PRIM) == DUAL and alter(DUAL) == PRIM
    assert ft2gt(FieldKind.E, FieldKind.E) == PRIM
    assert ft2gt(FieldKind.H, FieldKind.E) == DUAL
    assert gt_w(1, (PRIM, PRIM, DUAL)) == (PRIM, DUAL, DUAL)
    assert component_grid_types((PRIM, PRIM), 1) == [(PRIM, PRIM)]
    assert component_grid_types((PRIM, DUAL), 2) == [(DUAL, DUAL), (PRIM, PRIM)]
    assert component_grid_types((PRIM, PRIM), 3) == [(PRIM, PRIM)] * 3


def test_symmetry_axis_quantities() -> None:
    grid = Grid([[0.0, 1.0, 3.0]])
    assert grid.N == (2,)
    assert grid.L == (3.0,)
    assert np.allclose(grid.l[PRIM][0], [0.0, 1.0])
    assert np.allclose(grid.l[DUAL][0], [0.5, 2.0])
    assert np.allclose(grid.lghost[PRIM][0], [0.0, 1.0, 3.0])
    assert np.allclose(grid.lghost[DUAL][0], [-0.5, 0.5, 2.0])
    # The mirrored ghost maps back onto the first midpoint.
    assert np.allclose(grid.tau_lghost[DUAL][0], [0.5, 0.5, 2.0])
    assert np.allclose(grid.tau_lghost[PRIM][0], [0.0, 1.0, 3.0])
    assert not np.any(grid.dtau[PRIM][0]) and not np.any(grid.dtau[DUAL][0])
    assert grid.sigma[PRIM][0].tolist() == [False, True]
    assert grid.sigma[DUAL][0].tolist() == [True, True]
    assert np.allclose(grid.dl[PRIM][0], [1.0, 1.5])
    assert np.allclose(grid.dl[DUAL][0], [1.0, 2.0])


def test_bloch_axis_quantities() -> None:
    grid = Grid([[0.0, 1.0, 3.0]], isbloch=[True], bloch_phase=[1j])
    assert grid.bloch_phase == (1j,)
    assert np.allclose(grid.lghost[DUAL][0], [-1.0, 0.5, 2.0])
    assert np.allclose(grid.tau_lghost[DUAL][0], [2.0, 0.5, 2.0])
    assert np.allclose(grid.dtau[DUAL][0], [3.0, 0.0, 0.0])
    assert np.allclose(grid.tau_lghost[PRIM][0], [0.0, 1.0, 0.0])
    assert np.allclose(grid.dtau[PRIM][0], [0.0, 0.0, -3.0])
    assert grid.sigma[PRIM][0].tolist() == [True, True]
    assert np.allclose(grid.dl[PRIM][0], [1.5, 1.5])
    # Untransformed location = transformed location - translation.
    assert np.allclose(grid.tau_lghost[DUAL][0] - grid.dtau[DUAL][0], grid.lghost[DUAL][0])
    assert np.allclose(grid.tau_lghost[PRIM][0] - grid.dtau[PRIM][0], grid.lghost[PRIM][0])


def test_t_ind_picks_per_axis_parity() -> None:
    grid = Grid.uniform((4, 2), (2.0, 1.0), origin=(1.0, 0.0))
    assert np.allclose(grid.lprim[0], [1.0, 1.5, 2.0, 2.5, 3.0])
    lx, ly = t_ind(grid.l, (DUAL, PRIM))
    assert np.allclose(lx, [1.25, 1.75, 2.25, 2.75])
    assert np.allclose(ly, [0.0, 0.5])


@pytest.mark.parametrize(
    "lprim, kwargs",
    [
        ([[0.0, 1.0, 1.0]], {}),
        ([[0.0]], {}),
        ([[0.0, 1.0]] * 4, {}),
        ([[0.0, 1.0], [0.0, 1.0]], {"isbloch": [True]}),
    ],
)
def test_invalid_grids(lprim, kwargs) -> None:
    with pytest.raises(ValueError):
        Grid(lprim, **kwargs)
