from __future__ import annotations

import numpy as np
import pytest

from subpixel_fd.grid import DUAL, PRIM
from subpixel_fd.param import create_param_matrix, order_permutation, param_arr2mat


def _indexed_param(N, kf):
    """Every tensor entry distinct and nonzero."""
    shape = tuple(n + 1 for n in N) + (kf, kf)
    return (np.arange(np.prod(shape)) + 1.0).reshape(shape).astype(complex)


@pytest.mark.parametrize("kdiag, partner", [(0, [0, 1, 2]), (1, [1, 2, 0]), (2, [2, 0, 1])])
def test_band_pairs_rows_with_cyclic_columns(kdiag, partner) -> None:
    N = (2,)
    param = _indexed_param(N, 3)
    A = create_param_matrix(param, kdiag, N).toarray()
    assert np.count_nonzero(A) == 3 * 2
    for v in range(2):
        for r in range(3):
            assert A[3 * v + r, 3 * v + partner[r]] == param[v, r, partner[r]]


def test_band_in_block_ordering() -> None:
    N = (2, 2)
    m = 4
    param = _indexed_param(N, 2)
    A = create_param_matrix(param, 1, N, order_cmpfirst=False).toarray()
    for v, idx in enumerate(np.ndindex(*N)):
        assert A[v, m + v] == param[idx + (0, 1)]
        assert A[m + v, v] == param[idx + (1, 0)]


def test_scalar_field_uses_diagonal_directly() -> None:
    N = (2, 3)
    param = _indexed_param(N, 1)
    A = param_arr2mat(param, (PRIM, PRIM), N, [np.ones(2), np.ones(3)], [np.ones(2), np.ones(3)],
                      [False, False])
    assert np.allclose(A.toarray(), np.diag(param[:2, :3, 0, 0].ravel()))


def test_uniform_tensor_acts_as_tensor_on_uniform_field() -> None:
    N = (3, 4)
    param = np.zeros((4, 5, 2, 2), dtype=complex)
    param[..., 0, 0] = 2.0
    param[..., 1, 1] = 2.0
    param[..., 0, 1] = 0.3
    param[..., 1, 0] = 0.3
    ones = [np.ones(3), np.ones(4)]
    A = param_arr2mat(param, (PRIM, DUAL), N, ones, ones, [True, True], [1.0, 1.0])
    assert np.allclose(A @ np.ones(24), 2.3)


def test_orderings_are_permutations_of_each_other() -> None:
    rng = np.random.default_rng(3)
    N = (3, 2)
    shape = (4, 3, 2, 2)
    param = rng.normal(size=shape) + 1j * rng.normal(size=shape)
    dl = [rng.uniform(0.5, 1.5, size=n) for n in N]
    dlp = [rng.uniform(0.5, 1.5, size=n) for n in N]
    args = ((PRIM, DUAL), N, dl, dlp, [True, False], [np.exp(0.4j), 1.0])

    A_cmp = param_arr2mat(param, *args)
    A_blk = param_arr2mat(param, *args, order_cmpfirst=False)
    p = order_permutation(2, 6)
    assert np.allclose(A_cmp[p][:, p].toarray(), A_blk.toarray())


def test_order_permutation_layout() -> None:
    assert order_permutation(3, 2).tolist() == [0, 3, 1, 4, 2, 5]


def test_parameter_array_contracts() -> None:
    N = (2,)
    with pytest.raises(ValueError):
        create_param_matrix(np.ones((3, 2, 3), dtype=complex), 0, N)
    with pytest.raises(ValueError):
        create_param_matrix(np.ones((5, 1, 1), dtype=complex), 0, N)
    with pytest.raises(ValueError):
        create_param_matrix(np.ones((3, 3, 3), dtype=complex), 3, N)
    with pytest.raises(ValueError):
        param_arr2mat(np.ones((3, 1, 1), dtype=complex), (PRIM, PRIM), N,
                      [np.ones(2)], [np.ones(2)], [False])
