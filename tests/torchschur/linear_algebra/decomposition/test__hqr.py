"""Tests for the Hessenberg QR algorithm."""

import math

import numpy
import pytest
import scipy.linalg
import torch

from torchschur.linear_algebra.decomposition import (
    DimensionError,
    HQRState,
    hessenberg,
    hqr,
)


def _random_hessenberg(n, seed, dtype=torch.float64):
    torch.manual_seed(seed)
    a = torch.randn(n, n, dtype=dtype)
    result = hessenberg(a)
    return a, result.H.clone(), result.Q.clone()


def _workspace(n, dtype=torch.float64):
    return torch.zeros(n, dtype=dtype), torch.zeros(n, dtype=dtype)


def _sort_complex(values):
    return numpy.sort_complex(numpy.asarray(values))


class TestHQR:
    """Tests for hqr."""

    def test_scalar(self):
        """A 1x1 matrix is its own eigenvalue."""
        h = torch.tensor([[5.0]], dtype=torch.float64)
        wr, wi = _workspace(1)

        status = hqr(h, 0, 0, wr, wi)

        assert status == 0
        assert wr.tolist() == [5.0]
        assert wi.tolist() == [0.0]

    def test_rotation_generator(self):
        """[[0, -1], [1, 0]] has eigenvalues +/- i."""
        h = torch.tensor([[0.0, -1.0], [1.0, 0.0]], dtype=torch.float64)
        wr, wi = _workspace(2)

        status = hqr(h, 0, 1, wr, wi)

        assert status == 0
        assert wr.tolist() == [0.0, 0.0]
        assert wi.tolist() == [1.0, -1.0]

    def test_diagonal_needs_no_sweeps(self):
        """A diagonal matrix converges without spending any budget."""
        d = torch.tensor([4.0, -1.0, 2.5, 3.0], dtype=torch.float64)
        h = torch.diag(d)
        z = torch.eye(4, dtype=torch.float64)
        wr, wi = _workspace(4)
        state = HQRState(itn=0)

        status = hqr(h, 0, 3, wr, wi, True, z, state=state)

        assert status == 0
        assert state.sweeps == 0
        torch.testing.assert_close(wr, d, rtol=0, atol=0)
        assert torch.all(wi == 0)
        torch.testing.assert_close(z, torch.eye(4, dtype=torch.float64))

    def test_real_pair_is_triangularized(self):
        """A 2x2 block with real eigenvalues is rotated to triangular form."""
        a = torch.tensor([[1.0, 2.0], [3.0, 4.0]], dtype=torch.float64)
        h = a.clone()
        z = torch.eye(2, dtype=torch.float64)
        wr, wi = _workspace(2)

        status = hqr(h, 0, 1, wr, wi, True, z)

        assert status == 0
        assert h[1, 0].item() == 0.0
        assert torch.all(wi == 0)
        expected = sorted([(5 - math.sqrt(33)) / 2, (5 + math.sqrt(33)) / 2])
        torch.testing.assert_close(
            torch.sort(wr).values,
            torch.tensor(expected, dtype=torch.float64),
        )
        torch.testing.assert_close(h.diagonal(), wr)
        torch.testing.assert_close(z @ h @ z.mT, a)

    def test_budget_exhausted(self):
        """With no budget an unconverged matrix reports its last row."""
        _, h, z = _random_hessenberg(4, seed=7)
        h_before = h.clone()
        z_before = z.clone()
        wr, wi = _workspace(4)

        status = hqr(h, 0, 3, wr, wi, True, z, max_iterations=0)

        assert status == 4
        torch.testing.assert_close(h, h_before, rtol=0, atol=0)
        torch.testing.assert_close(z, z_before, rtol=0, atol=0)

    @pytest.mark.parametrize("seed", [123, 623, 134, 5])
    def test_schur_form(self, seed):
        """H becomes quasi-upper-triangular and Z H Z^T reproduces A."""
        n = 12
        a, h, z = _random_hessenberg(n, seed)
        wr, wi = _workspace(n)

        status = hqr(h, 0, n - 1, wr, wi, True, z)

        assert status == 0

        # Strictly below the subdiagonal everything is zero.
        assert torch.all(torch.tril(h, diagonal=-2) == 0)

        k = 0
        while k < n - 1:
            if wi[k] > 0:
                assert h[k + 1, k] != 0
                assert wi[k + 1] == -wi[k]
                assert wr[k + 1] == wr[k]
                k += 2
            else:
                assert wi[k] == 0
                assert h[k + 1, k] == 0
                k += 1

        eps = torch.finfo(torch.float64).eps
        residual = torch.linalg.matrix_norm(z @ h @ z.mT - a)
        assert residual <= 100 * n * eps * torch.linalg.matrix_norm(a)

        identity = torch.eye(n, dtype=torch.float64)
        torch.testing.assert_close(
            z.mT @ z, identity, rtol=1e-12, atol=1e-12
        )

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_eigenvalues_match_scipy(self, seed):
        """Eigenvalues agree with scipy.linalg.eigvals."""
        n = 9
        a, h, _ = _random_hessenberg(n, seed)
        wr, wi = _workspace(n)

        status = hqr(h, 0, n - 1, wr, wi)

        assert status == 0
        ours = _sort_complex(wr.numpy() + 1j * wi.numpy())
        expected = _sort_complex(scipy.linalg.eigvals(a.numpy()))
        numpy.testing.assert_allclose(ours, expected, rtol=1e-9, atol=1e-9)

    def test_eigenvalues_without_schur_vectors(self):
        """Eigenvalues are found without accumulating Schur vectors."""
        n = 8
        a, h, _ = _random_hessenberg(n, seed=99)
        wr, wi = _workspace(n)

        status = hqr(h, 0, n - 1, wr, wi, False)

        assert status == 0
        ours = _sort_complex(wr.numpy() + 1j * wi.numpy())
        expected = _sort_complex(numpy.linalg.eigvals(a.numpy()))
        numpy.testing.assert_allclose(ours, expected, rtol=1e-9, atol=1e-9)

    def test_idempotent(self):
        """Solving an already converged Schur form costs no sweeps."""
        n = 10
        _, h, z = _random_hessenberg(n, seed=2024)
        wr, wi = _workspace(n)
        assert hqr(h, 0, n - 1, wr, wi, True, z) == 0

        t = h.clone()
        z_before = z.clone()
        wr2, wi2 = _workspace(n)
        state = HQRState(itn=0)

        status = hqr(t, 0, n - 1, wr2, wi2, True, z, state=state)

        assert status == 0
        assert state.sweeps == 0
        torch.testing.assert_close(wr2, wr, rtol=1e-12, atol=1e-12)
        torch.testing.assert_close(wi2, wi, rtol=1e-12, atol=1e-12)
        torch.testing.assert_close(z, z_before, rtol=0, atol=0)

    def test_exceptional_shift_breaks_cycle(self):
        """The cyclic permutation matrix needs the exceptional shift."""
        h = torch.tensor(
            [
                [0.0, 0.0, 1.0],
                [1.0, 0.0, 0.0],
                [0.0, 1.0, 0.0],
            ],
            dtype=torch.float64,
        )
        wr, wi = _workspace(3)
        state = HQRState(itn=90)

        status = hqr(h, 0, 2, wr, wi, state=state)

        assert status == 0
        assert state.sweeps > 10
        ours = _sort_complex(wr.numpy() + 1j * wi.numpy())
        roots = numpy.exp(2j * numpy.pi * numpy.arange(3) / 3)
        numpy.testing.assert_allclose(
            ours, _sort_complex(roots), rtol=1e-10, atol=1e-10
        )

    def test_nan_does_not_deflate(self):
        """A NaN in the active block ends in non-convergence, not an error."""
        h = torch.tensor(
            [
                [1.0, 2.0, 3.0],
                [4.0, float("nan"), 6.0],
                [0.0, 7.0, 8.0],
            ],
            dtype=torch.float64,
        )
        wr, wi = _workspace(3)

        status = hqr(h, 0, 2, wr, wi)

        assert status == 3

    def test_nan_scalar_is_not_converged(self):
        """A NaN 1x1 block is reported instead of stored."""
        h = torch.tensor([[float("nan")]], dtype=torch.float64)
        wr, wi = _workspace(1)

        status = hqr(h, 0, 0, wr, wi)

        assert status == 1

    def test_nan_pair_is_not_converged(self):
        """A 2x2 block holding NaN is reported instead of stored."""
        h = torch.tensor([[1.0, float("nan")], [1.0, 1.0]], dtype=torch.float64)
        wr, wi = _workspace(2)

        status = hqr(h, 0, 1, wr, wi)

        assert status == 2
        assert not torch.any(torch.isnan(wi))

    def test_nan_below_converged_rows(self):
        """Rows that converged before the NaN block keep their eigenvalues."""
        h = torch.tensor(
            [
                [float("nan"), 1.0, 1.0],
                [1.0, 1.0, 1.0],
                [0.0, 0.0, 5.0],
            ],
            dtype=torch.float64,
        )
        wr, wi = _workspace(3)

        status = hqr(h, 0, 2, wr, wi)

        assert status == 2
        assert wr[2].item() == 5.0
        assert wi[2].item() == 0.0

    def test_isolated_rows(self):
        """Rows outside [low, high] keep their diagonal as eigenvalue."""
        torch.manual_seed(31)
        n = 6
        block = hessenberg(torch.randn(n - 1, n - 1, dtype=torch.float64)).H
        a = torch.zeros(n, n, dtype=torch.float64)
        a[0, 0] = 7.0
        a[0, 1:] = torch.randn(n - 1, dtype=torch.float64)
        a[1:, 1:] = block

        h = a.clone()
        z = torch.eye(n, dtype=torch.float64)
        wr, wi = _workspace(n)

        status = hqr(h, 1, n - 1, wr, wi, True, z)

        assert status == 0
        assert wr[0].item() == 7.0
        assert wi[0].item() == 0.0
        ours = _sort_complex(wr[1:].numpy() + 1j * wi[1:].numpy())
        expected = _sort_complex(numpy.linalg.eigvals(block.numpy()))
        numpy.testing.assert_allclose(ours, expected, rtol=1e-9, atol=1e-9)
        torch.testing.assert_close(z[0], torch.eye(n, dtype=torch.float64)[0])
        torch.testing.assert_close(z @ h @ z.mT, a, rtol=1e-10, atol=1e-10)

    def test_float32(self):
        """Single precision input converges with single precision accuracy."""
        n = 6
        a, h, z = _random_hessenberg(n, seed=11, dtype=torch.float32)
        wr, wi = _workspace(n, dtype=torch.float32)

        status = hqr(h, 0, n - 1, wr, wi, True, z)

        assert status == 0
        torch.testing.assert_close(z @ h @ z.mT, a, rtol=1e-4, atol=1e-4)

    def test_state_records_norm(self):
        """The iteration context exposes the norm and the budget spent."""
        n = 5
        _, h, _ = _random_hessenberg(n, seed=3)
        expected_norm = torch.triu(h, diagonal=-1).abs().sum().item()
        wr, wi = _workspace(n)
        state = HQRState(itn=150)

        status = hqr(h, 0, n - 1, wr, wi, state=state)

        assert status == 0
        assert state.norm == pytest.approx(expected_norm)
        assert state.itn == 150 - state.sweeps
        assert state.sweeps > 0

    def test_empty(self):
        """A 0x0 matrix is trivially in Schur form."""
        h = torch.zeros(0, 0, dtype=torch.float64)
        wr, wi = _workspace(0)

        assert hqr(h, 0, -1, wr, wi) == 0


class TestHQRArguments:
    """Argument checks of hqr."""

    def test_non_square(self):
        h = torch.zeros(3, 4, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="must be square"):
            hqr(h, 0, 2, wr, wi)

    def test_not_2d(self):
        h = torch.zeros(3, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="must be 2D"):
            hqr(h, 0, 2, wr, wi)

    def test_eigenvalue_length(self):
        h = torch.eye(3, dtype=torch.float64)
        wr, wi = _workspace(2)
        with pytest.raises(DimensionError, match="wr must have shape"):
            hqr(h, 0, 2, wr, wi)

    def test_z_required(self):
        h = torch.eye(3, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="z is required"):
            hqr(h, 0, 2, wr, wi, True)

    def test_z_shape(self):
        h = torch.eye(3, dtype=torch.float64)
        z = torch.eye(4, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="z must have shape"):
            hqr(h, 0, 2, wr, wi, True, z)

    def test_z_aliases_h(self):
        h = torch.eye(3, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="must not share storage"):
            hqr(h, 0, 2, wr, wi, True, h)

    def test_window_bounds(self):
        h = torch.eye(3, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="window"):
            hqr(h, 0, 3, wr, wi)

    def test_integer_dtype(self):
        h = torch.eye(3, dtype=torch.int64)
        wr, wi = _workspace(3)
        with pytest.raises(DimensionError, match="float32 or float64"):
            hqr(h, 0, 2, wr, wi)

    def test_dimension_error_is_value_error(self):
        h = torch.zeros(2, 3, dtype=torch.float64)
        wr, wi = _workspace(2)
        with pytest.raises(ValueError):
            hqr(h, 0, 1, wr, wi)

    def test_budget_and_state(self):
        h = torch.eye(3, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(ValueError, match="either max_iterations or state"):
            hqr(h, 0, 2, wr, wi, max_iterations=5, state=HQRState(itn=5))

    def test_negative_budget(self):
        h = torch.eye(3, dtype=torch.float64)
        wr, wi = _workspace(3)
        with pytest.raises(ValueError, match="non-negative"):
            hqr(h, 0, 2, wr, wi, max_iterations=-1)
