"""Real Schur form of an upper Hessenberg matrix by the QR algorithm."""

import itertools
import math
from typing import Optional

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._checks import (
    check_hqr_arguments,
)
from torchschur.linear_algebra.decomposition._elementary import (
    rotate_columns,
    rotate_rows,
)
from torchschur.linear_algebra.decomposition._exceptions import (
    DimensionError,
)
from torchschur.linear_algebra.decomposition._hqr_formshift import (
    HQRState,
    ShiftCode,
    hqr_formshift,
)
from torchschur.linear_algebra.decomposition._hqr_sweep import hqr_sweep
from torchschur.linear_algebra.decomposition._machine import (
    machine_constants,
)

# Sweeps allowed per row of the matrix when no budget is given.
ITERATIONS_PER_ROW = 30


def hessenberg_norm(h: Tensor) -> float:
    """Sum of the absolute values of the upper Hessenberg part of ``h``."""
    return torch.triu(h, diagonal=-1).abs().sum().item()


def _find_small_subdiagonal(
    h: Tensor, low: int, en: int, norm: float, eps: float
) -> int:
    """Return the largest ``l`` in ``(low, en]`` whose subdiagonal entry
    ``h[l, l - 1]`` is negligible, or ``low`` if there is none.

    An entry is negligible when it is exactly zero or below ``eps`` times the
    size of its two diagonal neighbours (``norm`` when both are zero). NaN is
    never negligible.
    """
    if en <= low:
        return low

    sub = h.diagonal(-1)[low:en].abs()
    diagonal = h.diagonal().abs()
    s = diagonal[low:en] + diagonal[low + 1 : en + 1]
    s = torch.where(s == 0, torch.full_like(s, norm), s)

    small = torch.nonzero((sub == 0) | (sub <= eps * s))
    if small.numel() == 0:
        return low

    return low + 1 + small.max().item()


def _deflate_pair(
    h: Tensor,
    low: int,
    high: int,
    en: int,
    state: HQRState,
    wr: Tensor,
    wi: Tensor,
    want_z: bool,
    z: Optional[Tensor],
) -> None:
    """Store the eigenvalues of the converged trailing 2x2 block.

    A block with real eigenvalues is rotated to upper triangular form, so
    that only complex conjugate pairs keep a nonzero subdiagonal entry.
    """
    n = h.shape[-1]
    na = en - 1

    p = (state.y - state.x) / 2.0
    q = p * p + state.w
    zz = math.sqrt(abs(q))
    x = state.x + state.t
    h[en, en] = x
    h[na, na] = state.y + state.t

    if not q >= 0.0:
        wr[na] = x + p
        wr[en] = x + p
        wi[na] = zz
        wi[en] = -zz
        return

    zz = p + math.copysign(zz, p)
    wr[na] = x + zz
    wr[en] = x - state.w / zz if zz != 0.0 else x + zz
    wi[na] = 0.0
    wi[en] = 0.0

    sub = h[en, na].item()
    s = abs(sub) + abs(zz)
    p = sub / s
    q = zz / s
    r = math.hypot(p, q)
    p = p / r
    q = q / r

    if want_z:
        row_lo, col_hi = 0, n
    else:
        row_lo, col_hi = na, en + 1

    rotate_rows(h, na, en, na, col_hi, q, p)
    rotate_columns(h, na, en, row_lo, en + 1, q, p)
    if want_z:
        rotate_columns(z, na, en, low, high + 1, q, p)
    h[en, na] = 0.0


def hqr(
    h: Tensor,
    low: int,
    high: int,
    wr: Tensor,
    wi: Tensor,
    want_z: bool = False,
    z: Optional[Tensor] = None,
    *,
    max_iterations: Optional[int] = None,
    state: Optional[HQRState] = None,
) -> int:
    r"""
    Real Schur form of an upper Hessenberg matrix.

    Reduces ``h`` in place to quasi-upper-triangular real Schur form with the
    implicit double-shift QR algorithm and stores its eigenvalues in ``wr``
    and ``wi``.

    Parameters
    ----------
    h : Tensor
        Upper Hessenberg matrix of shape (n, n), float32 or float64. Entries
        below the first subdiagonal are ignored. Overwritten with the Schur
        form.
    low, high : int
        0-based inclusive window. Rows and columns outside the window are
        assumed to be already isolated (``h`` is upper triangular there) and
        their diagonal entries are returned as eigenvalues.
    wr, wi : Tensor
        Tensors of shape (n,) receiving the real and imaginary parts of the
        eigenvalues, indexed by their position in the Schur form. Complex
        conjugate pairs occupy consecutive entries, positive imaginary part
        first.
    want_z : bool
        If True, ``h`` is reduced to a Schur form of the whole matrix and
        every transformation is accumulated into ``z``.
    z : Tensor, optional
        Matrix of shape (n, n), required if ``want_z``. Must be seeded by the
        caller, with the identity or with the orthogonal factor of the
        Hessenberg reduction, and is overwritten with the Schur vectors.
    max_iterations : int, optional
        Total number of QR sweeps allowed. Default is ``30 * n``.
    state : HQRState, optional
        Iteration context to use instead of a fresh one; its ``itn`` is the
        budget. Inspect it after the call to read ``sweeps`` and ``norm``.

    Returns
    -------
    int
        0 on success. Otherwise the 1-based index of the last row whose
        eigenvalue did not converge within the budget, or is NaN; entries of
        ``wr`` and ``wi`` after that index are valid.

    Raises
    ------
    DimensionError
        If shapes, dtypes, or window bounds are inconsistent.
    ValueError
        If both ``max_iterations`` and ``state`` are given, or
        ``max_iterations`` is negative.

    Notes
    -----
    Each pass of the main loop looks for the smallest trailing block
    ``[l, en]`` that is decoupled from the rest of the matrix by a negligible
    subdiagonal entry. A 1x1 or 2x2 block is converged and its eigenvalues
    are recorded; otherwise one sweep is applied to the block. Tolerances are
    relative to machine epsilon and to the size of neighbouring entries, so
    a NaN anywhere in the active block prevents deflation and ends in a
    non-convergence status. A 1x1 or 2x2 block holding NaN is reported the
    same way instead of being recorded.

    Examples
    --------
    >>> import torch
    >>> h = torch.tensor([[0.0, -1.0], [1.0, 0.0]], dtype=torch.float64)
    >>> wr = torch.zeros(2, dtype=torch.float64)
    >>> wi = torch.zeros(2, dtype=torch.float64)
    >>> hqr(h, 0, 1, wr, wi)
    0
    >>> wi.tolist()
    [1.0, -1.0]
    """
    if want_z and z is None:
        raise DimensionError("hqr: z is required when want_z is True")

    n = check_hqr_arguments(
        "hqr", h, low, high, wr, wi, z if want_z else None
    )

    if state is not None and max_iterations is not None:
        raise ValueError("hqr: pass either max_iterations or state, not both")
    if max_iterations is not None and max_iterations < 0:
        raise ValueError(
            f"hqr: max_iterations must be non-negative, got {max_iterations}"
        )

    if state is None:
        if max_iterations is None:
            max_iterations = ITERATIONS_PER_ROW * n
        state = HQRState(itn=max_iterations)

    eps = machine_constants(h.dtype).eps

    for i in itertools.chain(range(low), range(high + 1, n)):
        wr[i] = h[i, i]
        wi[i] = 0.0

    state.norm = hessenberg_norm(h)
    state.its = 0
    state.t = 0.0

    en = high
    while en >= low:
        l = _find_small_subdiagonal(h, low, en, state.norm, eps)
        if l > low:
            h[l, l - 1] = 0.0

        code = hqr_formshift(low, h, state, en, l)

        if code == ShiftCode.SINGLE:
            if math.isnan(state.x + state.t):
                return en + 1
            h[en, en] = state.x + state.t
            wr[en] = state.x + state.t
            wi[en] = 0.0
            en -= 1
            state.its = 0
        elif code == ShiftCode.PAIR:
            if any(map(math.isnan, (state.x, state.y, state.w, state.t))):
                return en + 1
            _deflate_pair(h, low, high, en, state, wr, wi, want_z, z)
            en -= 2
            state.its = 0
        elif code == ShiftCode.EXHAUSTED:
            return en + 1
        else:
            hqr_sweep(h, low, high, l, en, state, want_z, z)
            state.its += 1
            state.itn -= 1
            state.sweeps += 1

    return 0
