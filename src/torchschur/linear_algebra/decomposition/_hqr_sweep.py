"""Implicit double-shift QR sweep on an upper Hessenberg matrix."""

import math
from typing import Optional

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._elementary import (
    Reflector,
    reflect_columns,
    reflect_rows,
)
from torchschur.linear_algebra.decomposition._hqr_formshift import HQRState
from torchschur.linear_algebra.decomposition._machine import (
    machine_constants,
)


def _bulge_start(h: Tensor, l: int, en: int, state: HQRState, eps: float):
    """Find the row where the sweep can start.

    Returns ``(m, p, q, r)``: the first column of
    :math:`(H - \\sigma_1 I)(H - \\sigma_2 I)` restricted to rows
    ``m..m+2``, scaled to unit 1-norm. Starting at ``m > l`` is allowed when
    ``h[m, m - 1]`` is small enough that the bulge it would create is
    negligible.
    """
    x, y, w = state.x, state.y, state.w

    m = en - 2
    while True:
        zz = h[m, m].item()
        h_m1m1 = h[m + 1, m + 1].item()
        r = x - zz
        s = y - zz
        p = (r * s - w) / h[m + 1, m].item() + h[m, m + 1].item()
        q = h_m1m1 - zz - r - s
        r = h[m + 2, m + 1].item()
        s = abs(p) + abs(q) + abs(r)
        p = p / s
        q = q / s
        r = r / s
        if m == l:
            break
        tst1 = abs(p) * (abs(h[m - 1, m - 1].item()) + abs(zz) + abs(h_m1m1))
        if abs(h[m, m - 1].item()) * (abs(q) + abs(r)) <= eps * tst1:
            break
        m -= 1

    return m, p, q, r


def hqr_sweep(
    h: Tensor,
    low: int,
    high: int,
    l: int,
    en: int,
    state: HQRState,
    want_z: bool = False,
    z: Optional[Tensor] = None,
) -> None:
    r"""Apply one implicit double-shift QR sweep to the block ``[l, en]``.

    Performs :math:`H \leftarrow P^T H P` where :math:`P` is the orthogonal
    factor of :math:`(H - \sigma_1 I)(H - \sigma_2 I)` without forming the
    shifted product: a bulge is introduced at the top of the block and chased
    down to row ``en`` with 3x3 Householder reflectors.

    Parameters
    ----------
    h : Tensor
        Upper Hessenberg matrix of shape (n, n), modified in place.
    low, high : int
        Window of rows of ``z`` that are updated.
    l, en : int
        Active block, ``en - l >= 2``.
    state : HQRState
        Iteration context holding the shift in ``x``, ``y``, ``w``.
    want_z : bool
        If True, the reflectors are also applied to the whole of ``h`` outside
        the block (so that ``h`` stays similar to the input) and accumulated
        into the columns of ``z``.
    z : Tensor, optional
        Schur vectors of shape (n, n), modified in place if ``want_z``.
    """
    n = h.shape[-1]
    eps = machine_constants(h.dtype).eps

    if want_z:
        row_lo, col_hi = 0, n
    else:
        row_lo, col_hi = l, en + 1

    m, p, q, r = _bulge_start(h, l, en, state, eps)

    # Clear fill-in left below the subdiagonal by a previous sweep.
    if m + 2 <= en:
        i = torch.arange(m + 2, en + 1, device=h.device)
        h[i, i - 2] = 0.0
        i = i[1:]
        h[i, i - 3] = 0.0

    for k in range(m, en):
        not_last = k != en - 1
        if k != m:
            p = h[k, k - 1].item()
            q = h[k + 1, k - 1].item()
            r = h[k + 2, k - 1].item() if not_last else 0.0
            x = abs(p) + abs(q) + abs(r)
            if x == 0.0:
                continue
            p = p / x
            q = q / x
            r = r / x

        s = math.copysign(math.sqrt(p * p + q * q + r * r), p)
        if k != m:
            h[k, k - 1] = -s * x
            h[k + 1, k - 1] = 0.0
            if not_last:
                h[k + 2, k - 1] = 0.0
        elif l != m:
            h[k, k - 1] = -h[k, k - 1]

        p = p + s
        reflector = Reflector(
            u1=q / p,
            u2=r / p,
            w0=p / s,
            w1=q / s,
            w2=r / s,
            order=3 if not_last else 2,
        )

        reflect_rows(h, k, k, col_hi, reflector)
        reflect_columns(h, k, row_lo, min(en, k + 3) + 1, reflector)
        if want_z:
            reflect_columns(z, k, low, high + 1, reflector)
