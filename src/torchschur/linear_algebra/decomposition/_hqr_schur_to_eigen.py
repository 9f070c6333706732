"""Eigenvectors from a real Schur form by back-substitution."""

import itertools
import math
from typing import Optional

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._checks import (
    check_hqr_arguments,
)
from torchschur.linear_algebra.decomposition._exceptions import (
    DimensionError,
)
from torchschur.linear_algebra.decomposition._hqr import hessenberg_norm
from torchschur.linear_algebra.decomposition._machine import (
    machine_constants,
)


def _check_conjugate_pairs(wr: Tensor, wi: Tensor) -> int:
    """Return 0 if every complex eigenvalue is followed by its conjugate,
    else the 1-based index of the first entry that breaks the pattern.

    A NaN in either part breaks the pattern.
    """
    re = wr.tolist()
    im = wi.tolist()
    n = len(im)

    k = 0
    while k < n:
        if math.isnan(re[k]) or math.isnan(im[k]):
            return k + 1
        if im[k] > 0.0:
            if k + 1 >= n or im[k + 1] != -im[k] or re[k + 1] != re[k]:
                return k + 1
            k += 2
        elif im[k] < 0.0:
            return k + 1
        else:
            k += 1

    return 0


def _dot(h: Tensor, i: int, m: int, en: int, j: int) -> float:
    """``sum(h[i, m:en+1] * h[m:en+1, j])``."""
    return torch.dot(h[i, m : en + 1], h[m : en + 1, j]).item()


def _rescale(h: Tensor, i: int, en: int, columns, t: float, eps: float):
    """Scale rows ``i..en`` of ``columns`` by ``1 / t`` if ``t`` is so large
    that the next back-substitution step could overflow."""
    if t != 0.0 and eps * t * t > 1.0:
        for j in columns:
            h[i : en + 1, j] /= t


def _real_vector(
    h: Tensor,
    wr: Tensor,
    wi: Tensor,
    en: int,
    smin: float,
    eps: float,
) -> None:
    """Back-substitute for the real eigenvalue ``wr[en]`` into column ``en``."""
    p = wr[en].item()
    h[en, en] = 1.0

    m = en
    zz = s = 0.0
    for i in range(en - 1, -1, -1):
        w = h[i, i].item() - p
        r = _dot(h, i, m, en, en)
        wi_i = wi[i].item()

        if wi_i < 0.0:
            zz = w
            s = r
            continue

        m = i
        if wi_i == 0.0:
            t = w
            if abs(t) < smin:
                t = math.copysign(smin, t)
            h[i, en] = -r / t
        else:
            # 2x2 diagonal block: rows i and i + 1 together.
            x = h[i, i + 1].item()
            y = h[i + 1, i].item()
            # |lambda_i - p|^2, scaled so that it cannot overflow
            d = wr[i].item() - p
            scale = max(abs(d), abs(wi_i))
            d = d / scale
            e = wi_i / scale
            t = (x * s - zz * r) / scale / scale / (d * d + e * e)
            h[i, en] = t
            if abs(x) > abs(zz):
                h[i + 1, en] = (-r - w * t) / x
            else:
                h[i + 1, en] = (-s - y * t) / zz

        _rescale(h, i, en, (en,), abs(h[i, en].item()), eps)


def _complex_vector(
    h: Tensor,
    wr: Tensor,
    wi: Tensor,
    en: int,
    norm: float,
    eps: float,
) -> None:
    """Back-substitute for the eigenvalue ``wr[en] + i wi[en]``, ``wi[en] < 0``.

    The real part goes to column ``en - 1`` and the imaginary part to column
    ``en``. The last component is chosen imaginary so that the result is
    triangular.
    """
    p = wr[en].item()
    q = wi[en].item()
    na = en - 1

    h_en_na = h[en, na].item()
    h_na_en = h[na, en].item()
    if abs(h_en_na) > abs(h_na_en):
        h[na, na] = q / h_en_na
        h[na, en] = -(h[en, en].item() - p) / h_en_na
    else:
        c = complex(0.0, -h_na_en) / complex(h[na, na].item() - p, q)
        h[na, na] = c.real
        h[na, en] = c.imag
    h[en, na] = 0.0
    h[en, en] = 1.0

    m = na
    zz = r = s = 0.0
    for i in range(en - 2, -1, -1):
        w = h[i, i].item() - p
        ra = _dot(h, i, m, en, na)
        sa = _dot(h, i, m, en, en)
        wi_i = wi[i].item()

        if wi_i < 0.0:
            zz = w
            r = ra
            s = sa
            continue

        m = i
        if wi_i == 0.0:
            c = complex(-ra, -sa) / complex(w, q)
            h[i, na] = c.real
            h[i, en] = c.imag
        else:
            x = h[i, i + 1].item()
            y = h[i + 1, i].item()
            # vr + i vi = (lambda_i - p)^2 + q^2, scaled by 1 / scale^2
            d = wr[i].item() - p
            scale = max(abs(d), abs(wi_i), abs(q))
            d = d / scale
            e = wi_i / scale
            f = q / scale
            vr = d * d + e * e - f * f
            vi = d * 2.0 * f
            if vr == 0.0 and vi == 0.0:
                vr = (
                    eps
                    * (norm / scale)
                    * ((abs(w) + abs(q) + abs(x) + abs(y) + abs(zz)) / scale)
                )
            c = (
                complex(x * r - zz * ra + q * sa, x * s - zz * sa - q * ra)
                / scale
                / complex(vr, vi)
                / scale
            )
            h[i, na] = c.real
            h[i, en] = c.imag
            if abs(x) > abs(zz) + abs(q):
                h[i + 1, na] = (-ra - w * c.real + q * c.imag) / x
                h[i + 1, en] = (-sa - w * c.imag - q * c.real) / x
            else:
                c = complex(-r - y * c.real, -s - y * c.imag) / complex(zz, q)
                h[i + 1, na] = c.real
                h[i + 1, en] = c.imag

        t = max(abs(h[i, na].item()), abs(h[i, en].item()))
        _rescale(h, i, en, (na, en), t, eps)


def hqr_schur_to_eigen(
    h: Tensor,
    low: int,
    high: int,
    wr: Tensor,
    wi: Tensor,
    z: Tensor,
    norm: Optional[float] = None,
) -> int:
    r"""
    Eigenvectors of a matrix from its real Schur form.

    Given the Schur form ``h`` and Schur vectors ``z`` computed by
    :func:`hqr` with ``want_z=True``, solves the quasi-triangular systems
    :math:`(T - \lambda_k I) x_k = 0` by back-substitution and overwrites
    ``z`` with :math:`Z X`, the eigenvectors of the original matrix.

    Parameters
    ----------
    h : Tensor
        Real Schur form of shape (n, n). Overwritten with the eigenvectors of
        the Schur form.
    low, high : int
        The window that was passed to :func:`hqr`.
    wr, wi : Tensor
        Eigenvalues as returned by :func:`hqr`.
    z : Tensor
        Schur vectors of shape (n, n), overwritten with the eigenvectors.
    norm : float, optional
        Norm of the original Hessenberg matrix (``HQRState.norm``). Computed
        from ``h`` if not given.

    Returns
    -------
    int
        0 on success. If ``wi`` does not describe complex conjugate pairs on
        consecutive entries, or an eigenvalue is NaN, the 1-based index of
        the first inconsistent entry; nothing is overwritten in that case.

    Raises
    ------
    DimensionError
        If shapes, dtypes, or window bounds are inconsistent.

    Notes
    -----
    Column ``k`` of the result describes the eigenvector of
    ``wr[k] + i wi[k]`` as follows:

    - ``wi[k] == 0``: the real vector ``z[:, k]``.
    - ``wi[k] > 0``: ``z[:, k] + i z[:, k + 1]``.
    - ``wi[k] < 0``: ``z[:, k - 1] - i z[:, k]``.

    Vectors are not normalized. Divisors :math:`t_{ii} - \lambda` smaller
    than ``eps * norm`` are replaced by that bound, which gives a vector of
    the numerically singular system instead of an overflow.
    """
    if z is None:
        raise DimensionError("hqr_schur_to_eigen: z is required")

    n = check_hqr_arguments("hqr_schur_to_eigen", h, low, high, wr, wi, z)

    status = _check_conjugate_pairs(wr, wi)
    if status != 0:
        return status

    if norm is None:
        norm = hessenberg_norm(h)
    if norm == 0.0:
        return 0

    constants = machine_constants(h.dtype)
    eps = constants.eps
    smin = max(eps * norm, constants.safe_min)

    for en in range(n - 1, -1, -1):
        q = wi[en].item()
        if q == 0.0:
            _real_vector(h, wr, wi, en, smin, eps)
        elif q < 0.0:
            _complex_vector(h, wr, wi, en, norm, eps)

    for i in itertools.chain(range(low), range(high + 1, n)):
        z[i, i:] = h[i, i:]

    if low <= high:
        z[low : high + 1, low:] = z[low : high + 1, low : high + 1] @ torch.triu(
            h[low : high + 1, low:]
        )

    return 0
