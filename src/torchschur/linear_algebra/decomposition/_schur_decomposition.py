"""Schur decomposition."""

import warnings
from typing import Optional

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._hessenberg import (
    _householder_hessenberg,
)
from torchschur.linear_algebra.decomposition._hqr import hqr
from torchschur.linear_algebra.decomposition._result_types import (
    SchurDecompositionResult,
)


def _prepare(a: Tensor, name: str) -> Tensor:
    """Validate a batch of square real matrices and convert to float."""
    if a.dim() < 2:
        raise ValueError(f"{name}: a must be at least 2D, got {a.dim()}D")
    if a.shape[-2] != a.shape[-1]:
        raise ValueError(
            f"{name}: a must be square, got shape {tuple(a.shape)}"
        )
    if a.is_complex():
        raise ValueError(
            f"{name}: a must be real, complex input is not supported"
        )

    a = a.detach()
    if a.dtype not in (torch.float32, torch.float64):
        a = a.to(torch.float64)

    return a


def _warn_not_converged(name: str, info: Tensor) -> None:
    failed = int((info != 0).sum().item())
    if failed:
        warnings.warn(
            f"{name}: QR iteration did not converge for {failed} of "
            f"{info.numel()} matrices; see `info` for the first unconverged "
            f"row of each",
            RuntimeWarning,
            stacklevel=3,
        )


def quasi_triangular(t: Tensor, wi: Tensor) -> Tensor:
    """Zero every entry of ``t`` below its quasi-diagonal.

    Subdiagonal entries are kept only at the top-left of 2x2 blocks of
    complex conjugate eigenvalues (``wi[k] > 0``).
    """
    keep = wi[:-1] > 0
    sub = torch.where(keep, t.diagonal(-1), torch.zeros_like(t.diagonal(-1)))
    out = torch.triu(t)
    out.diagonal(-1).copy_(sub)
    return out


def _real_schur(a: Tensor, max_iterations: Optional[int]):
    n = a.shape[-1]
    h, q = _householder_hessenberg(a)
    wr = torch.zeros(n, dtype=a.dtype, device=a.device)
    wi = torch.zeros(n, dtype=a.dtype, device=a.device)

    info = hqr(h, 0, n - 1, wr, wi, True, q, max_iterations=max_iterations)

    if info == 0:
        t = quasi_triangular(h, wi)
    else:
        t = torch.triu(h, diagonal=-1)

    return t, q, torch.complex(wr, wi), info


def schur_decomposition(
    a: Tensor,
    *,
    max_iterations: Optional[int] = None,
) -> SchurDecompositionResult:
    r"""
    Real Schur decomposition.

    Computes the real Schur decomposition :math:`A = QTQ^T` where :math:`Q` is
    orthogonal and :math:`T` is quasi-upper-triangular: real eigenvalues
    appear on the diagonal and each complex conjugate pair as a 2x2 diagonal
    block.

    The matrix is first reduced to Hessenberg form with Householder
    reflections, then to Schur form with the implicit double-shift QR
    algorithm (:func:`hqr`).

    Parameters
    ----------
    a : Tensor
        Real input matrix of shape (..., n, n). Integer tensors are converted
        to float64.
    max_iterations : int, optional
        QR sweep budget per matrix. Default is ``30 * n``.

    Returns
    -------
    SchurDecompositionResult
        T : Tensor of shape (..., n, n), real Schur form
        Q : Tensor of shape (..., n, n), orthogonal matrix
        eigenvalues : Tensor of shape (..., n), complex, in the order in which
            they appear on the diagonal of T. Conjugate pairs are adjacent,
            positive imaginary part first.
        info : Tensor of shape (...), int. 0 indicates success; a positive
            value is the 1-based index of the last row whose eigenvalue did
            not converge, in which case T and Q hold a partial reduction
            (still satisfying :math:`A = QTQ^T`) and only the eigenvalues
            after that row are valid.

    Warns
    -----
    RuntimeWarning
        If the QR iteration does not converge for some matrix.

    Examples
    --------
    >>> import torch
    >>> a = torch.tensor([[0.0, -1.0], [1.0, 0.0]], dtype=torch.float64)
    >>> schur_decomposition(a).eigenvalues
    tensor([0.+1.j, 0.-1.j], dtype=torch.complex128)
    """
    a = _prepare(a, "schur_decomposition")

    batch_shape = a.shape[:-2]
    n = a.shape[-1]

    # Flatten batch dimensions for processing
    a_flat = a.reshape(batch_shape.numel(), n, n)

    T_list = []
    Q_list = []
    eigenvalues_list = []
    info_list = []

    for i in range(a_flat.shape[0]):
        T_i, Q_i, eigenvalues_i, info_i = _real_schur(
            a_flat[i], max_iterations
        )
        T_list.append(T_i)
        Q_list.append(Q_i)
        eigenvalues_list.append(eigenvalues_i)
        info_list.append(info_i)

    complex_dtype = (
        torch.complex128 if a.dtype == torch.float64 else torch.complex64
    )
    if T_list:
        T = torch.stack(T_list).reshape(*batch_shape, n, n)
        Q = torch.stack(Q_list).reshape(*batch_shape, n, n)
        eigenvalues = torch.stack(eigenvalues_list).reshape(*batch_shape, n)
    else:
        T = torch.empty_like(a)
        Q = torch.empty_like(a)
        eigenvalues = torch.empty(
            *batch_shape, n, dtype=complex_dtype, device=a.device
        )
    info = torch.tensor(
        info_list, dtype=torch.int32, device=a.device
    ).reshape(batch_shape)

    _warn_not_converged("schur_decomposition", info)

    return SchurDecompositionResult(
        T=T, Q=Q, eigenvalues=eigenvalues, info=info
    )
