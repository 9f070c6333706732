"""Eigendecomposition of a general real matrix."""

from typing import Optional

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._hessenberg import (
    _householder_hessenberg,
)
from torchschur.linear_algebra.decomposition._hqr import (
    hessenberg_norm,
    hqr,
)
from torchschur.linear_algebra.decomposition._hqr_schur_to_eigen import (
    hqr_schur_to_eigen,
)
from torchschur.linear_algebra.decomposition._result_types import (
    EigenDecompositionResult,
)
from torchschur.linear_algebra.decomposition._schur_decomposition import (
    _prepare,
    _warn_not_converged,
)


def eigenvectors_from_schur_vectors(z: Tensor, wi: Tensor) -> Tensor:
    """Pack the output of :func:`hqr_schur_to_eigen` as complex columns.

    Column ``k`` is ``z[:, k]`` for a real eigenvalue, ``z[:, k] + i z[:, k+1]``
    for the first and ``z[:, k-1] - i z[:, k]`` for the second member of a
    complex conjugate pair.
    """
    real = z.clone()
    imag = torch.zeros_like(z)

    first = torch.nonzero(wi > 0).flatten()
    second = first + 1
    real[:, second] = z[:, first]
    imag[:, first] = z[:, second]
    imag[:, second] = -z[:, second]

    return torch.complex(real, imag)


def _eigen(a: Tensor, max_iterations: Optional[int]):
    n = a.shape[-1]
    h, z = _householder_hessenberg(a)
    wr = torch.zeros(n, dtype=a.dtype, device=a.device)
    wi = torch.zeros(n, dtype=a.dtype, device=a.device)

    norm = hessenberg_norm(h)
    info = hqr(h, 0, n - 1, wr, wi, True, z, max_iterations=max_iterations)
    if info == 0:
        info = hqr_schur_to_eigen(h, 0, n - 1, wr, wi, z, norm)

    eigenvalues = torch.complex(wr, wi)
    if info != 0:
        vectors = torch.full(
            (n, n), float("nan"), dtype=eigenvalues.dtype, device=a.device
        )
        return eigenvalues, vectors, info

    vectors = eigenvectors_from_schur_vectors(z, wi)
    scale = torch.linalg.vector_norm(vectors, dim=0)
    scale = torch.where(scale == 0, torch.ones_like(scale), scale)

    return eigenvalues, vectors / scale, info


def eigen_decomposition(
    a: Tensor,
    *,
    max_iterations: Optional[int] = None,
) -> EigenDecompositionResult:
    r"""
    Eigendecomposition of a real square matrix.

    Computes eigenvalues :math:`\lambda_k` and right eigenvectors
    :math:`v_k` with :math:`A v_k = \lambda_k v_k`, so that
    :math:`A = V \operatorname{diag}(\lambda) V^{-1}` when :math:`A` is
    diagonalizable.

    Parameters
    ----------
    a : Tensor
        Real input matrix of shape (..., n, n). Integer tensors are converted
        to float64.
    max_iterations : int, optional
        QR sweep budget per matrix. Default is ``30 * n``.

    Returns
    -------
    EigenDecompositionResult
        eigenvalues : Tensor of shape (..., n), complex, in real Schur form
            order. Conjugate pairs are adjacent, positive imaginary part
            first.
        eigenvectors : Tensor of shape (..., n, n), complex, unit 2-norm
            columns. NaN where ``info`` is nonzero.
        info : Tensor of shape (...), int, 0 indicates success.

    Warns
    -----
    RuntimeWarning
        If the QR iteration does not converge for some matrix.

    Notes
    -----
    Pipeline: Householder reduction to Hessenberg form, implicit double-shift
    QR iteration to real Schur form :math:`A = ZTZ^T` (:func:`hqr`), then
    back-substitution for the eigenvectors of :math:`T`, transformed by
    :math:`Z` (:func:`hqr_schur_to_eigen`).

    Examples
    --------
    >>> import torch
    >>> a = torch.tensor([[2.0, 1.0], [0.0, 3.0]], dtype=torch.float64)
    >>> result = eigen_decomposition(a)
    >>> result.eigenvalues.real
    tensor([2., 3.], dtype=torch.float64)
    """
    a = _prepare(a, "eigen_decomposition")

    batch_shape = a.shape[:-2]
    n = a.shape[-1]

    a_flat = a.reshape(batch_shape.numel(), n, n)

    eigenvalues_list = []
    eigenvectors_list = []
    info_list = []

    for i in range(a_flat.shape[0]):
        eigenvalues_i, eigenvectors_i, info_i = _eigen(
            a_flat[i], max_iterations
        )
        eigenvalues_list.append(eigenvalues_i)
        eigenvectors_list.append(eigenvectors_i)
        info_list.append(info_i)

    complex_dtype = (
        torch.complex128 if a.dtype == torch.float64 else torch.complex64
    )
    if eigenvalues_list:
        eigenvalues = torch.stack(eigenvalues_list).reshape(*batch_shape, n)
        eigenvectors = torch.stack(eigenvectors_list).reshape(
            *batch_shape, n, n
        )
    else:
        eigenvalues = torch.empty(
            *batch_shape, n, dtype=complex_dtype, device=a.device
        )
        eigenvectors = torch.empty(
            *batch_shape, n, n, dtype=complex_dtype, device=a.device
        )
    info = torch.tensor(
        info_list, dtype=torch.int32, device=a.device
    ).reshape(batch_shape)

    _warn_not_converged("eigen_decomposition", info)

    return EigenDecompositionResult(
        eigenvalues=eigenvalues, eigenvectors=eigenvectors, info=info
    )
