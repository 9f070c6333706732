"""Hessenberg decomposition."""

import math

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._result_types import (
    HessenbergResult,
)


def _householder_hessenberg(a: Tensor) -> tuple[Tensor, Tensor]:
    """Reduce one (n, n) matrix, returning ``(H, Q)``."""
    n = a.shape[-1]
    h = a.clone()
    q = torch.eye(n, dtype=a.dtype, device=a.device)

    for k in range(n - 2):
        x = h[k + 1 :, k]
        alpha = torch.linalg.vector_norm(x).item()
        if alpha == 0.0:
            continue

        x0 = x[0].item()
        beta = -math.copysign(alpha, x0)
        v = x.clone()
        v[0] = x0 - beta
        tau = 2.0 / torch.dot(v, v).item()

        # P = I - tau v v^T acting on rows and columns k + 1 .. n - 1
        h[k + 1 :, k:] -= tau * torch.outer(v, v @ h[k + 1 :, k:])
        h[:, k + 1 :] -= tau * torch.outer(h[:, k + 1 :] @ v, v)
        q[:, k + 1 :] -= tau * torch.outer(q[:, k + 1 :] @ v, v)

        h[k + 1, k] = beta
        h[k + 2 :, k] = 0.0

    return h, q


def hessenberg(a: Tensor) -> HessenbergResult:
    r"""
    Hessenberg decomposition.

    Computes the Hessenberg decomposition :math:`A = QHQ^T` where :math:`H` is
    upper Hessenberg (has zeros below the first subdiagonal) and :math:`Q` is
    orthogonal.

    The upper Hessenberg form is the input of :func:`hqr`: it preserves
    eigenvalues while making each QR sweep cost :math:`O(n^2)` instead of
    :math:`O(n^3)`.

    Parameters
    ----------
    a : Tensor
        Input matrix of shape (..., n, n). Must be a real tensor. Integer
        tensors are converted to float64.

    Returns
    -------
    HessenbergResult
        A named tuple containing:

        - **H** (*Tensor*) - Upper Hessenberg matrix of shape (..., n, n).
          Entries below the first subdiagonal are exactly zero.
        - **Q** (*Tensor*) - Orthogonal transformation matrix of shape
          (..., n, n). Satisfies :math:`Q Q^T = Q^T Q = I`.
        - **info** (*Tensor*) - Integer tensor of shape (...). A value of 0
          indicates successful computation.

    Raises
    ------
    ValueError
        If input is not at least 2D, not square, or complex.

    Notes
    -----
    The decomposition is computed using Householder reflections. For a matrix
    :math:`A` of size :math:`n \times n`, the algorithm applies :math:`n-2`
    Householder transformations to reduce :math:`A` to upper Hessenberg form.

    Gradients are not propagated; the result is computed from ``a.detach()``.

    Examples
    --------
    >>> import torch
    >>> from torchschur.linear_algebra.decomposition import hessenberg
    >>> a = torch.tensor([[1., 2., 3.], [4., 5., 6.], [7., 8., 9.]])
    >>> result = hessenberg(a)
    >>> torch.allclose(result.Q @ result.H @ result.Q.mT, a, atol=1e-5)
    True
    """
    if a.dim() < 2:
        raise ValueError(f"a must be at least 2D, got {a.dim()}D")
    if a.shape[-2] != a.shape[-1]:
        raise ValueError(f"a must be square, got shape {tuple(a.shape)}")
    if a.is_complex():
        raise ValueError("a must be real, complex input is not supported")

    a = a.detach()
    if a.dtype not in (torch.float32, torch.float64):
        a = a.to(torch.float64)

    batch_shape = a.shape[:-2]
    n = a.shape[-1]

    a_flat = a.reshape(batch_shape.numel(), n, n)

    H_list = []
    Q_list = []
    for i in range(a_flat.shape[0]):
        H_i, Q_i = _householder_hessenberg(a_flat[i])
        H_list.append(H_i)
        Q_list.append(Q_i)

    if H_list:
        H = torch.stack(H_list).reshape(*batch_shape, n, n)
        Q = torch.stack(Q_list).reshape(*batch_shape, n, n)
    else:
        H = torch.empty_like(a)
        Q = torch.empty_like(a)
    info = torch.zeros(batch_shape, dtype=torch.int32, device=a.device)

    return HessenbergResult(H=H, Q=Q, info=info)
