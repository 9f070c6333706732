"""Argument checks shared by the in-place Hessenberg eigenvalue routines."""

from typing import Optional

import torch
from torch import Tensor

from torchschur.linear_algebra.decomposition._exceptions import (
    DimensionError,
)


def check_square(name: str, label: str, a: Tensor) -> int:
    """Check that ``a`` is a 2D square real floating point tensor.

    Returns the order of ``a``.
    """
    if a.dim() != 2:
        raise DimensionError(f"{name}: {label} must be 2D, got {a.dim()}D")
    if a.shape[-2] != a.shape[-1]:
        raise DimensionError(
            f"{name}: {label} must be square, got shape {tuple(a.shape)}"
        )
    if a.dtype not in (torch.float32, torch.float64):
        raise DimensionError(
            f"{name}: {label} must be float32 or float64, got {a.dtype}"
        )

    return a.shape[-1]


def check_hqr_arguments(
    name: str,
    h: Tensor,
    low: int,
    high: int,
    wr: Tensor,
    wi: Tensor,
    z: Optional[Tensor],
) -> int:
    """Validate the arguments of :func:`hqr` and :func:`hqr_schur_to_eigen`.

    ``z`` is only checked when it is not ``None``. Returns the order of
    ``h``.
    """
    n = check_square(name, "h", h)

    for label, v in (("wr", wr), ("wi", wi)):
        if v.dim() != 1 or v.shape[0] != n:
            raise DimensionError(
                f"{name}: {label} must have shape ({n},), "
                f"got {tuple(v.shape)}"
            )

    if z is not None:
        if check_square(name, "z", z) != n:
            raise DimensionError(
                f"{name}: z must have shape ({n}, {n}), got {tuple(z.shape)}"
            )
        if (
            n > 0
            and z.untyped_storage().data_ptr()
            == h.untyped_storage().data_ptr()
        ):
            raise DimensionError(f"{name}: z must not share storage with h")

    if low < 0 or high >= n or low > high + 1:
        raise DimensionError(
            f"{name}: window must satisfy 0 <= low <= high + 1 <= n, "
            f"got low={low}, high={high}, n={n}"
        )

    return n
