"""Elementary orthogonal transformations applied to tensor slices.

The QR sweep and the 2x2 standardization only ever touch two or three
adjacent rows or columns at a time. These helpers apply such a transform to a
contiguous range of the other index in one vectorized update.
"""

from typing import NamedTuple

from torch import Tensor


class Reflector(NamedTuple):
    r"""Householder reflector acting on two or three consecutive indices.

    The reflector is :math:`P = I - w u^T` with :math:`u = (1, u_1, u_2)` and
    :math:`w = (w_0, w_1, w_2)`. With ``order == 2`` the third components are
    ignored.
    """

    u1: float
    u2: float
    w0: float
    w1: float
    w2: float
    order: int


def reflect_rows(
    a: Tensor, k: int, start: int, stop: int, reflector: Reflector
) -> None:
    """Apply ``reflector`` from the left to rows ``k..k+order-1`` of
    ``a[:, start:stop]`` in place."""
    if start >= stop:
        return

    row0 = a[k, start:stop]
    row1 = a[k + 1, start:stop]
    p = row0 + reflector.u1 * row1
    if reflector.order == 3:
        row2 = a[k + 2, start:stop]
        p = p + reflector.u2 * row2
        row2.sub_(p * reflector.w2)
    row0.sub_(p * reflector.w0)
    row1.sub_(p * reflector.w1)


def reflect_columns(
    a: Tensor, k: int, start: int, stop: int, reflector: Reflector
) -> None:
    """Apply ``reflector`` from the right to columns ``k..k+order-1`` of
    ``a[start:stop, :]`` in place."""
    if start >= stop:
        return

    col0 = a[start:stop, k]
    col1 = a[start:stop, k + 1]
    p = reflector.w0 * col0 + reflector.w1 * col1
    if reflector.order == 3:
        col2 = a[start:stop, k + 2]
        p = p + reflector.w2 * col2
        col2.sub_(p * reflector.u2)
    col0.sub_(p)
    col1.sub_(p * reflector.u1)


def rotate_rows(
    a: Tensor, i: int, j: int, start: int, stop: int, c: float, s: float
) -> None:
    """Rotate rows ``i`` and ``j`` of ``a[:, start:stop]`` in place.

    ``row_i <- c * row_i + s * row_j`` and ``row_j <- c * row_j - s * row_i``.
    """
    if start >= stop:
        return

    row_i = a[i, start:stop].clone()
    row_j = a[j, start:stop].clone()
    a[i, start:stop] = c * row_i + s * row_j
    a[j, start:stop] = c * row_j - s * row_i


def rotate_columns(
    a: Tensor, i: int, j: int, start: int, stop: int, c: float, s: float
) -> None:
    """Rotate columns ``i`` and ``j`` of ``a[start:stop, :]`` in place."""
    if start >= stop:
        return

    col_i = a[start:stop, i].clone()
    col_j = a[start:stop, j].clone()
    a[start:stop, i] = c * col_i + s * col_j
    a[start:stop, j] = c * col_j - s * col_i
