"""Deflation check and shift selection for the Hessenberg QR iteration."""

import enum
from dataclasses import dataclass

from torch import Tensor

# Sweep counts at which an exceptional shift replaces the ordinary one.
EXCEPTIONAL_SHIFT_ITERATIONS = (10, 20)


class ShiftCode(enum.IntEnum):
    """Outcome of :func:`hqr_formshift`."""

    SHIFT = 0
    SINGLE = 1
    PAIR = 2
    EXHAUSTED = 3


@dataclass
class HQRState:
    """Iteration context threaded between the driver, the shift strategy and
    the QR sweep.

    Attributes
    ----------
    itn : int
        Remaining iteration budget for the whole run. Decremented once per
        sweep, never replenished.
    its : int
        Sweeps spent on the current active block. Reset on deflation.
    s, t, x, y, w : float
        Shift scalars. ``t`` accumulates the exceptional shifts that were
        subtracted from the diagonal, so that eigenvalues can be un-shifted
        when their block deflates. ``x`` and ``y`` are the trailing diagonal
        entries and ``w`` the product of the trailing off-diagonal pair.
    norm : float
        Norm of the Hessenberg matrix, computed once before iterating.
    sweeps : int
        Total number of sweeps performed.
    """

    itn: int
    its: int = 0
    s: float = 0.0
    t: float = 0.0
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    norm: float = 0.0
    sweeps: int = 0


def hqr_formshift(
    low: int, h: Tensor, state: HQRState, en: int, l: int
) -> ShiftCode:
    r"""Decide whether the trailing block deflated, or form the next shift.

    Parameters
    ----------
    low : int
        First row of the window under consideration.
    h : Tensor
        Upper Hessenberg matrix of shape (n, n). Modified in place when an
        exceptional shift is applied.
    state : HQRState
        Iteration context. ``x``, ``y``, ``w`` (and ``s``, ``t`` for an
        exceptional shift) are updated in place.
    en : int
        Bottom row of the active block.
    l : int
        Top row of the active block, ``low <= l <= en``. Every subdiagonal
        entry ``h[i, i - 1]`` with ``l < i <= en`` is non-negligible.

    Returns
    -------
    ShiftCode
        - ``SINGLE`` if ``l == en``: ``state.x`` holds the (shifted) 1x1
          eigenvalue.
        - ``PAIR`` if ``l == en - 1``: ``state.x``, ``state.y``, ``state.w``
          describe the trailing 2x2 block.
        - ``EXHAUSTED`` if the iteration budget is spent.
        - ``SHIFT`` otherwise, with the double shift in ``state.x``,
          ``state.y``, ``state.w``.

    Notes
    -----
    The ordinary shift is the Francis double shift: the two shifts are the
    eigenvalues :math:`\sigma_1, \sigma_2` of the trailing 2x2 block

    .. math::

        \begin{pmatrix} y & h_{en-1,en} \\ h_{en,en-1} & x \end{pmatrix}

    and the sweep only needs :math:`\sigma_1 + \sigma_2 = x + y` and
    :math:`\sigma_1 \sigma_2 = xy - w`, which are real even when the shifts
    form a complex conjugate pair.

    After 10 and 20 sweeps without deflation an exceptional shift breaks
    possible cycles: the diagonal is re-centred on ``x`` and the shifts are
    chosen as the roots of :math:`\lambda^2 - 1.5 s \lambda + s^2`, where
    :math:`s` is the size of the last two subdiagonal entries.
    """
    state.x = h[en, en].item()
    if l == en:
        return ShiftCode.SINGLE

    state.y = h[en - 1, en - 1].item()
    state.w = h[en, en - 1].item() * h[en - 1, en].item()
    if l == en - 1:
        return ShiftCode.PAIR

    if state.itn == 0:
        return ShiftCode.EXHAUSTED

    if state.its in EXCEPTIONAL_SHIFT_ITERATIONS:
        state.t += state.x
        h.diagonal()[low : en + 1].sub_(state.x)
        state.s = abs(h[en, en - 1].item()) + abs(h[en - 1, en - 2].item())
        state.x = 0.75 * state.s
        state.y = state.x
        state.w = -0.4375 * state.s * state.s

    return ShiftCode.SHIFT
