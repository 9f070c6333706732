"""Machine constants for floating point dtypes."""

from typing import NamedTuple

import torch


class MachineConstants(NamedTuple):
    """Floating point constants used by the QR iteration.

    Parameters
    ----------
    eps : float
        Machine epsilon, the distance from 1.0 to the next representable
        number.
    safe_min : float
        Smallest positive normal number. Divisors are never allowed below
        this magnitude.
    """

    eps: float
    safe_min: float


_SUPPORTED_DTYPES = (torch.float32, torch.float64)


def machine_constants(dtype: torch.dtype) -> MachineConstants:
    """Return the machine constants for a real floating point dtype.

    Parameters
    ----------
    dtype : torch.dtype
        The tensor dtype. Must be ``torch.float32`` or ``torch.float64``.

    Returns
    -------
    MachineConstants
        Named tuple with ``eps`` and ``safe_min``.

    Raises
    ------
    ValueError
        If ``dtype`` is not a supported real floating point dtype.
    """
    if dtype not in _SUPPORTED_DTYPES:
        raise ValueError(
            f"dtype must be torch.float32 or torch.float64, got {dtype}"
        )

    finfo = torch.finfo(dtype)

    return MachineConstants(eps=finfo.eps, safe_min=finfo.tiny)
