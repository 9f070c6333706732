"""Real Schur and eigenvalue decompositions on PyTorch tensors.

This module computes the real Schur form of a real square matrix with the
implicit double-shift QR algorithm and recovers eigenvalues and eigenvectors
from it.

Functions
---------
schur_decomposition
    Computes the real Schur decomposition A = QTQ^T where Q is orthogonal and
    T is quasi-upper-triangular.

eigen_decomposition
    Computes eigenvalues and unit eigenvectors of a general real matrix.

hessenberg
    Computes the Hessenberg decomposition A = QHQ^T where Q is orthogonal and
    H is upper Hessenberg (zeros below the first subdiagonal).

In-place routines
-----------------
hqr
    Reduces an upper Hessenberg matrix in place to real Schur form, storing
    eigenvalues in caller-provided tensors. Returns an integer status.

hqr_formshift
    Deflation check and shift selection for one step of hqr.

hqr_sweep
    One implicit double-shift QR sweep (bulge chase) on an active block.

hqr_schur_to_eigen
    Back-substitutes a real Schur form to eigenvectors. Returns an integer
    status.

Result Types
------------
SchurDecompositionResult
    Named tuple with T, Q, eigenvalues, info.

EigenDecompositionResult
    Named tuple with eigenvalues, eigenvectors, info.

HessenbergResult
    Named tuple with H, Q, info.

Exceptions
----------
DecompositionError
    Base class.

DimensionError
    Invalid shapes, dtypes, or window bounds. Also a ValueError.
"""

from torchschur.linear_algebra.decomposition._eigen_decomposition import (
    eigen_decomposition,
    eigenvectors_from_schur_vectors,
)
from torchschur.linear_algebra.decomposition._exceptions import (
    DecompositionError,
    DimensionError,
)
from torchschur.linear_algebra.decomposition._hessenberg import (
    hessenberg,
)
from torchschur.linear_algebra.decomposition._hqr import (
    hessenberg_norm,
    hqr,
)
from torchschur.linear_algebra.decomposition._hqr_formshift import (
    HQRState,
    ShiftCode,
    hqr_formshift,
)
from torchschur.linear_algebra.decomposition._hqr_schur_to_eigen import (
    hqr_schur_to_eigen,
)
from torchschur.linear_algebra.decomposition._hqr_sweep import (
    hqr_sweep,
)
from torchschur.linear_algebra.decomposition._machine import (
    MachineConstants,
    machine_constants,
)
from torchschur.linear_algebra.decomposition._result_types import (
    EigenDecompositionResult,
    HessenbergResult,
    SchurDecompositionResult,
)
from torchschur.linear_algebra.decomposition._schur_decomposition import (
    quasi_triangular,
    schur_decomposition,
)

__all__ = [
    "DecompositionError",
    "DimensionError",
    "EigenDecompositionResult",
    "HQRState",
    "HessenbergResult",
    "MachineConstants",
    "SchurDecompositionResult",
    "ShiftCode",
    "eigen_decomposition",
    "eigenvectors_from_schur_vectors",
    "hessenberg",
    "hessenberg_norm",
    "hqr",
    "hqr_formshift",
    "hqr_schur_to_eigen",
    "hqr_sweep",
    "machine_constants",
    "quasi_triangular",
    "schur_decomposition",
]
