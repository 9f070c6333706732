"""Linear algebra operations on PyTorch tensors.

Submodules
----------
decomposition
    Real Schur decomposition and eigenvalue problems of general real
    matrices.
"""

from torchschur.linear_algebra import decomposition

__all__ = ["decomposition"]
