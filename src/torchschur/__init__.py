"""torchschur: real Schur decomposition and eigensolvers for PyTorch."""

from . import linear_algebra

__all__ = [
    "linear_algebra",
]

__version__ = "0.1.0"
