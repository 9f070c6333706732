"""Exception classes for decomposition module."""

__all__ = ["DecompositionError", "DimensionError"]


class DecompositionError(Exception):
    """Base exception for decomposition errors."""

    pass


class DimensionError(DecompositionError, ValueError):
    """Raised when an argument has the wrong shape, bounds, or dtype.

    Numerical failures (e.g. the QR iteration running out of budget) are
    never raised; they are reported through integer status codes.
    """

    pass
