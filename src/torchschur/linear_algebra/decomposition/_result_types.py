from typing import NamedTuple

from torch import Tensor


class HessenbergResult(NamedTuple):
    """Result of Hessenberg decomposition A = QHQ^T.

    H is upper Hessenberg (zeros below the first subdiagonal) and Q is
    orthogonal.
    """

    H: Tensor
    Q: Tensor
    info: Tensor


class SchurDecompositionResult(NamedTuple):
    """Result of real Schur decomposition A = QTQ^T.

    T is quasi-upper-triangular: 1x1 blocks for real eigenvalues and 2x2
    blocks for complex conjugate pairs.
    """

    T: Tensor  # (..., n, n) - Real Schur form
    Q: Tensor  # (..., n, n) - Orthogonal Schur vectors
    eigenvalues: Tensor  # (..., n) - complex, in Schur form order
    info: Tensor  # (...) - int, 0 or 1-based last unconverged row


class EigenDecompositionResult(NamedTuple):
    """Result of eigendecomposition A = VDV^{-1} of a real matrix.

    Eigenvectors are the columns of V, normalized to unit 2-norm. Complex
    conjugate eigenvalues have complex conjugate eigenvectors.
    """

    eigenvalues: Tensor  # (..., n) - complex
    eigenvectors: Tensor  # (..., n, n) - complex
    info: Tensor  # (...) - int, 0 indicates success
