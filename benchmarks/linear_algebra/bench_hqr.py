"""Benchmark the real Schur decomposition.

Compares schur_decomposition and eigen_decomposition against
scipy.linalg.schur and scipy.linalg.eig across matrix sizes, and reports the
number of QR sweeps spent per row.
"""

import time
from typing import Any, Callable

import numpy as np
import scipy.linalg
import torch

from torchschur.linear_algebra.decomposition import (
    HQRState,
    eigen_decomposition,
    hessenberg,
    hqr,
    schur_decomposition,
)


def benchmark(
    func: Callable,
    *args: Any,
    warmup: int = 3,
    iterations: int = 10,
    **kwargs: Any,
) -> dict[str, float]:
    """Time ``func(*args, **kwargs)``.

    Returns
    -------
    dict
        Mean, standard deviation, minimum and maximum time in seconds.
    """
    for _ in range(warmup):
        func(*args, **kwargs)

    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        func(*args, **kwargs)
        times.append(time.perf_counter() - start)

    times = np.array(times)

    return {
        "mean": float(np.mean(times)),
        "std": float(np.std(times)),
        "min": float(np.min(times)),
        "max": float(np.max(times)),
    }


def sweeps_per_row(n: int, seed: int = 0) -> float:
    """Average number of QR sweeps per row for a random matrix of order n."""
    torch.manual_seed(seed)
    reduced = hessenberg(torch.randn(n, n, dtype=torch.float64))
    h = reduced.H.clone()
    wr = torch.zeros(n, dtype=torch.float64)
    wi = torch.zeros(n, dtype=torch.float64)
    state = HQRState(itn=30 * n)

    hqr(h, 0, n - 1, wr, wi, state=state)

    return state.sweeps / n


def main():
    """Run Schur decomposition benchmarks across sizes."""
    sizes = [4, 8, 16, 32, 64]

    print("Real Schur Decomposition Benchmark")
    print("=" * 78)
    print(
        f"{'n':>5} {'schur (ms)':>12} {'scipy (ms)':>12} "
        f"{'eig (ms)':>12} {'scipy (ms)':>12} {'sweeps/row':>12}"
    )
    print("-" * 78)

    for n in sizes:
        torch.manual_seed(n)
        a = torch.randn(n, n, dtype=torch.float64)
        a_np = a.numpy()

        schur = benchmark(schur_decomposition, a)
        scipy_schur = benchmark(scipy.linalg.schur, a_np)
        eig = benchmark(eigen_decomposition, a)
        scipy_eig = benchmark(scipy.linalg.eig, a_np)

        print(
            f"{n:>5} {schur['mean'] * 1000:>12.3f} "
            f"{scipy_schur['mean'] * 1000:>12.3f} "
            f"{eig['mean'] * 1000:>12.3f} "
            f"{scipy_eig['mean'] * 1000:>12.3f} "
            f"{sweeps_per_row(n):>12.2f}"
        )

    print()
    print("Notes:")
    print("- Each double-shift sweep costs O(n^2) on a Hessenberg matrix")


if __name__ == "__main__":
    main()
