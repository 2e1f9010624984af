"""
Linear algebra kernels for pylaplace.

All functions follow these conventions:
    - NumPy/SciPy (LAPACK under the hood)
    - Each factorization returns a structured result dataclass
    - Errors are raised immediately with clear messages

Submodules:
    factorizations: upper Cholesky, pivoted LU inverse, triangular solves
"""

from pylaplace.core.compute.linalg.factorizations import (
    CholeskyResult,
    LUInverseResult,
    cholesky_upper,
    lu_inverse,
    solve_upper,
)

__all__ = [
    "CholeskyResult",
    "LUInverseResult",
    "cholesky_upper",
    "lu_inverse",
    "solve_upper",
]
