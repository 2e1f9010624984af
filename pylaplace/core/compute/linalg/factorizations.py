"""
Dense matrix factorizations used by the posterior builder.

Two factorizations cover both sign structures of the Laplace Hessian:

    - Upper Cholesky for the symmetric positive definite matrix
      B = I + sW sW' .* K when W >= 0
    - Partially pivoted LU (with explicit inverse) for the non-symmetric,
      possibly indefinite A = I + K diag(W) when W has negative entries

Both return a structured result dataclass carrying the log-determinant,
so callers never re-derive it from the factor. Failures are raised as
NumericalError subclasses instead of leaking NaN into downstream results.
"""

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla

from pylaplace.core.exceptions import NotPositiveDefiniteError, SingularMatrixError


@dataclass(frozen=True)
class CholeskyResult:
    """
    Result of an upper Cholesky factorization M = U'U.

    Attributes:
        U: Upper triangular factor (n x n)
        log_det: log|M| = 2 * sum(log(diag(U)))
    """
    U: NDArray[np.floating[Any]]
    log_det: float


@dataclass(frozen=True)
class LUInverseResult:
    """
    Result of a pivoted LU factorization together with the inverse.

    Attributes:
        inverse: M^-1 (n x n)
        log_abs_det: log|det(M)|
        sign: Sign of det(M), +1.0 or -1.0
    """
    inverse: NDArray[np.floating[Any]]
    log_abs_det: float
    sign: float


def cholesky_upper(
    M: NDArray[np.floating[Any]],
    name: str = 'M',
) -> CholeskyResult:
    """
    Upper Cholesky factorization using LAPACK (via SciPy).

    Args:
        M: Symmetric positive definite matrix (n x n)
        name: Matrix name for error messages

    Returns:
        CholeskyResult with the upper factor and log-determinant

    Raises:
        NotPositiveDefiniteError: If M is not numerically positive definite
    """
    try:
        U = sla.cholesky(M, lower=False, check_finite=True)
    except (np.linalg.LinAlgError, ValueError) as e:
        min_eig = None
        if np.all(np.isfinite(M)):
            min_eig = float(np.min(np.linalg.eigvalsh((M + M.T) / 2.0)))
        raise NotPositiveDefiniteError(
            f"{name} is not positive definite (min eigenvalue={min_eig}): {e}",
            matrix_name=name,
            min_eigenvalue=min_eig,
        ) from e

    log_det = 2.0 * float(np.sum(np.log(np.diag(U))))
    return CholeskyResult(U=U, log_det=log_det)


def lu_inverse(
    M: NDArray[np.floating[Any]],
    name: str = 'M',
) -> LUInverseResult:
    """
    Invert a general square matrix through a pivoted LU factorization.

    The determinant comes from the same factorization:
    det(M) = det(P) * prod(diag(U)).

    Args:
        M: Square matrix (n x n), not necessarily symmetric
        name: Matrix name for error messages

    Returns:
        LUInverseResult with the inverse, log|det| and sign of det

    Raises:
        SingularMatrixError: If a pivot is zero or negligible relative to
            the largest pivot
    """
    if not np.all(np.isfinite(M)):
        raise SingularMatrixError(
            f"{name} contains non-finite entries",
            matrix_name=name,
        )

    n = M.shape[0]
    lu, piv = sla.lu_factor(M, check_finite=False)
    pivots = np.diag(lu)
    abs_pivots = np.abs(pivots)

    scale = float(np.max(abs_pivots)) if n > 0 else 0.0
    tol = max(n, 1) * np.finfo(np.float64).eps * scale
    rank = int(np.sum(abs_pivots > tol))
    if n > 0 and (scale == 0.0 or rank < n):
        raise SingularMatrixError(
            f"{name} is singular: {n - rank} negligible LU pivot(s)",
            matrix_name=name,
            rank=rank,
            expected_rank=n,
        )

    inverse = sla.lu_solve((lu, piv), np.eye(n), check_finite=False)

    # Each entry of piv that differs from its position is one row swap
    n_swaps = int(np.sum(piv != np.arange(n)))
    sign = (-1.0) ** n_swaps * float(np.prod(np.sign(pivots)))
    log_abs_det = float(np.sum(np.log(abs_pivots)))

    return LUInverseResult(inverse=inverse, log_abs_det=log_abs_det, sign=sign)


def solve_upper(
    U: NDArray[np.floating[Any]],
    B: NDArray[np.floating[Any]],
    transpose: bool = False,
) -> NDArray[np.floating[Any]]:
    """
    Solve U X = B (or U' X = B) for an upper triangular U.

    Args:
        U: Upper triangular matrix (n x n)
        B: Right-hand side (n,) or (n x k)
        transpose: If True, solve with U' (lower triangular) instead

    Returns:
        Solution X with the shape of B
    """
    return sla.solve_triangular(U, B, trans='T' if transpose else 'N', lower=False)
