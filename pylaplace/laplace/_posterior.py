"""
Posterior factorization at the mode.

The branch is chosen solely by the sign of min(W) at the converged mode,
using the raw W = -d2lp (no regularization):

PSD branch (min W >= 0):
    sW = sqrt(W)
    B  = I + sW sW' .* K s^2,  L = chol(B) (upper)
    log|B| = 2 sum(log diag L)

Indefinite branch (min W < 0):
    sW = sqrt((|W| + W) / 2) - sqrt((|W| - W) / 2)   (signed square root)
    A  = I + K s^2 diag(W)
    L  = -diag(W) A^-1                               (pivoted LU inverse)
    log|A| from the same LU factorization

Both log-determinants equal log|I + K s^2 W|, so the marginal likelihood
formula is the same on both branches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
import numpy as np
from numpy.typing import NDArray

from pylaplace.core.compute.linalg import cholesky_upper, lu_inverse, solve_upper

Branch = Literal['cholesky', 'lu']


@dataclass(frozen=True)
class PosteriorFactor:
    """Factorization of the Laplace posterior at the mode.

    Attributes:
        branch: 'cholesky' (W >= 0) or 'lu' (W has negative entries).
        W: Raw W = -d2lp at the mode.
        sW: sqrt(W) on the PSD branch, signed square root otherwise.
        L: Upper Cholesky factor of B, or -diag(W) A^-1.
        log_det: log|I + K s^2 W| (log of the absolute value on the LU branch).
        sign: Sign of det(A); always +1 on the Cholesky branch.
        A_inv: A^-1 on the LU branch, None otherwise.
    """
    branch: Branch
    W: NDArray
    sW: NDArray
    L: NDArray
    log_det: float
    sign: float = 1.0
    A_inv: NDArray | None = None

    @property
    def is_cholesky(self) -> bool:
        return self.branch == 'cholesky'


def build_posterior_factor(K_scaled: NDArray, d2lp: NDArray) -> PosteriorFactor:
    """
    Factorize the posterior for the current mode.

    Args:
        K_scaled: Scaled covariance K s^2 (n, n).
        d2lp: Second derivative of log p wrt f at the mode (n,).

    Returns:
        PosteriorFactor for the branch selected by min(W).

    Raises:
        NotPositiveDefiniteError: If B is not positive definite.
        SingularMatrixError: If A is singular.
    """
    W = -np.asarray(d2lp, dtype=np.float64)
    n = W.shape[0]

    if n == 0 or W.min() >= 0:
        sW = np.sqrt(W)
        B = np.outer(sW, sW) * K_scaled + np.eye(n)
        chol = cholesky_upper(B, name='B')
        return PosteriorFactor(
            branch='cholesky', W=W, sW=sW, L=chol.U, log_det=chol.log_det,
        )

    absW = np.abs(W)
    sW = np.sqrt((absW + W) / 2.0) - np.sqrt((absW - W) / 2.0)

    A = np.eye(n) + K_scaled * W[np.newaxis, :]
    lu = lu_inverse(A, name='A')
    L = -W[:, np.newaxis] * lu.inverse

    return PosteriorFactor(
        branch='lu', W=W, sW=sW, L=L,
        log_det=lu.log_abs_det, sign=lu.sign, A_inv=lu.inverse,
    )


def posterior_covariance(factor: PosteriorFactor, K_scaled: NDArray) -> NDArray:
    """
    Covariance of the Gaussian approximation, (K^-1 s^-2 + W)^-1.

    PSD branch: K s^2 - V'V with L' V = sW .* K s^2.
    LU branch: A^-1 K s^2, symmetrized against round-off.
    """
    if factor.is_cholesky:
        V = solve_upper(factor.L, factor.sW[:, np.newaxis] * K_scaled, transpose=True)
        return K_scaled - V.T @ V

    Sigma = factor.A_inv @ K_scaled
    return (Sigma + Sigma.T) / 2.0
