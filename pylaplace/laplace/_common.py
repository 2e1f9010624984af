"""
Common data types for Laplace inference.

Contains the frozen parameter payload that goes inside Result[P] envelopes.
The payload is a pure data container with no computation.

References:
    Rasmussen, C. E., & Williams, C. K. I. (2006). Gaussian Processes for
    Machine Learning, Chapters 3 and 5.
"""

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class LaplaceParams:
    """
    Parameter payload for a Laplace approximation at a converged mode.
    """
    # Mode
    alpha: NDArray                     # dual variables (n,)
    mode: NDArray                      # f_hat = K s^2 alpha + m (n,)
    posterior_mean: NDArray            # f_hat - m (n,)
    psi: float                         # objective at the mode

    # Posterior factorization
    branch: str                        # 'cholesky' or 'lu'
    W: NDArray                         # -d2lp at the mode (n,)
    sW: NDArray                        # (signed) square root of W (n,)
    L: NDArray                         # Cholesky factor or -diag(W) A^-1 (n, n)
    posterior_covariance: NDArray      # (n, n)

    # Marginal likelihood
    nlml: float
    gradient: dict[str, float]         # 'group.name' or 'group.name[i]' -> dNLML

    # Convergence
    converged: bool
    n_iter: int
    n_obs: int
    log_scale: float
