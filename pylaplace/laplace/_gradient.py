"""
Gradient of the Laplace NLML wrt hyperparameters.

The NLML depends on a hyperparameter theta directly and through the mode
f_hat(theta). Differentiating Psi + log|I + K W| / 2 gives an explicit
part plus an implicit part

    -dfhat' df_hat/dtheta,   df_hat/dtheta = (I - K s^2 Z) b

where b depends on which collaborator owns theta. All four derivative
families share one auxiliary precompute per mode:

    Z     = W^1/2 B^-1 W^1/2   (PSD)   or  diag(W) A^-1   (indefinite)
    g     = diag((K^-1 s^-2 + W)^-1) / 2
    dfhat = g .* d3lp

References:
    Rasmussen, C. E., & Williams, C. K. I. (2006). Gaussian Processes for
    Machine Learning, Algorithm 5.1.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from pylaplace.core.compute.linalg import solve_upper
from pylaplace.laplace._posterior import PosteriorFactor
from pylaplace.laplace._state import ModeState


@dataclass(frozen=True)
class GradientAuxiliary:
    """Quantities shared by every hyperparameter derivative at one mode.

    Attributes:
        Z: (n, n) matrix with (I + K s^2 W)^-1 = I - K s^2 Z.
        g: Half the diagonal of the posterior covariance (n,).
        dfhat: g .* d3lp (n,).
    """
    Z: NDArray
    g: NDArray
    dfhat: NDArray


def compute_gradient_auxiliary(
    state: ModeState, factor: PosteriorFactor
) -> GradientAuxiliary:
    """
    Precompute Z, g and dfhat for the current mode.

    Args:
        state: Mode state at the converged alpha.
        factor: Posterior factorization for that mode.

    Returns:
        GradientAuxiliary
    """
    K_s = state.K_scaled

    if factor.is_cholesky:
        U = factor.L
        sW = factor.sW
        M = solve_upper(U, np.diag(sW), transpose=True)
        Z = M.T @ M
        C = solve_upper(U, sW[:, np.newaxis] * K_s, transpose=True)
        g = (np.diag(K_s) - np.sum(C * C, axis=0)) / 2.0
    else:
        Z = -factor.L
        g = np.sum(factor.A_inv * K_s, axis=1) / 2.0

    d3lp = np.asarray(
        state.likelihood.log_probability_derivative(state.labels, state.mu, 3),
        dtype=np.float64,
    )
    return GradientAuxiliary(Z=Z, g=g, dfhat=g * d3lp)


def _implicit_term(state: ModeState, aux: GradientAuxiliary, b: NDArray) -> float:
    """dfhat' (b - K s^2 Z b)."""
    return float(aux.dfhat @ (b - state.K_scaled @ (aux.Z @ b)))


def derivative_wrt_kernel(
    state: ModeState, aux: GradientAuxiliary, dK: NDArray
) -> float:
    """
    dNLML/dtheta for a kernel hyperparameter.

    Args:
        state: Mode state.
        aux: Shared auxiliaries.
        dK: Derivative of the unscaled K wrt theta (n, n).
    """
    alpha = state.alpha
    explicit = np.sum(aux.Z * dK) / 2.0 - float(alpha @ (dK @ alpha)) / 2.0
    implicit = _implicit_term(state, aux, dK @ state.dlp)
    return state.scale2 * (explicit - implicit)


def derivative_wrt_scale(state: ModeState, aux: GradientAuxiliary) -> float:
    """dNLML/dlog_scale; K s^2 has derivative 2 K s^2."""
    return 2.0 * derivative_wrt_kernel(state, aux, state.K)


def derivative_wrt_likelihood(
    state: ModeState, aux: GradientAuxiliary, name: str
) -> float:
    """
    dNLML/dtheta for a likelihood hyperparameter ``name``.

    Uses the mixed derivatives of lp, dlp and d2lp wrt theta.
    """
    likelihood = state.likelihood
    labels, f = state.labels, state.mu

    dlp_dhyp = np.asarray(likelihood.first_derivative(labels, f, name), dtype=np.float64)
    dlp_dhyp_f = np.asarray(likelihood.second_derivative(labels, f, name), dtype=np.float64)
    d2lp_dhyp = np.asarray(likelihood.third_derivative(labels, f, name), dtype=np.float64)

    result = -float(aux.g @ d2lp_dhyp) - float(np.sum(dlp_dhyp))
    b = state.K_scaled @ dlp_dhyp_f
    return result - _implicit_term(state, aux, b)


def derivative_wrt_mean(
    state: ModeState, aux: GradientAuxiliary, dm: NDArray
) -> float:
    """
    dNLML/dtheta for a mean hyperparameter.

    Args:
        state: Mode state.
        aux: Shared auxiliaries.
        dm: Derivative of the mean vector wrt theta (n,).
    """
    return -float(state.alpha @ dm) - _implicit_term(state, aux, dm)
