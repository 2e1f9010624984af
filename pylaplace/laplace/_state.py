"""
Mode state for single-likelihood Laplace inference.

The mode state bundles everything that depends on the current dual
variables alpha: the latent function values f = K s^2 alpha + m, the
likelihood derivatives at f, and the objective

    Psi(alpha) = alpha'(f - m) / 2 - sum(log p(y | f)).

It has a single owner (SingleLaplaceInference) and is mutated only by
mode finding. Collaborators (labels, likelihood) are borrowed for the
duration of one update call.

References:
    Rasmussen, C. E., & Williams, C. K. I. (2006). Gaussian Processes for
    Machine Learning, Algorithm 3.1.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import numpy as np
from numpy.typing import NDArray

from pylaplace.core.protocols import LikelihoodModel


@dataclass
class ModeState:
    """Mutable state of one mode-finding run.

    Attributes:
        labels: Observed labels (n,).
        likelihood: Borrowed likelihood model.
        K: Unscaled prior covariance (n, n).
        log_scale: Amplitude; the effective covariance is K * exp(2 log_scale).
        mean_f: Prior mean at the training inputs (n,).
        alpha: Dual variables (n,). Updated in place so that references
            handed to minimizers stay live.
        mu: Latent function values f (n,).
        dlp: d log p / df at mu (n,).
        W: -d2 log p / df2 at mu (n,).
        psi: Objective value at alpha.
    """
    labels: NDArray
    likelihood: LikelihoodModel
    K: NDArray
    log_scale: float
    mean_f: NDArray
    alpha: NDArray
    mu: NDArray = field(init=False)
    dlp: NDArray = field(init=False)
    W: NDArray = field(init=False)
    psi: float = field(init=False, default=np.inf)

    def __post_init__(self):
        self.scale2 = float(np.exp(2.0 * self.log_scale))
        self.K_scaled = self.K * self.scale2
        self.mu = self.K_scaled @ self.alpha + self.mean_f
        self.dlp = np.zeros_like(self.alpha)
        self.W = np.zeros_like(self.alpha)

    @property
    def n(self) -> int:
        return self.alpha.shape[0]

    def update_function_values(self) -> None:
        """Recompute f = K s^2 alpha + m from the current alpha."""
        self.mu = self.K_scaled @ self.alpha + self.mean_f

    def update_likelihood_derivatives(self) -> None:
        """Recompute dlp and W = -d2lp at the current f."""
        self.dlp = np.asarray(
            self.likelihood.log_probability_derivative(self.labels, self.mu, 1),
            dtype=np.float64,
        )
        self.W = -np.asarray(
            self.likelihood.log_probability_derivative(self.labels, self.mu, 2),
            dtype=np.float64,
        )

    def log_likelihood(self, f: NDArray | None = None) -> float:
        """sum(log p(y | f)), at the current f unless given."""
        f = self.mu if f is None else f
        return float(np.sum(self.likelihood.log_probability(self.labels, f)))

    def objective(self) -> float:
        """Psi at the current alpha and f."""
        return float(self.alpha @ (self.mu - self.mean_f)) / 2.0 - self.log_likelihood()

    def set_alpha(self, alpha: NDArray) -> float:
        """Move to ``alpha``, refresh f, dlp and W, and return Psi there."""
        self.alpha[:] = alpha
        self.update_function_values()
        self.update_likelihood_derivatives()
        self.psi = self.objective()
        return self.psi


def initial_mode_state(
    labels: NDArray,
    likelihood: LikelihoodModel,
    K: NDArray,
    log_scale: float,
    mean_f: NDArray,
    previous_alpha: NDArray | None,
) -> ModeState:
    """Create the starting state for mode finding.

    If ``previous_alpha`` has the same length as ``labels`` it is used as
    a warm start, unless the prior mean (alpha = 0) already gives a lower
    Psi. Otherwise alpha starts at zero, where f equals the prior mean
    exactly and Psi = -sum(log p(y | m)).

    Args:
        labels: Observed labels (n,).
        likelihood: Likelihood model.
        K: Unscaled covariance (n, n).
        log_scale: Amplitude on the log scale.
        mean_f: Prior mean vector (n,).
        previous_alpha: Alpha from an earlier update, or None.

    Returns:
        ModeState with alpha, f and Psi initialized and likelihood
        derivatives evaluated at f.
    """
    n = labels.shape[0]

    if previous_alpha is None or previous_alpha.shape[0] != n:
        state = ModeState(labels, likelihood, K, log_scale, mean_f, np.zeros(n))
        state.mu = mean_f.copy()
        state.psi = -state.log_likelihood()
    else:
        state = ModeState(
            labels, likelihood, K, log_scale, mean_f,
            np.array(previous_alpha, dtype=np.float64),
        )
        psi_warm = state.objective()
        psi_default = -state.log_likelihood(mean_f)

        if psi_default < psi_warm:
            state.alpha[:] = 0.0
            state.mu = mean_f.copy()
            state.psi = psi_default
        else:
            state.psi = psi_warm

    state.update_likelihood_derivatives()
    return state
