"""
Solution wrapper for Laplace inference.

LaplaceSolution wraps Result[LaplaceParams] and provides property
accessors for the mode, the posterior and the marginal likelihood, plus a
plain-text summary.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pylaplace.core.exceptions import ConvergenceError
from pylaplace.core.result import Result
from pylaplace.laplace._common import LaplaceParams


class LaplaceSolution:
    """Solution wrapper for a Laplace approximation at the mode."""

    def __init__(self, _result: Result[LaplaceParams]):
        self._result = _result

    @property
    def params(self) -> LaplaceParams:
        return self._result.params

    @property
    def result(self) -> Result[LaplaceParams]:
        return self._result

    # --- Mode ---

    @property
    def alpha(self) -> NDArray:
        return self.params.alpha

    @property
    def mode(self) -> NDArray:
        """Latent function values at the mode."""
        return self.params.mode

    @property
    def posterior_mean(self) -> NDArray:
        """Posterior mean of f minus the prior mean."""
        return self.params.posterior_mean

    @property
    def psi(self) -> float:
        return self.params.psi

    # --- Posterior ---

    @property
    def posterior_covariance(self) -> NDArray:
        return self.params.posterior_covariance

    @property
    def posterior_std(self) -> NDArray:
        return np.sqrt(np.clip(np.diag(self.params.posterior_covariance), 0.0, None))

    @property
    def branch(self) -> str:
        return self.params.branch

    @property
    def W(self) -> NDArray:
        return self.params.W

    @property
    def sW(self) -> NDArray:
        return self.params.sW

    @property
    def L(self) -> NDArray:
        return self.params.L

    # --- Marginal likelihood ---

    @property
    def nlml(self) -> float:
        return self.params.nlml

    @property
    def log_marginal_likelihood(self) -> float:
        return -self.params.nlml

    @property
    def gradient(self) -> dict[str, float]:
        return self.params.gradient

    # --- Convergence ---

    @property
    def converged(self) -> bool:
        return self.params.converged

    @property
    def n_iter(self) -> int:
        return self.params.n_iter

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def raise_if_not_converged(self) -> None:
        """Escalate a non-converged mode search to ConvergenceError."""
        if self.params.converged:
            return
        info = self._result.info
        raise ConvergenceError(
            f"Mode finding with {info.get('minimizer')} did not converge after "
            f"{self.params.n_iter} iterations",
            iterations=self.params.n_iter,
            final_change=info.get('final_change'),
            reason='max_iterations',
            threshold=info.get('tol'),
        )

    # --- Summary ---

    def summary(self) -> str:
        """Plain-text summary of the approximation."""
        params = self.params
        info = self._result.info

        lines = []
        lines.append("Laplace approximation for a Gaussian process")
        lines.append(f" Likelihood: {info.get('likelihood')}")
        lines.append(f" Mode finder: {info.get('minimizer')}")
        lines.append(f" Factorization: {params.branch}")
        lines.append("")

        lines.append(f"Number of obs: {params.n_obs}, log scale: {params.log_scale:.4f}")
        lines.append(f"Psi at mode: {params.psi:.6f}")
        lines.append(f"Negative log marginal likelihood: {params.nlml:.6f}")
        lines.append("")

        if params.gradient:
            lines.append("Gradient of NLML:")
            width = max(len(k) for k in params.gradient)
            for key, value in params.gradient.items():
                lines.append(f" {key:<{width}s} {value:12.6f}")
            lines.append("")

        status = 'converged' if params.converged else 'NOT converged'
        lines.append(f"Mode search {status} in {params.n_iter} iterations")

        for w in self._result.warnings:
            lines.append(f"WARNING: {w}")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"LaplaceSolution(n={self.params.n_obs}, "
            f"branch={self.params.branch!r}, "
            f"nlml={self.params.nlml:.4f}, "
            f"converged={self.params.converged})"
        )
