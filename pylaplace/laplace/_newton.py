"""
Newton mode finding with a bounded line search.

Each iteration solves for the Newton direction in alpha using the
well-conditioned matrix B = I + sW sW' .* K (Rasmussen & Williams,
Algorithm 3.1) and then picks the step length by minimizing Psi along
that direction over [0, step_max].

For likelihoods that are not log-concave W can be negative and B is then
not positive definite. Following Vanhatalo et al. (2009), the iteration
replaces W by W + (2 / df) dlp^2 in that case, which is non-negative for
a Student's t likelihood with df degrees of freedom.

The line search only locates the step to about sqrt(eps) because Psi is
flat near the mode. Once the Psi change falls below tolerance, a few full
Newton steps are taken while they shrink the stationarity residual
alpha - dlp, so the NLML and its gradient are evaluated at the mode to
working precision.

References:
    Rasmussen, C. E., & Williams, C. K. I. (2006). Gaussian Processes for
    Machine Learning, Section 3.4.
    Vanhatalo, J., Jylanki, P., & Vehtari, A. (2009). Gaussian process
    regression with Student-t likelihood. NIPS 22.
"""

from __future__ import annotations

import warnings
import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla

from pylaplace.core.compute.linalg import cholesky_upper
from pylaplace.core.compute.optimization import LineSearch, BrentLineSearch
from pylaplace.core._stacklevel import find_stack_level
from pylaplace.core.exceptions import (
    FeatureUnavailableError,
    NotPositiveDefiniteError,
    NumericalError,
)
from pylaplace.core.protocols import HeavyTailedLikelihood
from pylaplace.laplace._minimizer import ModeMinimizer, ModeSearchResult
from pylaplace.laplace._state import ModeState


_DEFAULT_LINE_SEARCH = object()
_POLISH_STEPS = 20
# Relative rise in Psi tolerated as roundoff during polishing
_PSI_ROUNDOFF = 1e-12


class _PsiLine:
    """Psi along alpha_start + x * dalpha.

    Every evaluation moves the state to the candidate point, so after the
    search the state sits at the last point evaluated.
    """

    def __init__(self, state: ModeState, dalpha: NDArray):
        self.state = state
        self.alpha_start = state.alpha.copy()
        self.dalpha = dalpha
        self.last_x: float | None = None

    def __call__(self, x: float) -> float:
        psi = self.state.set_alpha(self.alpha_start + x * self.dalpha)
        self.last_x = x
        # NaN never compares as a minimum; make overflow look uphill instead
        if not np.isfinite(psi):
            return np.inf
        return psi


def _degrees_of_freedom(likelihood) -> float:
    if isinstance(likelihood, HeavyTailedLikelihood):
        return float(likelihood.degrees_of_freedom())
    return 1.0


def _stationarity_residual(state: ModeState) -> float:
    """max |alpha - dlp|; zero exactly at the mode."""
    if state.n == 0:
        return 0.0
    return float(np.max(np.abs(state.alpha - state.dlp)))


class NewtonOptimizer(ModeMinimizer):
    """Damped Newton iteration on Psi(alpha).

    Args:
        line_search: Bounded 1-D minimizer choosing the step length.
            Defaults to BrentLineSearch(). Passing None is allowed, but
            find_mode then raises FeatureUnavailableError.
        tolerance: Stop when Psi decreases by no more than this. Default 1e-6.
        max_iterations: Iteration cap. Default 20.
        step_max: Upper end of the step-length interval. Default 10.
    """

    def __init__(
        self,
        line_search: LineSearch | None = _DEFAULT_LINE_SEARCH,
        tolerance: float = 1e-6,
        max_iterations: int = 20,
        step_max: float = 10.0,
    ):
        if line_search is _DEFAULT_LINE_SEARCH:
            line_search = BrentLineSearch()
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        if step_max <= 0:
            raise ValueError(f"step_max must be positive, got {step_max}")
        self.line_search = line_search
        self.tolerance = float(tolerance)
        self.max_iterations = int(max_iterations)
        self.step_max = float(step_max)

    @property
    def name(self) -> str:
        return 'newton'

    def _newton_direction(self, state: ModeState) -> NDArray:
        n = state.n
        W = state.W
        dlp = state.dlp

        if W.min() < 0:
            df = _degrees_of_freedom(state.likelihood)
            W = W + (2.0 / df) * dlp ** 2
            if W.min() < 0:
                raise NotPositiveDefiniteError(
                    f"W has negative entries (min={W.min():.3g}) even after "
                    f"regularization with df={df}",
                    matrix_name='W',
                    min_eigenvalue=float(W.min()),
                )

        sW = np.sqrt(W)
        K_s = state.K_scaled

        # B = I + sW sW' .* K s^2
        B = np.outer(sW, sW) * K_s + np.eye(n)
        chol = cholesky_upper(B, name='B')

        b = W * (state.mu - state.mean_f) + dlp
        v = sla.cho_solve((chol.U, False), sW * (K_s @ b))
        return b - sW * v - state.alpha

    def _polish(self, state: ModeState, psi: float) -> float:
        """Full Newton steps from a converged point, kept while alpha - dlp shrinks."""
        residual = _stationarity_residual(state)
        for _ in range(_POLISH_STEPS):
            if residual == 0.0:
                break
            start = state.alpha.copy()
            candidate = state.set_alpha(start + self._newton_direction(state))
            new_residual = _stationarity_residual(state)
            rose = candidate > psi + _PSI_ROUNDOFF * max(1.0, abs(psi))
            if rose or not new_residual < residual:
                state.set_alpha(start)
                break
            residual = new_residual
            psi = candidate
        return psi

    def find_mode(self, state: ModeState) -> ModeSearchResult:
        if self.line_search is None:
            raise FeatureUnavailableError(
                "Newton mode finding needs a line search, but none is "
                "configured. Pass line_search=BrentLineSearch() or "
                "register a first-order minimizer instead.",
                feature='line_search',
            )
        if not np.isfinite(state.psi):
            raise NumericalError(
                f"Psi is not finite at the starting point ({state.psi}); the "
                f"labels have zero likelihood at the initial latent values"
            )

        psi_old = np.inf
        psi_new = state.psi
        iteration = 0

        while psi_old - psi_new > self.tolerance and iteration < self.max_iterations:
            psi_old = psi_new
            iteration += 1

            dalpha = self._newton_direction(state)

            line = _PsiLine(state, dalpha)
            found = self.line_search.minimize(line, 0.0, self.step_max)

            if found.fun > psi_old:
                # Every evaluation went uphill; stay where we started
                psi_new = line(0.0)
            elif line.last_x != found.x:
                psi_new = line(found.x)
            else:
                psi_new = found.fun

        change = psi_old - psi_new
        converged = not change > self.tolerance
        if not converged:
            warnings.warn(
                f"Newton mode finding reached max iterations ({self.max_iterations}), "
                f"but the Psi change ({change:.3g}) is not yet below tolerance "
                f"({self.tolerance:.3g})",
                RuntimeWarning,
                stacklevel=find_stack_level(),
            )
        else:
            psi_new = self._polish(state, psi_new)

        state.psi = psi_new
        return ModeSearchResult(
            psi=psi_new,
            converged=converged,
            n_iter=iteration,
            final_change=float(change),
            minimizer=self.name,
        )

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(line_search={self.line_search!r}, "
                f"tolerance={self.tolerance!r}, max_iterations={self.max_iterations!r}, "
                f"step_max={self.step_max!r})")
