"""
Mode objective exposed as a generic cost function.

LaplaceCostFunction lets any FirstOrderMinimizer search over alpha in
place of Newton. The variable it hands out is the mode state's own alpha
array, so the state follows the minimizer without copying.
"""

from __future__ import annotations

import warnings
from numpy.typing import NDArray

from pylaplace.core._stacklevel import find_stack_level
from pylaplace.core.compute.optimization import FirstOrderMinimizer
from pylaplace.laplace._minimizer import ModeMinimizer, ModeSearchResult
from pylaplace.laplace._state import ModeState


class LaplaceCostFunction:
    """Psi(alpha) and its gradient over a live ModeState.

    Psi = alpha'(f - m) / 2 - sum(log p(y | f)), f = K s^2 alpha + m
    dPsi/dalpha = K s^2 (alpha - dlp)
    """

    def __init__(self, state: ModeState):
        self.state = state

    def get_cost(self) -> float:
        state = self.state
        state.update_function_values()
        state.psi = state.objective()
        return state.psi

    def get_gradient(self) -> NDArray:
        state = self.state
        state.update_function_values()
        state.update_likelihood_derivatives()
        return state.K_scaled @ (state.alpha - state.dlp)

    def obtain_variable_reference(self) -> NDArray:
        return self.state.alpha


class FirstOrderModeFinder(ModeMinimizer):
    """Finds the mode by running a FirstOrderMinimizer on LaplaceCostFunction."""

    def __init__(self, minimizer: FirstOrderMinimizer):
        self.minimizer = minimizer

    @property
    def name(self) -> str:
        return self.minimizer.name

    def find_mode(self, state: ModeState) -> ModeSearchResult:
        result = self.minimizer.minimize(LaplaceCostFunction(state))

        # Leave f, dlp, W and Psi consistent with the final alpha
        psi = state.set_alpha(state.alpha.copy())

        if not result.converged:
            warnings.warn(
                f"{self.minimizer.name} mode finding did not converge after "
                f"{result.n_iter} iterations: {result.message}",
                RuntimeWarning,
                stacklevel=find_stack_level(),
            )

        return ModeSearchResult(
            psi=psi,
            converged=result.converged,
            n_iter=result.n_iter,
            final_change=None,
            minimizer=self.name,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(minimizer={self.minimizer!r})"
