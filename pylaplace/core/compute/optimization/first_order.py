"""
Generic first-order minimizers over a CostFunction.

A first-order minimizer only sees an objective through the CostFunction
protocol: it writes candidate points into the variable reference and asks
for the cost and gradient there. On return the variable reference holds
the final point, so the owner of the variable is left consistent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize

from pylaplace.core.protocols import CostFunction


@dataclass(frozen=True)
class MinimizerResult:
    """Outcome of a first-order minimization.

    Attributes:
        fun: Cost at the final point.
        converged: Whether the minimizer reported success.
        n_iter: Iterations used.
        message: Minimizer status message.
    """
    fun: float
    converged: bool
    n_iter: int
    message: str


class FirstOrderMinimizer(ABC):
    """Minimizer that needs only cost values and gradients."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def minimize(self, cost_function: CostFunction) -> MinimizerResult:
        """Minimize in place over ``cost_function.obtain_variable_reference()``."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class LBFGSMinimizer(FirstOrderMinimizer):
    """Limited-memory BFGS via scipy.optimize.minimize(method='L-BFGS-B').

    Args:
        tol: Function tolerance (ftol); the gradient tolerance is tol * 10,
            matching the convention used elsewhere in this package.
        max_iter: Maximum iterations. Default 500.
    """

    def __init__(self, tol: float = 1e-10, max_iter: int = 500):
        self.tol = float(tol)
        self.max_iter = int(max_iter)

    @property
    def name(self) -> str:
        return 'lbfgs'

    def minimize(self, cost_function: CostFunction) -> MinimizerResult:
        variable = cost_function.obtain_variable_reference()

        def _objective(x: NDArray) -> tuple[float, NDArray]:
            variable[:] = x
            cost = float(cost_function.get_cost())
            grad = np.array(cost_function.get_gradient(), dtype=np.float64)
            return cost, grad

        res = minimize(
            _objective,
            variable.copy(),
            jac=True,
            method='L-BFGS-B',
            options={'maxiter': self.max_iter, 'ftol': self.tol, 'gtol': self.tol * 10},
        )

        # Leave the variable at the reported optimum, not at the last evaluation
        variable[:] = res.x
        final_cost = float(cost_function.get_cost())

        return MinimizerResult(
            fun=final_cost,
            converged=bool(res.success),
            n_iter=int(res.nit),
            message=str(res.message),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tol={self.tol!r}, max_iter={self.max_iter!r})"
