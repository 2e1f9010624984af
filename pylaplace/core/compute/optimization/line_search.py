"""
Bounded one-dimensional minimization.

Newton mode finding chooses its step length by minimizing the objective
along the Newton direction over a closed interval. The search is an
injectable strategy: anything implementing LineSearch can be plugged in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from scipy.optimize import minimize_scalar


@dataclass(frozen=True)
class LineSearchResult:
    """Outcome of one bounded 1-D minimization.

    Attributes:
        x: Minimizing point inside [lower, upper].
        fun: Objective value at x.
        n_evaluations: Number of objective evaluations used.
        converged: True if the interval shrank below tolerance before
            the evaluation budget ran out.
    """
    x: float
    fun: float
    n_evaluations: int
    converged: bool


class LineSearch(ABC):
    """Derivative-free minimizer of a scalar function on [lower, upper]."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def minimize(
        self,
        func: Callable[[float], float],
        lower: float,
        upper: float,
    ) -> LineSearchResult:
        """Minimize ``func`` over the closed interval [lower, upper]."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class BrentLineSearch(LineSearch):
    """Brent's bounded method (golden section + parabolic interpolation).

    Delegates to scipy.optimize.minimize_scalar(method='bounded').

    Args:
        tolerance: Absolute tolerance on x. Default 1e-6.
        max_evaluations: Evaluation budget. Default 10.
    """

    def __init__(self, tolerance: float = 1e-6, max_evaluations: int = 10):
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        if max_evaluations < 1:
            raise ValueError(
                f"max_evaluations must be at least 1, got {max_evaluations}"
            )
        self.tolerance = float(tolerance)
        self.max_evaluations = int(max_evaluations)

    @property
    def name(self) -> str:
        return 'brent'

    def minimize(
        self,
        func: Callable[[float], float],
        lower: float,
        upper: float,
    ) -> LineSearchResult:
        if not upper > lower:
            raise ValueError(
                f"Empty search interval: lower={lower}, upper={upper}"
            )

        res = minimize_scalar(
            func,
            bounds=(lower, upper),
            method='bounded',
            options={'xatol': self.tolerance, 'maxiter': self.max_evaluations},
        )
        return LineSearchResult(
            x=float(res.x),
            fun=float(res.fun),
            n_evaluations=int(res.nfev),
            converged=bool(res.success),
        )

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(tolerance={self.tolerance!r}, "
                f"max_evaluations={self.max_evaluations!r})")
