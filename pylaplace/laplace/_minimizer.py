"""
Strategy interface for finding the posterior mode.

SingleLaplaceInference holds exactly one ModeMinimizer and calls
``find_mode`` on every update. Newton with line search is the default;
FirstOrderModeFinder adapts any generic first-order minimizer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from pylaplace.laplace._state import ModeState


@dataclass(frozen=True)
class ModeSearchResult:
    """Outcome of one mode-finding run.

    Attributes:
        psi: Objective value at the returned alpha.
        converged: Whether the stopping criterion was met.
        n_iter: Iterations performed.
        final_change: Psi decrease in the last iteration (None if the
            minimizer does not track it).
        minimizer: Name of the minimizer that produced this result.
    """
    psi: float
    converged: bool
    n_iter: int
    final_change: float | None
    minimizer: str


class ModeMinimizer(ABC):
    """Finds alpha minimizing Psi, leaving ``state`` at the optimum."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def find_mode(self, state: ModeState) -> ModeSearchResult:
        """Minimize Psi over ``state.alpha`` in place."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
