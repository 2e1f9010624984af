"""
Generic result container for pylaplace computations.

Every fitted approximation is returned inside a Result envelope so that
timing, convergence metadata and warnings travel with the numbers.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (converged, iterations, branch)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True)
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific payload (mode, NLML, gradients, ...)
        info: Structured metadata (minimizer, convergence, branch)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the code path that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LaplaceParams(...),
        ...     info={'minimizer': 'newton', 'converged': True, 'n_iter': 4},
        ...     timing={'total_seconds': 0.01, 'mode': 0.008},
        ...     backend_name='cpu_laplace_cholesky'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
