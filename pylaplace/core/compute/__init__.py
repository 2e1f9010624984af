"""
Shared compute infrastructure for pylaplace.

This module holds NUMERIC infrastructure that is independent of the
Laplace approximation itself.

Submodules:
    timing: Execution timing utilities
    tolerances: Tolerance tiers for numerical comparison
    linalg: Dense factorizations (Cholesky, pivoted LU)
    optimization: Line search and first-order minimizers
"""

from pylaplace.core.compute.timing import Timer

__all__ = [
    "Timer",
]
