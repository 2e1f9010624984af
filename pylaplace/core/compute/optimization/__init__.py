"""
Optimization utilities for pylaplace.

Provides the bounded line search used inside Newton mode finding and the
generic first-order minimizers that can replace Newton.
"""

from pylaplace.core.compute.optimization.line_search import (
    LineSearch,
    LineSearchResult,
    BrentLineSearch,
)
from pylaplace.core.compute.optimization.first_order import (
    FirstOrderMinimizer,
    MinimizerResult,
    LBFGSMinimizer,
)

__all__ = [
    "LineSearch",
    "LineSearchResult",
    "BrentLineSearch",
    "FirstOrderMinimizer",
    "MinimizerResult",
    "LBFGSMinimizer",
]
