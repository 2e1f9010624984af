"""
Core infrastructure for pylaplace.

Shared abstractions and utilities used by the inference engine and the
reference collaborators.

Key components:
    protocols: LikelihoodModel, KernelProvider, MeanFunctionProvider,
               CostFunction
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing, tolerances, factorizations, optimizers
"""

from pylaplace.core.protocols import (
    LikelihoodModel,
    HeavyTailedLikelihood,
    KernelProvider,
    MeanFunctionProvider,
    CostFunction,
)
from pylaplace.core.result import Result
from pylaplace.core.exceptions import (
    PyLaplaceError,
    ValidationError,
    DimensionError,
    UnknownParameterError,
    UnsupportedMinimizerError,
    FeatureUnavailableError,
    ReentrancyError,
    NumericalError,
    SingularMatrixError,
    NotPositiveDefiniteError,
    ConvergenceError,
)

__all__ = [
    # Protocols
    "LikelihoodModel",
    "HeavyTailedLikelihood",
    "KernelProvider",
    "MeanFunctionProvider",
    "CostFunction",
    # Result
    "Result",
    # Exceptions
    "PyLaplaceError",
    "ValidationError",
    "DimensionError",
    "UnknownParameterError",
    "UnsupportedMinimizerError",
    "FeatureUnavailableError",
    "ReentrancyError",
    "NumericalError",
    "SingularMatrixError",
    "NotPositiveDefiniteError",
    "ConvergenceError",
]
