"""
Laplace approximation for Gaussian process models with non-Gaussian
likelihoods.

Public API:
    laplace()               one-call mode finding, NLML and gradient
    SingleLaplaceInference  lazily updated inference object
    NewtonOptimizer         default mode finder
    FirstOrderModeFinder    adapter driving a FirstOrderMinimizer
    LaplaceCostFunction     mode objective as a CostFunction
    check_gradient          finite-difference gradient check
"""

from pylaplace.laplace.solvers import laplace
from pylaplace.laplace.solution import LaplaceSolution
from pylaplace.laplace.design import LaplaceDesign
from pylaplace.laplace.inference import SingleLaplaceInference, PARAMETER_GROUPS
from pylaplace.laplace._common import LaplaceParams
from pylaplace.laplace._minimizer import ModeMinimizer, ModeSearchResult
from pylaplace.laplace._newton import NewtonOptimizer
from pylaplace.laplace._cost import LaplaceCostFunction, FirstOrderModeFinder
from pylaplace.laplace._posterior import (
    PosteriorFactor,
    build_posterior_factor,
    posterior_covariance,
)
from pylaplace.laplace._nlml import negative_log_marginal_likelihood
from pylaplace.laplace._gradient import (
    GradientAuxiliary,
    compute_gradient_auxiliary,
    derivative_wrt_kernel,
    derivative_wrt_scale,
    derivative_wrt_likelihood,
    derivative_wrt_mean,
)
from pylaplace.laplace.diagnostics import GradientCheck, check_gradient

__all__ = [
    "laplace",
    "LaplaceSolution",
    "LaplaceDesign",
    "SingleLaplaceInference",
    "PARAMETER_GROUPS",
    "LaplaceParams",
    "ModeMinimizer",
    "ModeSearchResult",
    "NewtonOptimizer",
    "LaplaceCostFunction",
    "FirstOrderModeFinder",
    "PosteriorFactor",
    "build_posterior_factor",
    "posterior_covariance",
    "negative_log_marginal_likelihood",
    "GradientAuxiliary",
    "compute_gradient_auxiliary",
    "derivative_wrt_kernel",
    "derivative_wrt_scale",
    "derivative_wrt_likelihood",
    "derivative_wrt_mean",
    "GradientCheck",
    "check_gradient",
]
