"""
PyLaplace: Laplace approximation for Gaussian process models.

Finds the posterior mode of a GP with a non-Gaussian likelihood, builds
the Gaussian approximation around it and evaluates the negative log
marginal likelihood together with its gradient wrt every hyperparameter.

Submodules:
    laplace: Mode finding, posterior factorization, NLML and gradient
    models: Reference likelihoods, kernels and mean functions
    core: Protocols, results, exceptions, validation, numerics
"""

__version__ = "0.1.0"

from pylaplace import core
from pylaplace import models
from pylaplace import laplace
from pylaplace.laplace import SingleLaplaceInference, LaplaceSolution

__all__ = [
    "__version__",
    "core",
    "models",
    "laplace",
    "SingleLaplaceInference",
    "LaplaceSolution",
]
