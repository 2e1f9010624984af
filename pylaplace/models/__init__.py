"""
Reference collaborators: likelihoods, kernels and mean functions.

These implement the protocols in pylaplace.core.protocols. The inference
engine does not depend on them; any object with the same methods works.
"""

from pylaplace.models.likelihoods import (
    Likelihood,
    GaussianLikelihood,
    StudentTLikelihood,
    LogitLikelihood,
)
from pylaplace.models.kernels import (
    Kernel,
    SquaredExponentialKernel,
    PrecomputedKernel,
)
from pylaplace.models.means import (
    MeanFunction,
    ZeroMean,
    ConstantMean,
    LinearMean,
)

__all__ = [
    "Likelihood",
    "GaussianLikelihood",
    "StudentTLikelihood",
    "LogitLikelihood",
    "Kernel",
    "SquaredExponentialKernel",
    "PrecomputedKernel",
    "MeanFunction",
    "ZeroMean",
    "ConstantMean",
    "LinearMean",
]
