"""
Shared fixtures for Laplace inference tests.

Provides small GP datasets with known structure: binary classification,
smooth regression, and regression with a gross outlier that drives W
negative under a Student's t likelihood.
"""

import numpy as np
import pytest

from pylaplace.core.compute.optimization import BrentLineSearch
from pylaplace.laplace import NewtonOptimizer


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(2024)


@pytest.fixture
def classification_data(rng):
    """Two-dimensional inputs, labels in {-1, +1} from a smooth boundary."""
    n = 20
    X = rng.uniform(-2.0, 2.0, size=(n, 2))
    latent = np.sin(X[:, 0]) + 0.5 * X[:, 1]
    y = np.where(latent + 0.3 * rng.standard_normal(n) > 0, 1.0, -1.0)
    return X, y


@pytest.fixture
def regression_data(rng):
    """One-dimensional inputs, y = sin(x) + small noise."""
    n = 15
    X = np.linspace(-3.0, 3.0, n).reshape(-1, 1)
    y = np.sin(X[:, 0]) + 0.1 * rng.standard_normal(n)
    return X, y


@pytest.fixture
def outlier_data(rng):
    """Smooth regression data with one gross outlier at index 5."""
    n = 12
    X = np.linspace(-3.0, 3.0, n).reshape(-1, 1)
    y = np.sin(X[:, 0]) + 0.05 * rng.standard_normal(n)
    y[5] += 8.0
    return X, y


@pytest.fixture
def tight_newton():
    """Newton settings accurate enough for finite-difference checks."""
    return NewtonOptimizer(
        line_search=BrentLineSearch(tolerance=1e-10, max_evaluations=100),
        tolerance=1e-13,
        max_iterations=200,
    )
