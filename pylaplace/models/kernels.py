"""
Reference covariance functions.

Kernels are evaluated on the training inputs only; the amplitude of the
prior is not a kernel hyperparameter but the inference object's log_scale.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylaplace.core.exceptions import DimensionError, ValidationError
from pylaplace.models._base import Parameterized


class Kernel(Parameterized, ABC):
    """Covariance function k(x, x') with named hyperparameters."""

    parameter_group = 'kernel'

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def covariance_matrix(self, features: NDArray) -> NDArray:
        ...

    @abstractmethod
    def parameter_gradient(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        ...


def _as_2d(features: NDArray) -> NDArray:
    X = np.asarray(features, dtype=np.float64)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    return X


class SquaredExponentialKernel(Kernel):
    """Unit-amplitude squared exponential kernel.

    k(x, x') = exp(-1/2 sum_d (x_d - x'_d)^2 / l_d^2)

    ``lengthscales`` may be a scalar (isotropic) or one value per input
    dimension (ARD). Hyperparameter: log_lengthscales.
    """

    def __init__(self, lengthscales: ArrayLike = 1.0):
        super().__init__()
        ell = np.array(lengthscales, dtype=np.float64)
        if ell.ndim > 1:
            raise DimensionError(
                f"lengthscales: expected scalar or 1D, got shape {ell.shape}"
            )
        if np.any(ell <= 0):
            raise ValidationError("lengthscales: must be positive")
        self._register('log_lengthscales', np.log(ell))

    @property
    def name(self) -> str:
        return 'squared_exponential'

    def _scaled_sq_diffs(self, features: NDArray) -> NDArray:
        """Per-dimension squared differences divided by l_d^2, (n, n, d)."""
        X = _as_2d(features)
        ell = np.exp(self._value('log_lengthscales'))
        if ell.ndim == 1 and ell.shape[0] != X.shape[1]:
            raise DimensionError(
                f"features: kernel has {ell.shape[0]} lengthscales, "
                f"features have {X.shape[1]} columns"
            )
        diff = X[:, np.newaxis, :] - X[np.newaxis, :, :]
        return diff ** 2 / ell ** 2

    def covariance_matrix(self, features: NDArray) -> NDArray:
        d2 = self._scaled_sq_diffs(features)
        return np.exp(-0.5 * d2.sum(axis=2))

    def parameter_gradient(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        log_ell = self._require(name)
        d2 = self._scaled_sq_diffs(features)
        K = np.exp(-0.5 * d2.sum(axis=2))

        # dK/dlog(l_d) = K * (x_d - x'_d)^2 / l_d^2
        if log_ell.ndim == 0:
            if index not in (None, 0):
                raise ValidationError(
                    f"index: {name!r} is scalar, got index={index}"
                )
            return K * d2.sum(axis=2)

        if index is None or not 0 <= index < log_ell.shape[0]:
            raise ValidationError(
                f"index: {name!r} has {log_ell.shape[0]} elements, got index={index}"
            )
        return K * d2[:, :, index]


class PrecomputedKernel(Kernel):
    """A fixed covariance matrix with no hyperparameters."""

    def __init__(self, matrix: ArrayLike):
        super().__init__()
        K = np.array(matrix, dtype=np.float64)
        if K.ndim != 2 or K.shape[0] != K.shape[1]:
            raise DimensionError(
                f"matrix: expected a square 2D array, got shape {K.shape}"
            )
        if not np.allclose(K, K.T):
            raise ValidationError("matrix: covariance must be symmetric")
        self._matrix = K

    @property
    def name(self) -> str:
        return 'precomputed'

    def covariance_matrix(self, features: NDArray) -> NDArray:
        n = np.asarray(features).shape[0]
        if n != self._matrix.shape[0]:
            raise DimensionError(
                f"features: precomputed kernel is {self._matrix.shape[0]}x"
                f"{self._matrix.shape[0]}, got {n} inputs"
            )
        return self._matrix.copy()

    def parameter_gradient(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        raise self._unknown_parameter(name)
