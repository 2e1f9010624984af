"""
Reference prior mean functions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylaplace.core.exceptions import DimensionError, ValidationError
from pylaplace.models._base import Parameterized


class MeanFunction(Parameterized, ABC):
    """Prior mean m(x) with named hyperparameters."""

    parameter_group = 'mean'

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def mean_vector(self, features: NDArray) -> NDArray:
        ...

    @abstractmethod
    def parameter_derivative(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        ...


class ZeroMean(MeanFunction):
    """m(x) = 0."""

    @property
    def name(self) -> str:
        return 'zero'

    def mean_vector(self, features: NDArray) -> NDArray:
        return np.zeros(np.asarray(features).shape[0], dtype=np.float64)

    def parameter_derivative(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        raise self._unknown_parameter(name)


class ConstantMean(MeanFunction):
    """m(x) = bias."""

    def __init__(self, bias: float = 0.0):
        super().__init__()
        self._register('bias', bias)

    @property
    def name(self) -> str:
        return 'constant'

    def mean_vector(self, features: NDArray) -> NDArray:
        n = np.asarray(features).shape[0]
        return np.full(n, float(self._value('bias')), dtype=np.float64)

    def parameter_derivative(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        self._require(name)
        return np.ones(np.asarray(features).shape[0], dtype=np.float64)


class LinearMean(MeanFunction):
    """m(x) = x'w + bias.

    Hyperparameters: weights (one per input dimension), bias.
    """

    def __init__(self, weights: ArrayLike, bias: float = 0.0):
        super().__init__()
        w = np.atleast_1d(np.array(weights, dtype=np.float64))
        if w.ndim != 1:
            raise DimensionError(f"weights: expected 1D, got shape {w.shape}")
        self._register('weights', w)
        self._register('bias', bias)

    @property
    def name(self) -> str:
        return 'linear'

    def _design(self, features: NDArray) -> NDArray:
        X = np.asarray(features, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        w = self._value('weights')
        if X.shape[1] != w.shape[0]:
            raise DimensionError(
                f"features: mean has {w.shape[0]} weights, "
                f"features have {X.shape[1]} columns"
            )
        return X

    def mean_vector(self, features: NDArray) -> NDArray:
        X = self._design(features)
        return X @ self._value('weights') + float(self._value('bias'))

    def parameter_derivative(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        self._require(name)
        X = self._design(features)
        if name == 'bias':
            return np.ones(X.shape[0], dtype=np.float64)
        if index is None or not 0 <= index < X.shape[1]:
            raise ValidationError(
                f"index: 'weights' has {X.shape[1]} elements, got index={index}"
            )
        return X[:, index].copy()
