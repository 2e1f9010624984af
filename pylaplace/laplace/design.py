"""
Design validation for Laplace inference.

LaplaceDesign validates the training inputs and labels once, before any
collaborator is evaluated on them.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylaplace.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_2d,
    check_consistent_length,
    check_min_samples,
)


@dataclass(frozen=True)
class LaplaceDesign:
    """Validated training data.

    Attributes:
        features: Training inputs (n, d). A 1-D input becomes one column.
        labels: Observed labels (n,).
        n: Number of observations.
        d: Number of input dimensions.
    """
    features: NDArray
    labels: NDArray
    n: int
    d: int

    @staticmethod
    def validate(features: ArrayLike, labels: ArrayLike) -> 'LaplaceDesign':
        """Validate inputs and create a LaplaceDesign.

        Args:
            features: Training inputs, (n,) or (n, d).
            labels: Labels, (n,).

        Returns:
            Validated LaplaceDesign.

        Raises:
            ValidationError: On non-numeric or non-finite data, or n < 1.
            DimensionError: On wrong dimensions or mismatched lengths.
        """
        X = check_array(features, 'features')
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        check_2d(X, 'features')
        check_finite(X, 'features')

        y = check_array(labels, 'labels')
        check_1d(y, 'labels')
        check_finite(y, 'labels')
        check_min_samples(y, 1, 'labels')

        check_consistent_length(X, y, names=('features', 'labels'))

        X = np.array(X, dtype=np.float64)
        y = np.array(y, dtype=np.float64)
        return LaplaceDesign(features=X, labels=y, n=y.shape[0], d=X.shape[1])
