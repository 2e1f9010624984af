"""
Named hyperparameter storage shared by the reference collaborators.

Every hyperparameter is stored as a float64 array: 0-d for scalars, 1-d
for vector-valued parameters (e.g. one lengthscale per input dimension).
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylaplace.core.exceptions import UnknownParameterError, DimensionError


class Parameterized:
    """Mixin giving a class a registry of named hyperparameters."""

    #: Group label used in error messages ('kernel', 'mean', 'likelihood')
    parameter_group = 'model'

    def __init__(self):
        self._params: dict[str, NDArray] = {}

    def _register(self, name: str, value: ArrayLike) -> None:
        self._params[name] = np.array(value, dtype=np.float64)

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(self._params)

    def _unknown_parameter(self, name: str) -> UnknownParameterError:
        return UnknownParameterError(
            f"{self.__class__.__name__} has no {self.parameter_group} "
            f"parameter {name!r}. Available: {list(self._params)}",
            group=self.parameter_group,
            name=name,
            available=self.parameter_names,
        )

    def _require(self, name: str) -> NDArray:
        """Return the stored array for ``name`` or raise UnknownParameterError."""
        try:
            return self._params[name]
        except KeyError:
            raise self._unknown_parameter(name) from None

    def get_parameter(self, name: str) -> Any:
        """Current value: float for scalars, a copy of the array otherwise."""
        value = self._require(name)
        if value.ndim == 0:
            return float(value)
        return value.copy()

    def set_parameter(self, name: str, value: ArrayLike) -> None:
        """Replace a hyperparameter value; the shape must not change."""
        current = self._require(name)
        new = np.array(value, dtype=np.float64)
        if new.shape != current.shape:
            raise DimensionError(
                f"{self.parameter_group} parameter {name!r}: expected shape "
                f"{current.shape}, got {new.shape}"
            )
        self._params[name] = new

    def _value(self, name: str) -> NDArray:
        return self._params[name]

    def __repr__(self) -> str:
        parts = ', '.join(
            f"{k}={float(v) if v.ndim == 0 else v.tolist()!r}"
            for k, v in self._params.items()
        )
        return f"{self.__class__.__name__}({parts})"
