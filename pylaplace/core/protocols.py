"""
Collaborator protocols for pylaplace.

The inference engine never evaluates a kernel, a mean function or a
likelihood itself. It talks to collaborators through the structural
interfaces below. We use Protocol (structural typing) rather than ABC so
that any object with the right methods plugs in, including user classes
that know nothing about this package.

Conventions shared by all collaborators:
    - Hyperparameters are addressed by name; ``parameter_names`` lists
      every accepted name.
    - A hyperparameter may be a scalar or a vector. Vector-valued
      hyperparameters are differentiated one element at a time by passing
      ``index``; scalars are called with ``index=None``.
    - Returned arrays are float64 numpy arrays, never views into internal
      state that the caller could corrupt.
"""

from typing import Protocol, Any, runtime_checkable

from numpy.typing import NDArray


@runtime_checkable
class LikelihoodModel(Protocol):
    """
    Observation model p(y | f), factorized over data points.

    All methods return vectors of length n (one entry per label).
    """

    @property
    def parameter_names(self) -> tuple[str, ...]:
        """Names of the likelihood hyperparameters."""
        ...

    def get_parameter(self, name: str) -> Any:
        ...

    def set_parameter(self, name: str, value: Any) -> None:
        ...

    def log_probability(self, labels: NDArray, f: NDArray) -> NDArray:
        """Elementwise log p(y_i | f_i)."""
        ...

    def log_probability_derivative(
        self, labels: NDArray, f: NDArray, order: int
    ) -> NDArray:
        """
        Elementwise derivative of log p(y_i | f_i) wrt f_i.

        Args:
            labels: Observed labels (n,)
            f: Latent function values (n,)
            order: 1, 2 or 3

        Returns:
            dlp, d2lp or d3lp depending on ``order``
        """
        ...

    def first_derivative(
        self, labels: NDArray, f: NDArray, name: str
    ) -> NDArray:
        """d log p / d theta for hyperparameter ``name``."""
        ...

    def second_derivative(
        self, labels: NDArray, f: NDArray, name: str
    ) -> NDArray:
        """d (dlp) / d theta: mixed derivative, once in f and once in theta."""
        ...

    def third_derivative(
        self, labels: NDArray, f: NDArray, name: str
    ) -> NDArray:
        """d (d2lp) / d theta: mixed derivative, twice in f and once in theta."""
        ...


@runtime_checkable
class HeavyTailedLikelihood(Protocol):
    """
    Optional capability of a likelihood: a degrees-of-freedom value.

    Used by Newton mode finding to scale the regularization that is
    applied when W has negative entries. Only degrees_of_freedom() is
    checked, so any likelihood object providing it qualifies.
    """

    def degrees_of_freedom(self) -> float:
        ...


@runtime_checkable
class KernelProvider(Protocol):
    """Covariance function evaluated on a fixed set of training inputs."""

    @property
    def parameter_names(self) -> tuple[str, ...]:
        ...

    def get_parameter(self, name: str) -> Any:
        ...

    def set_parameter(self, name: str, value: Any) -> None:
        ...

    def covariance_matrix(self, features: NDArray) -> NDArray:
        """Symmetric (n, n) covariance matrix K."""
        ...

    def parameter_gradient(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        """(n, n) derivative of K wrt hyperparameter ``name`` (element ``index``)."""
        ...


@runtime_checkable
class MeanFunctionProvider(Protocol):
    """Prior mean function evaluated on the training inputs."""

    @property
    def parameter_names(self) -> tuple[str, ...]:
        ...

    def get_parameter(self, name: str) -> Any:
        ...

    def set_parameter(self, name: str, value: Any) -> None:
        ...

    def mean_vector(self, features: NDArray) -> NDArray:
        """Prior mean m(x_i) for every training input (n,)."""
        ...

    def parameter_derivative(
        self, features: NDArray, name: str, index: int | None = None
    ) -> NDArray:
        """(n,) derivative of the mean vector wrt ``name`` (element ``index``)."""
        ...


@runtime_checkable
class CostFunction(Protocol):
    """
    Objective seen by a generic first-order minimizer.

    ``obtain_variable_reference`` hands out the live optimization variable;
    minimizers write candidate points into it in place and then call
    ``get_cost`` / ``get_gradient``.
    """

    def get_cost(self) -> float:
        ...

    def get_gradient(self) -> NDArray:
        ...

    def obtain_variable_reference(self) -> NDArray:
        ...
