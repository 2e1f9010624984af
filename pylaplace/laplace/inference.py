"""
Single-likelihood Laplace inference.

SingleLaplaceInference owns the mode state for one GP model: a kernel, a
mean function and a likelihood evaluated on fixed training data. Every
public accessor first makes sure the mode and the posterior factorization
belong to the current hyperparameters, recomputing them lazily when a
setter or invalidate() has marked the object dirty.

Hyperparameters are addressed as (group, name) pairs:

    'kernel'      kernel hyperparameters (dK/dtheta from the kernel)
    'mean'        mean function hyperparameters
    'likelihood'  likelihood hyperparameters
    'inference'   'log_scale', the amplitude on K (K_eff = K exp(2 log_scale))
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylaplace.core.compute.optimization import FirstOrderMinimizer
from pylaplace.core.exceptions import (
    ReentrancyError,
    UnknownParameterError,
    UnsupportedMinimizerError,
    ValidationError,
)
from pylaplace.core.protocols import (
    KernelProvider,
    LikelihoodModel,
    MeanFunctionProvider,
)
from pylaplace.core.validation import check_finite, check_length, check_square
from pylaplace.laplace._cost import FirstOrderModeFinder
from pylaplace.laplace._gradient import (
    GradientAuxiliary,
    compute_gradient_auxiliary,
    derivative_wrt_kernel,
    derivative_wrt_likelihood,
    derivative_wrt_mean,
    derivative_wrt_scale,
)
from pylaplace.laplace._minimizer import ModeMinimizer, ModeSearchResult
from pylaplace.laplace._newton import NewtonOptimizer
from pylaplace.laplace._nlml import negative_log_marginal_likelihood
from pylaplace.laplace._posterior import (
    PosteriorFactor,
    build_posterior_factor,
    posterior_covariance,
)
from pylaplace.laplace._state import ModeState, initial_mode_state
from pylaplace.laplace.design import LaplaceDesign


PARAMETER_GROUPS = ('kernel', 'mean', 'likelihood', 'inference')
_INFERENCE_PARAMETERS = ('log_scale',)


class SingleLaplaceInference:
    """
    Laplace approximation for a GP with a single factorized likelihood.

    Args:
        kernel: KernelProvider evaluated on ``features``.
        features: Training inputs (n,) or (n, d).
        mean: MeanFunctionProvider.
        labels: Observed labels (n,).
        likelihood: LikelihoodModel.
        log_scale: Log amplitude; K is multiplied by exp(2 log_scale).
        minimizer: ModeMinimizer or FirstOrderMinimizer used to find the
            mode. Default NewtonOptimizer().

    Examples:
        >>> inf = SingleLaplaceInference(
        ...     SquaredExponentialKernel(1.0), X, ZeroMean(), y, LogitLikelihood())
        >>> inf.get_negative_log_marginal_likelihood()
        >>> inf.get_derivative('kernel', 'log_lengthscales')
    """

    def __init__(
        self,
        kernel: KernelProvider,
        features: ArrayLike,
        mean: MeanFunctionProvider,
        labels: ArrayLike,
        likelihood: LikelihoodModel,
        *,
        log_scale: float = 0.0,
        minimizer: ModeMinimizer | FirstOrderMinimizer | None = None,
    ):
        self._design = LaplaceDesign.validate(features, labels)
        self._kernel = kernel
        self._mean = mean
        self._likelihood = likelihood
        self.log_scale = log_scale
        self._minimizer: ModeMinimizer = NewtonOptimizer()
        if minimizer is not None:
            self.register_minimizer(minimizer)

        self._previous_alpha: NDArray | None = None
        self._state: ModeState | None = None
        self._search: ModeSearchResult | None = None
        self._factor: PosteriorFactor | None = None
        self._nlml: float | None = None
        self._aux: GradientAuxiliary | None = None

        self._dirty = True
        self._busy = False

    # ------------------------------------------------------------------
    # Collaborators and setters
    # ------------------------------------------------------------------

    @property
    def kernel(self) -> KernelProvider:
        return self._kernel

    @property
    def mean(self) -> MeanFunctionProvider:
        return self._mean

    @property
    def likelihood(self) -> LikelihoodModel:
        return self._likelihood

    @property
    def features(self) -> NDArray:
        return self._design.features

    @property
    def labels(self) -> NDArray:
        return self._design.labels

    @property
    def minimizer(self) -> ModeMinimizer:
        return self._minimizer

    @property
    def log_scale(self) -> float:
        return self._log_scale

    @log_scale.setter
    def log_scale(self, value: float) -> None:
        value = float(value)
        if not np.isfinite(value):
            raise ValidationError(f"log_scale: must be finite, got {value}")
        self._log_scale = value
        self.invalidate()

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def invalidate(self) -> None:
        """Mark the mode and every cached quantity as stale.

        Call this after changing a collaborator's hyperparameters directly
        on the collaborator rather than through set_parameter().
        """
        self._dirty = True
        self._factor = None
        self._nlml = None
        self._aux = None

    def set_data(self, features: ArrayLike, labels: ArrayLike) -> None:
        """Replace the training data."""
        self._design = LaplaceDesign.validate(features, labels)
        self.invalidate()

    def set_features(self, features: ArrayLike) -> None:
        self.set_data(features, self._design.labels)

    def set_labels(self, labels: ArrayLike) -> None:
        self.set_data(self._design.features, labels)

    def set_kernel(self, kernel: KernelProvider) -> None:
        self._kernel = kernel
        self.invalidate()

    def set_mean(self, mean: MeanFunctionProvider) -> None:
        self._mean = mean
        self.invalidate()

    def set_likelihood(self, likelihood: LikelihoodModel) -> None:
        self._likelihood = likelihood
        self.invalidate()

    def register_minimizer(self, minimizer: ModeMinimizer | FirstOrderMinimizer) -> None:
        """
        Choose how the mode is found.

        Args:
            minimizer: A ModeMinimizer (e.g. NewtonOptimizer) is used as is.
                A FirstOrderMinimizer is driven over the mode objective via
                FirstOrderModeFinder.

        Raises:
            UnsupportedMinimizerError: For any other type.
        """
        if isinstance(minimizer, ModeMinimizer):
            self._minimizer = minimizer
        elif isinstance(minimizer, FirstOrderMinimizer):
            self._minimizer = FirstOrderModeFinder(minimizer)
        else:
            raise UnsupportedMinimizerError(
                f"Cannot find the mode with {type(minimizer).__name__}; expected "
                f"a ModeMinimizer or a FirstOrderMinimizer",
                minimizer_type=type(minimizer).__name__,
            )
        self.invalidate()

    def _owner(self, group: str) -> Any:
        if group == 'kernel':
            return self._kernel
        if group == 'mean':
            return self._mean
        if group == 'likelihood':
            return self._likelihood
        return None

    def parameter_names(self, group: str) -> tuple[str, ...]:
        """Hyperparameter names accepted for ``group``."""
        if group not in PARAMETER_GROUPS:
            raise UnknownParameterError(
                f"Unknown parameter group {group!r}. Available: {list(PARAMETER_GROUPS)}",
                group=group,
                available=PARAMETER_GROUPS,
            )
        if group == 'inference':
            return _INFERENCE_PARAMETERS
        return tuple(self._owner(group).parameter_names)

    def _check_parameter(self, group: str, name: str) -> None:
        names = self.parameter_names(group)
        if name not in names:
            raise UnknownParameterError(
                f"No {group} parameter named {name!r}. Available: {list(names)}",
                group=group,
                name=name,
                available=names,
            )

    def get_parameter(self, group: str, name: str) -> Any:
        self._check_parameter(group, name)
        if group == 'inference':
            return self._log_scale
        return self._owner(group).get_parameter(name)

    def set_parameter(self, group: str, name: str, value: Any) -> None:
        """Set a hyperparameter and mark the mode stale."""
        self._check_parameter(group, name)
        if group == 'inference':
            self.log_scale = value
            return
        self._owner(group).set_parameter(name, value)
        self.invalidate()

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def _evaluate_prior(self) -> tuple[NDArray, NDArray]:
        n = self._design.n
        features = self._design.features

        K = np.asarray(self._kernel.covariance_matrix(features), dtype=np.float64)
        check_square(K, n, 'kernel covariance')
        check_finite(K, 'kernel covariance')

        mean_f = np.asarray(self._mean.mean_vector(features), dtype=np.float64)
        check_length(mean_f, n, 'mean vector')
        check_finite(mean_f, 'mean vector')
        return K, mean_f

    def update(self) -> None:
        """
        Find the mode and factorize the posterior for the current
        hyperparameters.

        Raises:
            ReentrancyError: If called while this object is already
                finding its mode.
        """
        if self._busy:
            raise ReentrancyError(
                "Mode finding is already running on this inference object"
            )
        self._busy = True
        try:
            K, mean_f = self._evaluate_prior()
            state = initial_mode_state(
                self._design.labels, self._likelihood, K,
                self._log_scale, mean_f, self._previous_alpha,
            )
            search = self._minimizer.find_mode(state)

            d2lp = self._likelihood.log_probability_derivative(
                state.labels, state.mu, 2
            )
            factor = build_posterior_factor(state.K_scaled, d2lp)
            nlml = negative_log_marginal_likelihood(state, factor)
        finally:
            self._busy = False

        self._state = state
        self._search = search
        self._factor = factor
        self._nlml = nlml
        self._aux = None
        self._previous_alpha = state.alpha.copy()
        self._dirty = False

    def _ensure_current(self) -> None:
        if self._busy:
            raise ReentrancyError(
                "Inference results were requested while mode finding is running"
            )
        if self._dirty:
            self.update()

    def _gradient_auxiliary(self) -> GradientAuxiliary:
        self._ensure_current()
        if self._aux is None:
            self._aux = compute_gradient_auxiliary(self._state, self._factor)
        return self._aux

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_negative_log_marginal_likelihood(self) -> float:
        self._ensure_current()
        return self._nlml

    def get_psi(self) -> float:
        """Psi at the mode."""
        self._ensure_current()
        return self._state.psi

    def get_alpha(self) -> NDArray:
        self._ensure_current()
        return self._state.alpha.copy()

    def get_mode(self) -> NDArray:
        """Latent function values at the mode, f_hat = K s^2 alpha + m."""
        self._ensure_current()
        return self._state.mu.copy()

    def get_posterior_mean(self) -> NDArray:
        """Posterior mean of the latent deviation from the prior mean, f_hat - m."""
        self._ensure_current()
        return self._state.mu - self._state.mean_f

    def get_posterior_covariance(self) -> NDArray:
        self._ensure_current()
        return posterior_covariance(self._factor, self._state.K_scaled)

    def get_cholesky(self) -> NDArray:
        """L: upper Cholesky factor of B, or -diag(W) A^-1 when W < 0 somewhere."""
        self._ensure_current()
        return self._factor.L.copy()

    def get_diagonal_vector(self) -> NDArray:
        """sW, the (signed) square root of W at the mode."""
        self._ensure_current()
        return self._factor.sW.copy()

    def get_posterior_factor(self) -> PosteriorFactor:
        self._ensure_current()
        return self._factor

    def get_mode_search(self) -> ModeSearchResult:
        """Convergence record of the last mode search."""
        self._ensure_current()
        return self._search

    @property
    def branch(self) -> str:
        """'cholesky' or 'lu', for the current mode."""
        self._ensure_current()
        return self._factor.branch

    # ------------------------------------------------------------------
    # Gradient
    # ------------------------------------------------------------------

    def get_derivative(self, group: str, name: str) -> float | NDArray:
        """
        dNLML wrt one hyperparameter.

        Args:
            group: 'kernel', 'mean', 'likelihood' or 'inference'.
            name: Hyperparameter name within the group.

        Returns:
            A float for scalar hyperparameters, an array with one entry
            per element for vector hyperparameters.

        Raises:
            UnknownParameterError: If the group or name is not recognized.
                Raised before any computation.
        """
        self._check_parameter(group, name)
        aux = self._gradient_auxiliary()
        state = self._state

        if group == 'inference':
            return derivative_wrt_scale(state, aux)
        if group == 'likelihood':
            return derivative_wrt_likelihood(state, aux, name)

        size = self._parameter_size(group, name)
        if size is None:
            return self._element_derivative(group, name, None, aux)
        return np.array([
            self._element_derivative(group, name, i, aux) for i in range(size)
        ])

    def _parameter_size(self, group: str, name: str) -> int | None:
        value = np.asarray(self._owner(group).get_parameter(name))
        if value.ndim == 0:
            return None
        return int(value.size)

    def _element_derivative(
        self, group: str, name: str, index: int | None, aux: GradientAuxiliary
    ) -> float:
        state = self._state
        features = self._design.features
        n = self._design.n

        if group == 'kernel':
            dK = np.asarray(
                self._kernel.parameter_gradient(features, name, index), dtype=np.float64
            )
            check_square(dK, n, f"kernel gradient wrt {name!r}")
            return derivative_wrt_kernel(state, aux, dK)

        dm = np.asarray(
            self._mean.parameter_derivative(features, name, index), dtype=np.float64
        )
        check_length(dm, n, f"mean derivative wrt {name!r}")
        return derivative_wrt_mean(state, aux, dm)

    def get_negative_log_marginal_likelihood_derivatives(self) -> dict[str, float]:
        """
        dNLML for every hyperparameter of every group.

        Returns:
            Dict keyed 'group.name', or 'group.name[i]' for elements of a
            vector hyperparameter.
        """
        self._ensure_current()
        gradient = {}
        for group in PARAMETER_GROUPS:
            for name in self.parameter_names(group):
                value = self.get_derivative(group, name)
                if np.ndim(value) == 0:
                    gradient[f"{group}.{name}"] = float(value)
                else:
                    for i, v in enumerate(value):
                        gradient[f"{group}.{name}[{i}]"] = float(v)
        return gradient

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(n={self._design.n}, "
                f"likelihood={self._likelihood!r}, minimizer={self._minimizer!r}, "
                f"log_scale={self._log_scale!r})")
