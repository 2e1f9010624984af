"""
Tests for mode finding: the Newton iteration, its line search, the
first-order alternative and the starting-point rules.
"""

import numpy as np
import pytest

from pylaplace.core.compute.optimization import (
    BrentLineSearch,
    LBFGSMinimizer,
    LineSearch,
    LineSearchResult,
)
from pylaplace.core.exceptions import FeatureUnavailableError, NumericalError
from pylaplace.core.protocols import HeavyTailedLikelihood, LikelihoodModel
from pylaplace.laplace import (
    FirstOrderModeFinder,
    LaplaceCostFunction,
    NewtonOptimizer,
)
from pylaplace.laplace._state import initial_mode_state
from pylaplace.models import (
    ConstantMean,
    GaussianLikelihood,
    LogitLikelihood,
    SquaredExponentialKernel,
    StudentTLikelihood,
)


def _state(X, y, likelihood, mean=None, log_scale=0.0, previous_alpha=None, lengthscale=1.0):
    K = SquaredExponentialKernel(lengthscale).covariance_matrix(X)
    mean_f = np.zeros(len(y)) if mean is None else mean.mean_vector(X)
    return initial_mode_state(y, likelihood, K, log_scale, mean_f, previous_alpha)


# ═══════════════════════════════════════════════════════════════════════
# Starting point
# ═══════════════════════════════════════════════════════════════════════


class TestInitialState:

    def test_zero_alpha_gives_prior_mean(self, classification_data):
        X, y = classification_data
        lik = LogitLikelihood()
        mean = ConstantMean(0.4)
        state = _state(X, y, lik, mean=mean)

        np.testing.assert_array_equal(state.alpha, np.zeros(len(y)))
        np.testing.assert_array_equal(state.mu, mean.mean_vector(X))
        assert state.psi == pytest.approx(-np.sum(lik.log_probability(y, mean.mean_vector(X))))

    def test_length_mismatch_resets_alpha(self, classification_data):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood(), previous_alpha=np.ones(3))
        np.testing.assert_array_equal(state.alpha, np.zeros(len(y)))

    def test_warm_start_kept_when_better(self, classification_data):
        X, y = classification_data
        lik = LogitLikelihood()
        state = _state(X, y, lik)
        NewtonOptimizer().find_mode(state)

        warm = _state(X, y, lik, previous_alpha=state.alpha)
        np.testing.assert_allclose(warm.alpha, state.alpha)
        assert warm.psi == pytest.approx(state.psi)

    def test_warm_start_rejected_when_worse(self, classification_data):
        X, y = classification_data
        bad_alpha = -10.0 * y
        state = _state(X, y, LogitLikelihood(), previous_alpha=bad_alpha)
        np.testing.assert_array_equal(state.alpha, np.zeros(len(y)))

    def test_derivatives_evaluated_at_start(self, classification_data):
        X, y = classification_data
        lik = LogitLikelihood()
        state = _state(X, y, lik)
        np.testing.assert_allclose(state.dlp, lik.log_probability_derivative(y, state.mu, 1))
        np.testing.assert_allclose(state.W, -lik.log_probability_derivative(y, state.mu, 2))


# ═══════════════════════════════════════════════════════════════════════
# Newton
# ═══════════════════════════════════════════════════════════════════════


class TestNewtonClosedForm:
    """K = I, Gaussian noise with unit variance: the mode is y / 2."""

    @pytest.fixture
    def state(self):
        y = np.array([1.0, -1.0, 0.5])
        return initial_mode_state(
            y, GaussianLikelihood(1.0), np.eye(3), 0.0, np.zeros(3), None
        )

    def test_converges_to_half_labels(self, state):
        result = NewtonOptimizer().find_mode(state)
        assert result.converged
        assert result.n_iter <= 5
        np.testing.assert_allclose(state.alpha, [0.5, -0.5, 0.25], atol=1e-5)
        np.testing.assert_allclose(state.mu, [0.5, -0.5, 0.25], atol=1e-5)

    def test_state_consistent_after_search(self, state):
        NewtonOptimizer().find_mode(state)
        np.testing.assert_allclose(state.mu, state.K_scaled @ state.alpha + state.mean_f)
        assert state.psi == pytest.approx(state.objective())


class TestNewtonBehaviour:

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_psi_non_increasing(self, classification_data):
        X, y = classification_data
        psis = []
        for k in range(1, 7):
            state = _state(X, y, LogitLikelihood(), log_scale=1.0)
            psis.append(NewtonOptimizer(max_iterations=k).find_mode(state).psi)
        assert all(b <= a + 1e-12 for a, b in zip(psis, psis[1:]))

    def test_rerun_on_converged_state(self, classification_data):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood())
        optimizer = NewtonOptimizer()
        first = optimizer.find_mode(state)
        second = optimizer.find_mode(state)
        assert abs(first.psi - second.psi) < optimizer.tolerance
        assert second.n_iter == 1

    def test_non_convergence_warns(self, classification_data):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood(), log_scale=1.0)
        with pytest.warns(RuntimeWarning, match="max iterations"):
            result = NewtonOptimizer(max_iterations=1).find_mode(state)
        assert not result.converged
        assert result.n_iter == 1
        assert result.final_change > 0

    def test_missing_line_search(self, classification_data):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood())
        with pytest.raises(FeatureUnavailableError) as exc_info:
            NewtonOptimizer(line_search=None).find_mode(state)
        assert exc_info.value.feature == 'line_search'

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_uphill_line_search_restores_start(self, classification_data):
        class UphillSearch(LineSearch):
            name = 'uphill'

            def minimize(self, func, lower, upper):
                return LineSearchResult(x=upper, fun=func(upper), n_evaluations=1,
                                        converged=True)

        X, y = classification_data
        state = _state(X, y, LogitLikelihood(), log_scale=3.0)
        start_psi = state.psi
        # Far overshooting steps may or may not be uphill; the result never is
        result = NewtonOptimizer(line_search=UphillSearch()).find_mode(state)
        assert result.psi <= start_psi
        assert state.psi == pytest.approx(state.objective())

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_indefinite_w_is_regularized(self, outlier_data):
        X, y = outlier_data
        lik = StudentTLikelihood(sigma=0.3, df=3.0)
        state = _state(X, y, lik)
        start_psi = state.psi
        result = NewtonOptimizer(max_iterations=100).find_mode(state)
        assert result.psi < start_psi
        assert np.all(np.isfinite(state.alpha))
        assert state.W.min() < 0

    def test_converged_mode_is_stationary(self, classification_data):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood(), log_scale=1.0)
        result = NewtonOptimizer().find_mode(state)
        assert result.converged
        np.testing.assert_allclose(state.alpha, state.dlp, atol=1e-10)
        assert state.psi == pytest.approx(state.objective())
        assert result.psi == state.psi

    def test_non_finite_start_raises(self, classification_data):
        class ZeroProbabilityLogit(LogitLikelihood):
            def log_probability(self, labels, f):
                return np.full(np.shape(f), -np.inf)

        X, y = classification_data
        state = _state(X, y, ZeroProbabilityLogit())
        assert state.psi == np.inf
        with pytest.raises(NumericalError, match="not finite"):
            NewtonOptimizer().find_mode(state)

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            NewtonOptimizer(max_iterations=0)
        with pytest.raises(ValueError):
            NewtonOptimizer(step_max=0.0)

    def test_default_line_search(self):
        optimizer = NewtonOptimizer()
        assert isinstance(optimizer.line_search, BrentLineSearch)
        assert optimizer.line_search.tolerance == 1e-6
        assert optimizer.line_search.max_evaluations == 10
        assert optimizer.step_max == 10.0


class DuckStudentT:
    """Student's t with the plain likelihood surface plus degrees_of_freedom().

    Has no get_parameter/set_parameter, so it is not a full LikelihoodModel.
    """

    def __init__(self, sigma, df):
        self._inner = StudentTLikelihood(sigma=sigma, df=df)
        self.df_calls = 0

    @property
    def parameter_names(self):
        return self._inner.parameter_names

    def log_probability(self, labels, f):
        return self._inner.log_probability(labels, f)

    def log_probability_derivative(self, labels, f, order):
        return self._inner.log_probability_derivative(labels, f, order)

    def first_derivative(self, labels, f, name):
        return self._inner.first_derivative(labels, f, name)

    def second_derivative(self, labels, f, name):
        return self._inner.second_derivative(labels, f, name)

    def third_derivative(self, labels, f, name):
        return self._inner.third_derivative(labels, f, name)

    def degrees_of_freedom(self):
        self.df_calls += 1
        return self._inner.degrees_of_freedom()


class TestRegularization:

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_duck_typed_likelihood_supplies_df(self, outlier_data):
        X, y = outlier_data
        duck = DuckStudentT(sigma=0.3, df=3.0)
        assert isinstance(duck, HeavyTailedLikelihood)
        assert not isinstance(duck, LikelihoodModel)

        state = _state(X, y, duck)
        NewtonOptimizer(max_iterations=100).find_mode(state)
        assert duck.df_calls > 0

        reference = _state(X, y, StudentTLikelihood(sigma=0.3, df=3.0))
        NewtonOptimizer(max_iterations=100).find_mode(reference)
        np.testing.assert_allclose(state.alpha, reference.alpha)

    def test_gaussian_is_not_heavy_tailed(self):
        assert not isinstance(GaussianLikelihood(), HeavyTailedLikelihood)


# ═══════════════════════════════════════════════════════════════════════
# First-order mode finding
# ═══════════════════════════════════════════════════════════════════════


class TestCostFunction:

    def test_variable_reference_is_live(self, classification_data):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood())
        cost = LaplaceCostFunction(state)
        assert cost.obtain_variable_reference() is state.alpha

    def test_cost_at_zero(self, classification_data):
        X, y = classification_data
        lik = LogitLikelihood()
        state = _state(X, y, lik)
        cost = LaplaceCostFunction(state)
        assert cost.get_cost() == pytest.approx(-np.sum(lik.log_probability(y, np.zeros(len(y)))))

    def test_gradient_matches_finite_difference(self, classification_data, rng):
        X, y = classification_data
        state = _state(X, y, LogitLikelihood())
        cost = LaplaceCostFunction(state)
        alpha = cost.obtain_variable_reference()
        alpha[:] = 0.1 * rng.standard_normal(len(y))
        start = alpha.copy()

        grad = cost.get_gradient()
        h = 1e-6
        numeric = np.zeros(len(y))
        for i in range(len(y)):
            alpha[:] = start
            alpha[i] += h
            plus = cost.get_cost()
            alpha[i] -= 2 * h
            minus = cost.get_cost()
            numeric[i] = (plus - minus) / (2 * h)
        np.testing.assert_allclose(grad, numeric, rtol=1e-5, atol=1e-7)


class TestFirstOrderModeFinder:

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_lbfgs_matches_newton(self, classification_data):
        X, y = classification_data
        newton_state = _state(X, y, LogitLikelihood())
        NewtonOptimizer(tolerance=1e-12, max_iterations=100).find_mode(newton_state)

        lbfgs_state = _state(X, y, LogitLikelihood())
        result = FirstOrderModeFinder(LBFGSMinimizer()).find_mode(lbfgs_state)

        assert result.minimizer == 'lbfgs'
        np.testing.assert_allclose(lbfgs_state.mu, newton_state.mu, atol=1e-3)
        assert result.psi == pytest.approx(newton_state.psi, abs=1e-5)

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_state_consistent_on_exit(self, classification_data):
        X, y = classification_data
        lik = LogitLikelihood()
        state = _state(X, y, lik)
        FirstOrderModeFinder(LBFGSMinimizer()).find_mode(state)
        np.testing.assert_allclose(state.mu, state.K_scaled @ state.alpha)
        np.testing.assert_allclose(state.dlp, lik.log_probability_derivative(y, state.mu, 1))
        assert state.psi == pytest.approx(state.objective())
