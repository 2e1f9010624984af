"""
Tests for core numerics: factorizations, line search, first-order
minimizers, timing and tolerance tiers.
"""

import numpy as np
import pytest

from pylaplace.core.compute.linalg import cholesky_upper, lu_inverse, solve_upper
from pylaplace.core.compute.optimization import BrentLineSearch, LBFGSMinimizer
from pylaplace.core.compute.timing import Timer
from pylaplace.core.compute.tolerances import (
    EXACT_FP64,
    FINITE_DIFFERENCE,
    select_tolerance,
)
from pylaplace.core.exceptions import NotPositiveDefiniteError, SingularMatrixError


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def spd_matrix(rng):
    A = rng.standard_normal((5, 5))
    return A @ A.T + 5.0 * np.eye(5)


# ═══════════════════════════════════════════════════════════════════════
# Factorizations
# ═══════════════════════════════════════════════════════════════════════


class TestCholeskyUpper:

    def test_reconstructs_matrix(self, spd_matrix):
        chol = cholesky_upper(spd_matrix)
        np.testing.assert_allclose(chol.U.T @ chol.U, spd_matrix, rtol=1e-12)
        np.testing.assert_allclose(np.triu(chol.U), chol.U)

    def test_log_det(self, spd_matrix):
        chol = cholesky_upper(spd_matrix)
        _, expected = np.linalg.slogdet(spd_matrix)
        np.testing.assert_allclose(chol.log_det, expected, rtol=EXACT_FP64.rtol)

    def test_indefinite_raises_with_min_eigenvalue(self):
        M = np.array([[1.0, 0.0], [0.0, -2.0]])
        with pytest.raises(NotPositiveDefiniteError) as exc_info:
            cholesky_upper(M, name='B')
        assert exc_info.value.matrix_name == 'B'
        assert exc_info.value.min_eigenvalue == pytest.approx(-2.0)


class TestLUInverse:

    def test_inverse_and_determinant(self, rng):
        M = rng.standard_normal((4, 4)) + 4.0 * np.eye(4)
        lu = lu_inverse(M)
        np.testing.assert_allclose(lu.inverse @ M, np.eye(4), atol=1e-12)
        sign, logdet = np.linalg.slogdet(M)
        assert lu.sign == sign
        np.testing.assert_allclose(lu.log_abs_det, logdet, rtol=1e-10)

    def test_negative_determinant_sign(self):
        M = np.array([[0.0, 1.0], [1.0, 0.0]])
        lu = lu_inverse(M)
        assert lu.sign == -1.0
        np.testing.assert_allclose(lu.log_abs_det, 0.0, atol=1e-15)

    def test_singular_raises(self):
        M = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(SingularMatrixError) as exc_info:
            lu_inverse(M, name='A')
        assert exc_info.value.matrix_name == 'A'
        assert exc_info.value.expected_rank == 2

    def test_non_finite_raises(self):
        with pytest.raises(SingularMatrixError, match="non-finite"):
            lu_inverse(np.array([[np.nan, 0.0], [0.0, 1.0]]))


class TestSolveUpper:

    def test_both_orientations(self, spd_matrix, rng):
        U = cholesky_upper(spd_matrix).U
        b = rng.standard_normal(5)
        np.testing.assert_allclose(U @ solve_upper(U, b), b, atol=1e-12)
        np.testing.assert_allclose(U.T @ solve_upper(U, b, transpose=True), b, atol=1e-12)


# ═══════════════════════════════════════════════════════════════════════
# Line search
# ═══════════════════════════════════════════════════════════════════════


class TestBrentLineSearch:

    def test_finds_interior_minimum(self):
        search = BrentLineSearch(tolerance=1e-8, max_evaluations=100)
        res = search.minimize(lambda x: (x - 1.3) ** 2 + 2.0, 0.0, 10.0)
        assert res.x == pytest.approx(1.3, abs=1e-6)
        assert res.fun == pytest.approx(2.0)
        assert res.converged

    def test_respects_bounds(self):
        search = BrentLineSearch(tolerance=1e-8, max_evaluations=100)
        res = search.minimize(lambda x: -x, 0.0, 2.0)
        assert 0.0 <= res.x <= 2.0
        assert res.x == pytest.approx(2.0, abs=1e-4)

    def test_evaluation_budget(self):
        calls = []

        def f(x):
            calls.append(x)
            return np.cos(x)

        BrentLineSearch(tolerance=1e-12, max_evaluations=5).minimize(f, 0.0, 10.0)
        assert len(calls) <= 6

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            BrentLineSearch(tolerance=0.0)
        with pytest.raises(ValueError):
            BrentLineSearch(max_evaluations=0)
        with pytest.raises(ValueError, match="Empty search interval"):
            BrentLineSearch().minimize(lambda x: x, 1.0, 1.0)


# ═══════════════════════════════════════════════════════════════════════
# First-order minimizer
# ═══════════════════════════════════════════════════════════════════════


class QuadraticCost:
    """0.5 (x - c)' Q (x - c) exposed as a CostFunction."""

    def __init__(self, Q, c):
        self.Q = Q
        self.c = c
        self.x = np.zeros_like(c)

    def get_cost(self):
        r = self.x - self.c
        return 0.5 * r @ self.Q @ r

    def get_gradient(self):
        return self.Q @ (self.x - self.c)

    def obtain_variable_reference(self):
        return self.x


class TestLBFGSMinimizer:

    def test_minimizes_in_place(self, spd_matrix):
        c = np.arange(5, dtype=float)
        cost = QuadraticCost(spd_matrix, c)
        variable = cost.obtain_variable_reference()

        res = LBFGSMinimizer().minimize(cost)

        assert res.converged
        assert variable is cost.x
        np.testing.assert_allclose(cost.x, c, atol=1e-4)
        assert res.fun == pytest.approx(cost.get_cost())

    def test_name(self):
        assert LBFGSMinimizer().name == 'lbfgs'


# ═══════════════════════════════════════════════════════════════════════
# Timing and tolerances
# ═══════════════════════════════════════════════════════════════════════


class TestTimer:

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        with timer.section('mode'):
            pass
        with timer.section('mode'):
            pass
        timer.stop()
        result = timer.result()
        assert 'total_seconds' in result
        assert result['mode'] >= 0.0

    def test_result_before_stop(self):
        with pytest.raises(RuntimeError):
            Timer().result()


class TestTolerances:

    def test_select_by_name(self):
        assert select_tolerance('finite_difference') is FINITE_DIFFERENCE

    def test_unknown_tier(self):
        with pytest.raises(ValueError, match="Valid tiers"):
            select_tolerance('sloppy')
