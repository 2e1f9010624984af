"""
Tests for the posterior factorization, NLML and gradient auxiliaries on
hand-built modes.
"""

import numpy as np
import pytest

from pylaplace.core.compute.tolerances import EXACT_FP64
from pylaplace.laplace import (
    build_posterior_factor,
    compute_gradient_auxiliary,
    posterior_covariance,
)
from pylaplace.laplace._state import ModeState
from pylaplace.models import GaussianLikelihood, StudentTLikelihood


@pytest.fixture
def K(rng):
    A = rng.standard_normal((6, 6))
    return A @ A.T / 6.0 + 0.5 * np.eye(6)


def _dense_covariance(K_s, W):
    return np.linalg.inv(np.linalg.inv(K_s) + np.diag(W))


# ═══════════════════════════════════════════════════════════════════════
# Branch selection
# ═══════════════════════════════════════════════════════════════════════


class TestBranchSelection:

    def test_non_negative_w_uses_cholesky(self, K):
        W = np.array([0.1, 0.2, 0.0, 0.3, 1.0, 0.5])
        factor = build_posterior_factor(K, -W)
        assert factor.branch == 'cholesky'
        assert factor.A_inv is None
        np.testing.assert_allclose(factor.sW, np.sqrt(W))
        np.testing.assert_allclose(np.triu(factor.L), factor.L)

    def test_negative_entry_uses_lu(self, K):
        W = np.array([0.1, 0.2, -0.05, 0.3, 1.0, 0.5])
        factor = build_posterior_factor(K, -W)
        assert factor.branch == 'lu'
        assert factor.sW[2] == pytest.approx(-np.sqrt(0.05))
        np.testing.assert_allclose(np.delete(factor.sW, 2), np.sqrt(np.delete(W, 2)))

    def test_lu_factor_matches_definition(self, K):
        W = np.array([0.1, 0.2, -0.05, 0.3, 1.0, 0.5])
        factor = build_posterior_factor(K, -W)
        A = np.eye(6) + K @ np.diag(W)
        np.testing.assert_allclose(
            factor.L, -np.diag(W) @ np.linalg.inv(A), rtol=1e-10, atol=1e-12
        )


# ═══════════════════════════════════════════════════════════════════════
# Log-determinant
# ═══════════════════════════════════════════════════════════════════════


class TestLogDeterminant:

    @pytest.mark.parametrize("W", [
        np.array([0.1, 0.2, 0.0, 0.3, 1.0, 0.5]),
        np.array([0.1, 0.2, -0.05, 0.3, 1.0, 0.5]),
    ])
    def test_equals_dense_slogdet(self, K, W):
        factor = build_posterior_factor(K, -W)
        sign, expected = np.linalg.slogdet(np.eye(6) + K @ np.diag(W))
        assert factor.sign == sign
        np.testing.assert_allclose(factor.log_det, expected, rtol=EXACT_FP64.rtol)


# ═══════════════════════════════════════════════════════════════════════
# Posterior covariance
# ═══════════════════════════════════════════════════════════════════════


class TestPosteriorCovariance:

    def test_cholesky_branch(self, K):
        W = np.array([0.1, 0.2, 0.0, 0.3, 1.0, 0.5])
        factor = build_posterior_factor(K, -W)
        np.testing.assert_allclose(
            posterior_covariance(factor, K), _dense_covariance(K, W),
            rtol=1e-9, atol=1e-12,
        )

    def test_lu_branch(self, K):
        W = np.array([0.1, 0.2, -0.05, 0.3, 1.0, 0.5])
        factor = build_posterior_factor(K, -W)
        Sigma = posterior_covariance(factor, K)
        np.testing.assert_allclose(Sigma, Sigma.T)
        np.testing.assert_allclose(Sigma, _dense_covariance(K, W), rtol=1e-9, atol=1e-12)

    def test_branches_agree_at_zero_boundary(self, K):
        W = np.array([0.1, 0.2, 0.0, 0.3, 1.0, 0.5])
        W_neg = W.copy()
        W_neg[2] = -1e-12
        psd = posterior_covariance(build_posterior_factor(K, -W), K)
        ind = posterior_covariance(build_posterior_factor(K, -W_neg), K)
        np.testing.assert_allclose(psd, ind, rtol=1e-8, atol=1e-10)


# ═══════════════════════════════════════════════════════════════════════
# Gradient auxiliaries
# ═══════════════════════════════════════════════════════════════════════


class TestGradientAuxiliary:

    def _state(self, K, likelihood, y):
        state = ModeState(y, likelihood, K, 0.0, np.zeros(6), np.zeros(6))
        state.set_alpha(np.linalg.solve(K + np.eye(6), y) * 0.5)
        return state

    def test_cholesky_branch_matches_dense(self, K, rng):
        y = rng.standard_normal(6)
        state = self._state(K, StudentTLikelihood(sigma=2.0, df=20.0), y)
        assert state.W.min() >= 0

        factor = build_posterior_factor(state.K_scaled, -state.W)
        aux = compute_gradient_auxiliary(state, factor)

        W = state.W
        B = np.eye(6) + np.outer(np.sqrt(W), np.sqrt(W)) * K
        Z = np.diag(np.sqrt(W)) @ np.linalg.inv(B) @ np.diag(np.sqrt(W))
        np.testing.assert_allclose(aux.Z, Z, rtol=1e-9, atol=1e-12)
        np.testing.assert_allclose(aux.g, np.diag(_dense_covariance(K, W)) / 2.0, rtol=1e-9)

    def test_implicit_identity(self, K, rng):
        """(I + K W)^-1 = I - K Z on both branches."""
        y = rng.standard_normal(6)
        y[0] += 6.0
        state = self._state(K, StudentTLikelihood(sigma=0.3, df=3.0), y)
        factor = build_posterior_factor(state.K_scaled, -state.W)
        aux = compute_gradient_auxiliary(state, factor)

        lhs = np.linalg.inv(np.eye(6) + K @ np.diag(state.W))
        np.testing.assert_allclose(lhs, np.eye(6) - K @ aux.Z, rtol=1e-8, atol=1e-10)

    def test_gaussian_dfhat_is_zero(self, K, rng):
        y = rng.standard_normal(6)
        state = self._state(K, GaussianLikelihood(0.5), y)
        factor = build_posterior_factor(state.K_scaled, -state.W)
        aux = compute_gradient_auxiliary(state, factor)
        np.testing.assert_array_equal(aux.dfhat, np.zeros(6))
