"""
Reference likelihood models.

Each Likelihood defines, elementwise over data points:
- log p(y | f)
- derivatives of log p wrt f up to third order (dlp, d2lp, d3lp)
- derivatives of lp, dlp and d2lp wrt each of its hyperparameters

Hyperparameters are kept on the log scale so that they are unconstrained
for an outer optimizer.

References:
    Rasmussen, C. E., & Williams, C. K. I. (2006). Gaussian Processes for
    Machine Learning, Section 3.4 and Table 3.1.
    Vanhatalo, J., Jylanki, P., & Vehtari, A. (2009). Gaussian process
    regression with Student-t likelihood. NIPS 22.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import NDArray
from scipy.special import expit, gammaln, digamma

from pylaplace.core.exceptions import ValidationError
from pylaplace.models._base import Parameterized


_VALID_ORDERS = (1, 2, 3)


class Likelihood(Parameterized, ABC):
    """Factorized observation model p(y | f)."""

    parameter_group = 'likelihood'

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def log_probability(self, labels: NDArray, f: NDArray) -> NDArray:
        """Elementwise log p(y_i | f_i)."""
        ...

    @abstractmethod
    def _derivative_f(self, labels: NDArray, f: NDArray, order: int) -> NDArray:
        ...

    def _derivative_hyper(
        self, labels: NDArray, f: NDArray, name: str, order: int
    ) -> NDArray:
        """d/dtheta of the ``order``-th f-derivative of log p (order 0 = lp)."""
        raise NotImplementedError(
            f"{self.__class__.__name__} does not differentiate wrt {name!r}"
        )

    def log_probability_derivative(
        self, labels: NDArray, f: NDArray, order: int
    ) -> NDArray:
        """dlp (order=1), d2lp (order=2) or d3lp (order=3)."""
        if order not in _VALID_ORDERS:
            raise ValidationError(
                f"order: expected one of {_VALID_ORDERS}, got {order!r}"
            )
        return self._derivative_f(labels, f, order)

    def first_derivative(self, labels: NDArray, f: NDArray, name: str) -> NDArray:
        """d lp / d theta."""
        self._require(name)
        return self._derivative_hyper(labels, f, name, 0)

    def second_derivative(self, labels: NDArray, f: NDArray, name: str) -> NDArray:
        """d dlp / d theta."""
        self._require(name)
        return self._derivative_hyper(labels, f, name, 1)

    def third_derivative(self, labels: NDArray, f: NDArray, name: str) -> NDArray:
        """d d2lp / d theta."""
        self._require(name)
        return self._derivative_hyper(labels, f, name, 2)


# =====================================================================
# Concrete likelihoods
# =====================================================================

class GaussianLikelihood(Likelihood):
    """Gaussian noise: y = f + eps, eps ~ N(0, sigma^2).

    log p = -(y - f)^2 / (2 sigma^2) - log(2 pi sigma^2) / 2
    Hyperparameter: log_sigma.
    """

    def __init__(self, sigma: float = 1.0):
        super().__init__()
        if sigma <= 0:
            raise ValidationError(f"sigma: must be positive, got {sigma}")
        self._register('log_sigma', np.log(sigma))

    @property
    def name(self) -> str:
        return 'gaussian'

    @property
    def sigma(self) -> float:
        return float(np.exp(self._value('log_sigma')))

    def log_probability(self, labels: NDArray, f: NDArray) -> NDArray:
        s2 = self.sigma ** 2
        r = labels - f
        return -0.5 * r ** 2 / s2 - 0.5 * np.log(2.0 * np.pi * s2)

    def _derivative_f(self, labels: NDArray, f: NDArray, order: int) -> NDArray:
        s2 = self.sigma ** 2
        if order == 1:
            return (labels - f) / s2
        if order == 2:
            return np.full_like(f, -1.0 / s2, dtype=np.float64)
        return np.zeros_like(f, dtype=np.float64)

    def _derivative_hyper(
        self, labels: NDArray, f: NDArray, name: str, order: int
    ) -> NDArray:
        s2 = self.sigma ** 2
        r = labels - f
        if order == 0:
            return r ** 2 / s2 - 1.0
        if order == 1:
            return -2.0 * r / s2
        return np.full_like(f, 2.0 / s2, dtype=np.float64)


class StudentTLikelihood(Likelihood):
    """Student's t noise with scale sigma and nu degrees of freedom.

    With r = y - f and a = nu sigma^2:

    log p = lgamma((nu+1)/2) - lgamma(nu/2) - log(nu pi sigma^2) / 2
            - (nu+1)/2 log(1 + r^2 / a)

    Not log-concave: d2lp > 0 for |r| > sqrt(a), so W can go negative for
    outlying labels.
    Hyperparameters: log_sigma, log_df.
    """

    def __init__(self, sigma: float = 1.0, df: float = 3.0):
        super().__init__()
        if sigma <= 0:
            raise ValidationError(f"sigma: must be positive, got {sigma}")
        if df <= 0:
            raise ValidationError(f"df: must be positive, got {df}")
        self._register('log_sigma', np.log(sigma))
        self._register('log_df', np.log(df))

    @property
    def name(self) -> str:
        return 'student_t'

    @property
    def sigma(self) -> float:
        return float(np.exp(self._value('log_sigma')))

    def degrees_of_freedom(self) -> float:
        return float(np.exp(self._value('log_df')))

    def log_probability(self, labels: NDArray, f: NDArray) -> NDArray:
        nu = self.degrees_of_freedom()
        s2 = self.sigma ** 2
        r = labels - f
        const = (gammaln((nu + 1.0) / 2.0) - gammaln(nu / 2.0)
                 - 0.5 * np.log(nu * np.pi * s2))
        return const - 0.5 * (nu + 1.0) * np.log1p(r ** 2 / (nu * s2))

    def _derivative_f(self, labels: NDArray, f: NDArray, order: int) -> NDArray:
        nu = self.degrees_of_freedom()
        a = nu * self.sigma ** 2
        r = labels - f
        r2 = r ** 2
        if order == 1:
            return (nu + 1.0) * r / (a + r2)
        if order == 2:
            return (nu + 1.0) * (r2 - a) / (a + r2) ** 2
        return 2.0 * (nu + 1.0) * r * (r2 - 3.0 * a) / (a + r2) ** 3

    def _derivative_hyper(
        self, labels: NDArray, f: NDArray, name: str, order: int
    ) -> NDArray:
        nu = self.degrees_of_freedom()
        a = nu * self.sigma ** 2
        r = labels - f
        r2 = r ** 2
        denom = a + r2

        if name == 'log_sigma':
            # da/dlog_sigma = 2a
            if order == 0:
                return (nu + 1.0) * r2 / denom - 1.0
            if order == 1:
                return -2.0 * a * (nu + 1.0) * r / denom ** 2
            return 2.0 * a * (nu + 1.0) * (a - 3.0 * r2) / denom ** 3

        # log_df: dnu/dlog_df = nu, da/dlog_df = a
        if order == 0:
            return (0.5 * nu * (digamma((nu + 1.0) / 2.0) - digamma(nu / 2.0))
                    - 0.5
                    - 0.5 * nu * np.log1p(r2 / a)
                    + 0.5 * (nu + 1.0) * r2 / denom)
        if order == 1:
            return nu * r / denom - a * (nu + 1.0) * r / denom ** 2
        return (nu * (r2 - a) / denom ** 2
                + a * (nu + 1.0) * (a - 3.0 * r2) / denom ** 3)


class LogitLikelihood(Likelihood):
    """Logistic (Bernoulli) likelihood for labels in {-1, +1}.

    log p(y | f) = -log(1 + exp(-y f))
    No hyperparameters.
    """

    def __init__(self):
        super().__init__()

    @property
    def name(self) -> str:
        return 'logit'

    def log_probability(self, labels: NDArray, f: NDArray) -> NDArray:
        _check_binary(labels)
        return -np.logaddexp(0.0, -labels * f)

    def _derivative_f(self, labels: NDArray, f: NDArray, order: int) -> NDArray:
        _check_binary(labels)
        p = expit(f)
        if order == 1:
            return (labels + 1.0) / 2.0 - p
        if order == 2:
            return -p * (1.0 - p)
        return -p * (1.0 - p) * (1.0 - 2.0 * p)


def _check_binary(labels: NDArray) -> None:
    if not np.all(np.isin(labels, (-1.0, 1.0))):
        raise ValidationError("labels: logit likelihood requires labels in {-1, +1}")
