"""
Negative log marginal likelihood under the Laplace approximation.

    NLML = alpha'(f - m) / 2 - sum(log p(y | f)) + log|I + K s^2 W| / 2
"""

from __future__ import annotations

import warnings
import numpy as np

from pylaplace.core._stacklevel import find_stack_level
from pylaplace.core.exceptions import NumericalError
from pylaplace.laplace._posterior import PosteriorFactor
from pylaplace.laplace._state import ModeState


def negative_log_marginal_likelihood(state: ModeState, factor: PosteriorFactor) -> float:
    """
    Evaluate the NLML at the current mode.

    Args:
        state: Mode state at the converged alpha.
        factor: Posterior factorization for that mode.

    Returns:
        NLML as a float.

    Raises:
        NumericalError: If the result is not finite.
    """
    if factor.sign < 0:
        warnings.warn(
            "det(I + K W) is negative at the mode; the marginal likelihood "
            "uses log|det|, and the Laplace approximation is not a proper "
            "Gaussian here",
            RuntimeWarning,
            stacklevel=find_stack_level(),
        )

    data_fit = float(state.alpha @ (state.mu - state.mean_f)) / 2.0
    nlml = data_fit - state.log_likelihood() + factor.log_det / 2.0

    if not np.isfinite(nlml):
        raise NumericalError(
            f"Negative log marginal likelihood is not finite ({nlml}); "
            f"data fit={data_fit}, log det={factor.log_det}"
        )
    return nlml
