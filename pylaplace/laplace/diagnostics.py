"""
Finite-difference check of the analytic NLML gradient.

Each hyperparameter (each element, for vector hyperparameters) is moved
by +/- step and the NLML is recomputed from a fresh mode. Central
differences are only as accurate as the mode, so the inference object
should use a tight mode-finding tolerance when checking.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np

from pylaplace.core.compute.tolerances import (
    FINITE_DIFFERENCE,
    FINITE_DIFFERENCE_STEP,
    ToleranceTier,
    select_tolerance,
)
from pylaplace.laplace.inference import PARAMETER_GROUPS, SingleLaplaceInference


@dataclass(frozen=True)
class GradientCheck:
    """Analytic vs numeric derivative for one hyperparameter element.

    Attributes:
        key: 'group.name' or 'group.name[i]'.
        analytic: Value from the gradient engine.
        numeric: Central finite difference of the NLML.
        abs_error: |analytic - numeric|.
        passed: Whether the pair agrees within the tolerance tier.
    """
    key: str
    analytic: float
    numeric: float
    abs_error: float
    passed: bool


def _central_difference(
    inference: SingleLaplaceInference,
    group: str,
    name: str,
    index: int | None,
    step: float,
) -> float:
    original = inference.get_parameter(group, name)
    values = []
    try:
        for sign in (1.0, -1.0):
            if index is None:
                inference.set_parameter(group, name, original + sign * step)
            else:
                moved = np.array(original, dtype=np.float64)
                moved[index] += sign * step
                inference.set_parameter(group, name, moved)
            values.append(inference.get_negative_log_marginal_likelihood())
    finally:
        inference.set_parameter(group, name, original)
    return (values[0] - values[1]) / (2.0 * step)


def check_gradient(
    inference: SingleLaplaceInference,
    *,
    step: float = FINITE_DIFFERENCE_STEP,
    tolerance: ToleranceTier | str = FINITE_DIFFERENCE,
) -> dict[str, GradientCheck]:
    """
    Compare every analytic NLML derivative against central differences.

    The hyperparameters are restored afterwards; the inference object is
    left dirty and recomputes its mode on the next access.

    Args:
        inference: Inference object to check.
        step: Finite-difference step in hyperparameter units.
        tolerance: Tier (or tier name) whose rtol/atol decide ``passed``.

    Returns:
        Dict keyed like get_negative_log_marginal_likelihood_derivatives().
    """
    if isinstance(tolerance, str):
        tolerance = select_tolerance(tolerance)
    analytic = inference.get_negative_log_marginal_likelihood_derivatives()

    checks = {}
    for group in PARAMETER_GROUPS:
        for name in inference.parameter_names(group):
            value = np.asarray(inference.get_parameter(group, name))
            indices = [None] if value.ndim == 0 else list(range(value.size))
            for index in indices:
                key = f"{group}.{name}" if index is None else f"{group}.{name}[{index}]"
                numeric = _central_difference(inference, group, name, index, step)
                a = analytic[key]
                checks[key] = GradientCheck(
                    key=key,
                    analytic=a,
                    numeric=numeric,
                    abs_error=abs(a - numeric),
                    passed=bool(np.isclose(a, numeric, rtol=tolerance.rtol, atol=tolerance.atol)),
                )
    return checks
