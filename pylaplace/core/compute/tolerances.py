"""
Tolerance tiers for numerical validation.

Defines precision expectations for the different ways a quantity can be
checked:
- exact reference: closed-form or dense-inverse reference computations
- finite difference: analytic gradients against central differences

Used by the test suite and by pylaplace.laplace.diagnostics.check_gradient.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Closed-form or direct dense-algebra reference
EXACT_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='exact_fp64',
    description='Double precision, same quantity computed two ways',
)

# Analytic gradient vs central finite differences of the NLML
FINITE_DIFFERENCE = ToleranceTier(
    rtol=1e-4,
    atol=1e-6,
    name='finite_difference',
    description='Analytic gradient against central differences',
)

# Step used for central differences in log-parameter space
FINITE_DIFFERENCE_STEP = 1e-5


def select_tolerance(kind: str) -> ToleranceTier:
    """Select a tolerance tier by name."""
    tiers = {
        EXACT_FP64.name: EXACT_FP64,
        FINITE_DIFFERENCE.name: FINITE_DIFFERENCE,
    }
    try:
        return tiers[kind]
    except KeyError:
        valid = ', '.join(sorted(tiers))
        raise ValueError(f"Unknown tolerance tier: {kind!r}. Valid tiers: {valid}") from None
