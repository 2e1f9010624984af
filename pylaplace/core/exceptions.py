"""
Exception hierarchy for pylaplace.

All exceptions inherit from PyLaplaceError so callers can catch any
library-specific error in one place. Domain code raises the most specific
class available.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyLaplaceError(Exception):
    """Base exception for all pylaplace errors."""
    pass


class ValidationError(PyLaplaceError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class UnknownParameterError(ValidationError):
    """
    A hyperparameter was addressed by a name nobody owns.

    Raised before any computation starts, so no partial derivative is
    ever returned for an unrecognized parameter.

    Attributes:
        group: Parameter group that was searched ('kernel', 'mean', ...)
        name: The unrecognized parameter name
        available: Names that would have been accepted
    """

    def __init__(
        self,
        message: str,
        group: str | None = None,
        name: str | None = None,
        available: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.group = group
        self.name = name
        self.available = tuple(available)


class UnsupportedMinimizerError(PyLaplaceError):
    """
    A minimizer of an unsupported type was registered for mode finding.

    Attributes:
        minimizer_type: Name of the rejected type
    """

    def __init__(self, message: str, minimizer_type: str | None = None):
        super().__init__(message)
        self.minimizer_type = minimizer_type


class FeatureUnavailableError(PyLaplaceError):
    """
    A required optional component is not available.

    Raised at the point of use (e.g. Newton mode finding without a line
    search), never at construction time.

    Attributes:
        feature: Name of the missing component
    """

    def __init__(self, message: str, feature: str | None = None):
        super().__init__(message)
        self.feature = feature


class ReentrancyError(PyLaplaceError):
    """
    Mode finding was started on an object that is already finding its mode.
    """
    pass


class NumericalError(PyLaplaceError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when a matrix operation requires invertibility but the matrix
    is singular or numerically rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class NotPositiveDefiniteError(NumericalError):
    """
    Matrix is not positive definite.

    Raised when a Cholesky factorization is requested on a matrix that
    fails this requirement.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        min_eigenvalue: Minimum eigenvalue, if computed
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        min_eigenvalue: float | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.min_eigenvalue = min_eigenvalue


class ConvergenceError(PyLaplaceError):
    """
    Iterative algorithm failed to converge.

    Mode finding itself treats non-convergence as a warning; this error is
    reserved for callers that want to escalate it (see
    LaplaceSolution.raise_if_not_converged).

    Attributes:
        iterations: Number of iterations completed
        final_change: Final objective change
        reason: Why convergence failed (e.g., 'max_iterations')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold
