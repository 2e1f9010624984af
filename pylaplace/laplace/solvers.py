"""
Solver entry point for Laplace inference.

Public API:
    laplace() - find the posterior mode, factorize the posterior and
                evaluate the NLML and its gradient in one call
"""

from __future__ import annotations

from numpy.typing import ArrayLike

from pylaplace.core.compute.optimization import BrentLineSearch, FirstOrderMinimizer
from pylaplace.core.compute.timing import Timer
from pylaplace.core.protocols import (
    KernelProvider,
    LikelihoodModel,
    MeanFunctionProvider,
)
from pylaplace.core.result import Result
from pylaplace.laplace._common import LaplaceParams
from pylaplace.laplace._minimizer import ModeMinimizer
from pylaplace.laplace._newton import NewtonOptimizer
from pylaplace.laplace.inference import SingleLaplaceInference
from pylaplace.laplace.solution import LaplaceSolution


def laplace(
    kernel: KernelProvider,
    features: ArrayLike,
    mean: MeanFunctionProvider,
    labels: ArrayLike,
    likelihood: LikelihoodModel,
    *,
    log_scale: float = 0.0,
    minimizer: ModeMinimizer | FirstOrderMinimizer | None = None,
    tol: float = 1e-6,
    max_iter: int = 20,
    line_search_tol: float = 1e-6,
    max_evaluations: int = 10,
    step_max: float = 10.0,
    compute_gradient: bool = True,
) -> LaplaceSolution:
    """Laplace approximation to a GP posterior with a non-Gaussian likelihood.

    Finds the mode of p(f | y) by Newton iteration (or the given
    minimizer), builds the Gaussian approximation around it and evaluates
    the negative log marginal likelihood together with its gradient wrt
    every kernel, mean, likelihood and amplitude hyperparameter.

    Args:
        kernel: Covariance function (KernelProvider).
        features: Training inputs (n,) or (n, d).
        mean: Prior mean function (MeanFunctionProvider).
        labels: Observed labels (n,).
        likelihood: Observation model (LikelihoodModel).
        log_scale: Log amplitude; K is multiplied by exp(2 log_scale).
        minimizer: Optional mode finder. If None, a NewtonOptimizer built
            from the tol / max_iter / line search arguments is used.
        tol: Newton stops when Psi decreases by no more than this.
        max_iter: Maximum Newton iterations.
        line_search_tol: Absolute x-tolerance of the Brent line search.
        max_evaluations: Psi evaluations per line search.
        step_max: Upper end of the step-length interval.
        compute_gradient: If False, skip the NLML gradient.

    Returns:
        LaplaceSolution.

    Raises:
        ValidationError: On invalid inputs.
        NumericalError: If the posterior cannot be factorized.
    """
    timer = Timer()
    timer.start()

    with timer.section('setup'):
        if minimizer is None:
            minimizer = NewtonOptimizer(
                line_search=BrentLineSearch(
                    tolerance=line_search_tol, max_evaluations=max_evaluations
                ),
                tolerance=tol,
                max_iterations=max_iter,
                step_max=step_max,
            )
        inference = SingleLaplaceInference(
            kernel, features, mean, labels, likelihood,
            log_scale=log_scale, minimizer=minimizer,
        )

    with timer.section('mode'):
        inference.update()

    search = inference.get_mode_search()
    factor = inference.get_posterior_factor()

    with timer.section('posterior'):
        covariance = inference.get_posterior_covariance()

    gradient = {}
    if compute_gradient:
        with timer.section('gradient'):
            gradient = inference.get_negative_log_marginal_likelihood_derivatives()

    timer.stop()

    params = LaplaceParams(
        alpha=inference.get_alpha(),
        mode=inference.get_mode(),
        posterior_mean=inference.get_posterior_mean(),
        psi=inference.get_psi(),
        branch=factor.branch,
        W=factor.W.copy(),
        sW=factor.sW.copy(),
        L=factor.L.copy(),
        posterior_covariance=covariance,
        nlml=inference.get_negative_log_marginal_likelihood(),
        gradient=gradient,
        converged=search.converged,
        n_iter=search.n_iter,
        n_obs=inference.labels.shape[0],
        log_scale=inference.log_scale,
    )

    warn_list = []
    if not search.converged:
        warn_list.append(
            f"Mode finding ({search.minimizer}) did not converge after "
            f"{search.n_iter} iterations"
        )
    if factor.sign < 0:
        warn_list.append("det(I + K W) is negative at the mode")

    result = Result(
        params=params,
        info={
            'minimizer': search.minimizer,
            'likelihood': type(inference.likelihood).__name__,
            'converged': search.converged,
            'n_iter': search.n_iter,
            'final_change': search.final_change,
            'tol': tol,
            'branch': factor.branch,
        },
        timing=timer.result(),
        backend_name=f"cpu_laplace_{factor.branch}",
        warnings=tuple(warn_list),
    )

    return LaplaceSolution(_result=result)
