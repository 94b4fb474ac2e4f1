"""
Nonlinear refinement of a radio source estimate.

Runs Levenberg-Marquardt over a residual model (see ``residuals``) from a
seed parameter vector and decomposes the resulting covariance into its
position block and the scalar variances of the remaining parameters.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from rfloc.errors import EstimationError
from rfloc.estimators.nonlinear_least_squares import levenberg_marquardt

DEFAULT_MAX_ITERATIONS = 200
DEFAULT_TOLERANCE = 1e-12


@dataclass
class RefinementResult:
    """
    Result of a nonlinear refinement.

    Attributes:
        x: Refined parameter vector.
        covariance: Full parameter covariance (J'WJ)⁻¹, or None when the
            normal matrix is not invertible at the solution.
        chi_sq: Weighted sum of squared residuals at the solution.
        dof: Degrees of freedom (observations minus parameters).
        iterations: Number of solver iterations.
    """

    x: np.ndarray
    covariance: Optional[np.ndarray]
    chi_sq: float
    dof: int
    iterations: int

    def position_covariance(self, dim: int) -> Optional[np.ndarray]:
        if self.covariance is None:
            return None
        return self.covariance[:dim, :dim].copy()

    def variance(self, index: int) -> Optional[float]:
        if self.covariance is None:
            return None
        return float(self.covariance[index, index])


def refine(
    model,
    x0: np.ndarray,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
    tol: float = DEFAULT_TOLERANCE,
) -> RefinementResult:
    """
    Refine a seed estimate by weighted nonlinear least squares.

    Args:
        model: Residual model exposing ``y``, ``h``, ``jacobian``, ``weights``.
        x0: Seed parameter vector.
        max_iter: Maximum number of Levenberg-Marquardt iterations.
        tol: Relative convergence tolerance.

    Returns:
        RefinementResult.

    Raises:
        EstimationError: If the solver does not converge.
        AlgebraError: If the normal equations are singular or the model
            becomes non-finite during iteration.
    """
    y = model.y
    result = levenberg_marquardt(
        model.h,
        model.jacobian,
        y,
        x0,
        weights=model.weights,
        max_iter=max_iter,
        tol=tol,
    )

    if not result.converged:
        raise EstimationError(
            f"Nonlinear refinement did not converge after {result.iterations} iterations"
        )

    return RefinementResult(
        x=result.x,
        covariance=result.covariance,
        chi_sq=result.chi_sq,
        dof=len(y) - len(x0),
        iterations=result.iterations,
    )
