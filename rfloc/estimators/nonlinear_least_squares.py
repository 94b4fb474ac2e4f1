"""
Nonlinear Least Squares solver using Levenberg-Marquardt.

Mathematical Formulation:
    Given observations y, measurement model h(x) and weights W, we seek:
        x̂ = argmin ½‖r(x)‖²_W
    where r(x) = y - h(x) is the residual vector.

    Levenberg-Marquardt update:
        (J'WJ + μI) Δx = J'W r  →  x ← x + Δx
    where μ is an adaptive damping parameter.

    At convergence the parameter covariance is approximated by
        P = (J'WJ)⁻¹
    which is exact for linear models when W = Σ⁻¹.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from rfloc.errors import AlgebraError

# Damping above which a step cannot reduce the cost any further
MAX_DAMPING = 1e10

# Cost below which the fit is considered exact
EXACT_FIT_COST = 1e-24


@dataclass
class NonlinearLSResult:
    """Result container for nonlinear least squares optimization.

    Attributes:
        x: Estimated state vector.
        covariance: Covariance matrix (n × n), or None if J'WJ is singular
            at the solution.
        iterations: Number of iterations performed.
        residuals: Final residuals r = y - h(x̂).
        cost: Final cost value ½‖r‖²_W.
        converged: Whether the solver converged within tolerance.
        chi_sq: Final weighted sum of squared residuals r'Wr.
    """

    x: np.ndarray
    covariance: Optional[np.ndarray]
    iterations: int
    residuals: np.ndarray
    cost: float
    converged: bool
    chi_sq: float = 0.0


def levenberg_marquardt(
    h: Callable[[np.ndarray], np.ndarray],
    jacobian: Callable[[np.ndarray], np.ndarray],
    y: np.ndarray,
    x0: np.ndarray,
    weights: Optional[np.ndarray] = None,
    max_iter: int = 200,
    tol: float = 1e-10,
    mu0: float = 1e-3,
) -> NonlinearLSResult:
    """
    Levenberg-Marquardt solver for nonlinear least squares.

    Solves: x̂ = argmin ½‖y - h(x)‖²_W using (J'WJ + μI) Δx = J'W r.

    LM combines Gauss-Newton (fast near solution) with gradient descent
    (robust far from solution) by adaptively adjusting μ with the gain
    ratio between actual and predicted cost decrease:
        - Small μ: Gauss-Newton behavior (quadratic convergence)
        - Large μ: Gradient descent behavior (global convergence)

    Convergence is declared when the relative cost improvement or the
    relative step size falls below ``tol``, or when the cost becomes
    negligible.

    Args:
        h: Measurement model function h: R^n → R^m.
        jacobian: Function returning Jacobian matrix J = ∂h/∂x (m × n).
        y: Observation vector (m,).
        x0: Initial state estimate (n,).
        weights: Optional measurement weights (m,), typically 1/σᵢ².
        max_iter: Maximum number of iterations.
        tol: Relative convergence tolerance on step and cost.
        mu0: Initial damping parameter (default 1e-3).

    Returns:
        NonlinearLSResult containing estimate, covariance, and diagnostics.

    Raises:
        AlgebraError: If the damped system is singular or the model is
            non-finite.
    """
    return _solve_nonlinear_ls(
        h=h,
        jacobian=jacobian,
        y=y,
        x0=x0,
        weights=weights,
        max_iter=max_iter,
        tol=tol,
        mu0=mu0,
    )


def _evaluate(h, jacobian, x, m, n):
    hx = np.asarray(h(x), dtype=float)
    if len(hx) != m:
        raise ValueError(f"h(x) returned {len(hx)} elements, expected {m}")

    J = np.asarray(jacobian(x), dtype=float)
    if J.shape != (m, n):
        raise ValueError(f"Jacobian shape {J.shape}, expected ({m}, {n})")

    if not (np.all(np.isfinite(hx)) and np.all(np.isfinite(J))):
        raise AlgebraError("Measurement model or Jacobian is not finite")

    return hx, J


def _solve_nonlinear_ls(
    h: Callable[[np.ndarray], np.ndarray],
    jacobian: Callable[[np.ndarray], np.ndarray],
    y: np.ndarray,
    x0: np.ndarray,
    weights: Optional[np.ndarray],
    max_iter: int,
    tol: float,
    mu0: float,
) -> NonlinearLSResult:
    """Damped Gauss-Newton iterations with gain-ratio control of μ."""
    # Input validation
    y = np.asarray(y, dtype=float)
    x0 = np.asarray(x0, dtype=float)

    if y.ndim != 1:
        raise ValueError(f"y must be 1D array, got shape {y.shape}")
    if x0.ndim != 1:
        raise ValueError(f"x0 must be 1D array, got shape {x0.shape}")

    m = len(y)
    n = len(x0)
    x = x0.copy()

    if weights is None:
        w = np.ones(m)
    else:
        w = np.asarray(weights, dtype=float)
        if w.ndim != 1 or len(w) != m:
            raise ValueError(f"weights must be 1D array of length {m}")
        if np.any(w < 0):
            raise ValueError("weights must be non-negative")

    mu = mu0
    nu = 2.0

    converged = False
    iteration = 0

    for iteration in range(max_iter):
        hx, J = _evaluate(h, jacobian, x, m, n)

        # Residual: r = y - h(x)
        r = y - hx

        # Weighted normal equations: (J'WJ) Δx = J'Wr
        JtW = J.T * w
        JtWJ = JtW @ J
        JtWr = JtW @ r

        # Cost function: f = ½ r'Wr
        cost = 0.5 * r @ (w * r)
        if cost < EXACT_FIT_COST:
            converged = True
            break

        # Levenberg-Marquardt: solve (J'WJ + μI) Δx = J'Wr
        while True:
            try:
                delta_x = np.linalg.solve(JtWJ + mu * np.eye(n), JtWr)
            except np.linalg.LinAlgError as e:
                raise AlgebraError(f"Singular damped normal equations: {e}") from e

            x_new = x + delta_x
            r_new = y - np.asarray(h(x_new), dtype=float)
            cost_new = 0.5 * r_new @ (w * r_new)

            # Predicted decrease: ½ Δx'(μΔx + J'Wr)
            predicted_decrease = 0.5 * delta_x @ (mu * delta_x + JtWr)
            actual_decrease = cost - cost_new

            if predicted_decrease > 0 and np.isfinite(cost_new):
                gain_ratio = actual_decrease / predicted_decrease
            else:
                gain_ratio = 0.0

            if gain_ratio > 0:
                # Accept step, decrease damping (more GN-like)
                x = x_new
                mu = mu * max(1.0 / 3.0, 1.0 - (2.0 * gain_ratio - 1.0) ** 3)
                nu = 2.0
                break

            # Reject step, increase damping (more GD-like)
            mu = mu * nu
            nu = 2.0 * nu
            if mu > MAX_DAMPING:
                break

        if mu > MAX_DAMPING:
            # No descent direction left: x is a local minimum
            converged = True
            break

        # Check convergence on relative step size and cost improvement
        step_norm = np.linalg.norm(delta_x)
        if step_norm <= tol * (np.linalg.norm(x) + tol):
            converged = True
            break
        if cost_new < EXACT_FIT_COST or abs(cost - cost_new) <= tol * cost:
            converged = True
            break

    # Final evaluation
    hx, J = _evaluate(h, jacobian, x, m, n)
    r = y - hx
    chi_sq = float(r @ (w * r))

    # Covariance estimation: P = (J'WJ)⁻¹, None when not invertible
    P = None
    JtWJ = (J.T * w) @ J
    if np.linalg.matrix_rank(JtWJ) == n:
        try:
            P = np.linalg.inv(JtWJ)
        except np.linalg.LinAlgError:
            P = None

    return NonlinearLSResult(
        x=x,
        covariance=P,
        iterations=iteration + 1,
        residuals=r,
        cost=0.5 * chi_sq,
        converged=converged,
        chi_sq=chi_sq,
    )
