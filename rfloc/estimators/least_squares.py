"""
Least Squares primitives for closed-form multilateration.

This module implements the linear-algebra solves used by the linear
lateration stage:

Functions:
    - linear_least_squares: Inhomogeneous LS, x̂ = argmin ||Ax - b||²
    - weighted_least_squares: Weighted LS with per-row weights
    - homogeneous_least_squares: Homogeneous LS, x̂ = argmin ||Ax|| s.t. ||x|| = 1

All failures caused by the system matrix (rank deficiency, singularity)
raise ``AlgebraError``.
"""

import numpy as np

from rfloc.errors import AlgebraError


def linear_least_squares(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Standard linear least squares estimation.

    Solves: x_hat = argmin ||Ax - b||²
    Solution: x_hat = (A'A)^(-1) A'b

    Args:
        A: Design matrix (m × n), where m ≥ n.
        b: Observation vector (m,).

    Returns:
        Estimated vector x_hat (n,).

    Raises:
        ValueError: If A and b dimensions don't match.
        AlgebraError: If the system is underdetermined or A is rank deficient.

    Example:
        >>> import numpy as np
        >>> A = np.array([[1, 0], [0, 1], [1, 1], [1, -1]], dtype=float)
        >>> b = np.array([1.0, 2.0, 3.0, -1.0])
        >>> x_hat = linear_least_squares(A, b)
    """
    # Validate inputs
    if A.ndim != 2 or b.ndim != 1:
        raise ValueError(f"A must be 2D and b must be 1D. Got A: {A.shape}, b: {b.shape}")

    m, n = A.shape
    if len(b) != m:
        raise ValueError(f"Dimension mismatch: A has {m} rows, b has {len(b)} elements")

    if m < n:
        raise AlgebraError(f"Underdetermined system: m={m} < n={n}. Need m ≥ n.")

    # Check rank
    rank = np.linalg.matrix_rank(A)
    if rank < n:
        raise AlgebraError(
            f"A is rank deficient: rank={rank} < n={n}. " f"System has no unique solution."
        )

    # Solve via SVD-based LS (better conditioned than normal equations)
    try:
        x_hat = np.linalg.lstsq(A, b, rcond=None)[0]
    except np.linalg.LinAlgError as e:
        raise AlgebraError(f"Failed to solve linear system: {e}") from e

    return x_hat


def weighted_least_squares(
    A: np.ndarray,
    b: np.ndarray,
    weights: np.ndarray,
) -> np.ndarray:
    """
    Weighted least squares with diagonal weights.

    Solves: x_hat = argmin (Ax - b)' W (Ax - b),  W = diag(weights)
    Solution: x_hat = (A'WA)^(-1) A'Wb

    Setting wᵢ = 1/σᵢ² yields the best linear unbiased estimate.

    Args:
        A: Design matrix (m × n).
        b: Observation vector (m,).
        weights: Non-negative row weights (m,).

    Returns:
        Estimated vector x_hat (n,).

    Raises:
        ValueError: If dimensions don't match or weights are negative.
        AlgebraError: If A'WA is rank deficient.
    """
    if A.ndim != 2 or b.ndim != 1:
        raise ValueError(
            f"Invalid dimensions: A must be 2D, b must be 1D. "
            f"Got A={A.shape}, b={b.shape}"
        )

    m, n = A.shape
    weights = np.asarray(weights, dtype=float)
    if len(b) != m or weights.shape != (m,):
        raise ValueError(
            f"Dimension mismatch: A has {m} rows, b has {len(b)} elements, "
            f"weights have shape {weights.shape}"
        )
    if np.any(weights < 0):
        raise ValueError("Weights must be non-negative")

    # Weighted normal equations: A'WA x = A'Wb
    AtW = A.T * weights
    ATWA = AtW @ A
    ATWb = AtW @ b

    rank = np.linalg.matrix_rank(ATWA)
    if rank < n:
        raise AlgebraError(f"A'WA is rank deficient: rank={rank} < n={n}")

    try:
        x_hat = np.linalg.solve(ATWA, ATWb)
    except np.linalg.LinAlgError as e:
        raise AlgebraError(f"Failed to solve weighted normal equations: {e}") from e

    return x_hat


def homogeneous_least_squares(A: np.ndarray) -> np.ndarray:
    """
    Homogeneous least squares estimation.

    Solves: x_hat = argmin ||Ax||  subject to ||x|| = 1

    The solution is the right singular vector associated with the smallest
    singular value of A. The null space must be one-dimensional for the
    solution to be unique.

    Args:
        A: Design matrix (m × n), where m ≥ n - 1.

    Returns:
        Unit-norm vector x_hat (n,), defined up to sign.

    Raises:
        AlgebraError: If the system does not define a unique solution.

    Example:
        >>> # Points on the line x = 2y in projective form [x, y, w]
        >>> A = np.array([[1.0, -2.0, 0.0], [0.0, 0.0, 1.0]])
        >>> v = homogeneous_least_squares(A)
    """
    if A.ndim != 2:
        raise ValueError(f"A must be 2D, got shape {A.shape}")

    m, n = A.shape
    if m < n - 1:
        raise AlgebraError(
            f"Underdetermined homogeneous system: m={m} < n-1={n - 1}"
        )

    try:
        _, singular_values, Vt = np.linalg.svd(A)
    except np.linalg.LinAlgError as e:
        raise AlgebraError(f"SVD did not converge: {e}") from e

    # Null space must be (at most) one-dimensional
    rank = np.sum(singular_values > singular_values[0] * max(A.shape) * np.finfo(float).eps)
    if rank < n - 1:
        raise AlgebraError(
            f"Homogeneous system is rank deficient: rank={rank} < n-1={n - 1}"
        )

    return Vt[-1]
