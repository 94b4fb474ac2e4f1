"""
Closed-form linear lateration of a radio source.

Squared range equations ||x - p_i||² = d_i² are quadratic in the unknown
source position x. Subtracting the equation of a reference reading (index 0)
cancels the ||x||² term and leaves one linear equation per remaining reading:

    2 (p_i - p_0)ᵀ x = (||p_i||² - ||p_0||²) - (d_i² - d_0²)

Stacked into A x = b this is solved either

- inhomogeneously: x̂ = argmin ||A x - b||², or
- homogeneously: [A | -b] [x; w] = 0 with ||[x; w]|| = 1 solved through the
  SVD null vector, then x̂ = x / w (projective normalization).

Both formulations give the same position for well-conditioned, noiseless
readings. No covariance is propagated by this stage.
"""

from typing import Dict, Tuple

import numpy as np

from rfloc.errors import AlgebraError, InsufficientReadingsError
from rfloc.estimators.least_squares import (
    homogeneous_least_squares,
    linear_least_squares,
)
from rfloc.utils.geometry import check_receiver_geometry

# Smallest admissible projective scale of the homogeneous solution
EPSILON_PROJECTIVE = 1e-12


def build_lateration_system(
    positions: np.ndarray, distances: np.ndarray, ref_idx: int = 0
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the linear lateration system A x = b.

    Args:
        positions: Receiver positions, shape (N, d).
        distances: Measured distances, shape (N,).
        ref_idx: Index of the reference reading subtracted from the others.

    Returns:
        Tuple (A, b) with A of shape (N-1, d) and b of shape (N-1,).
    """
    ref_position = positions[ref_idx]
    ref_distance = distances[ref_idx]
    others = [i for i in range(len(positions)) if i != ref_idx]

    A = 2.0 * (positions[others] - ref_position)
    b = (
        np.sum(positions[others] ** 2, axis=1)
        - np.sum(ref_position**2)
        - (distances[others] ** 2 - ref_distance**2)
    )
    return A, b


def solve_linear_lateration(
    positions: np.ndarray,
    distances: np.ndarray,
    homogeneous: bool = False,
    ref_idx: int = 0,
) -> Tuple[np.ndarray, Dict]:
    """
    Estimate a source position from ranges at known receiver positions.

    Args:
        positions: Receiver positions, shape (N, d) with d = 2 or 3.
        distances: Measured distances to the source, shape (N,).
        homogeneous: If True, solve the homogeneous (projective) system;
            otherwise solve the inhomogeneous system directly.
        ref_idx: Index of the reference reading (default: first).

    Returns:
        position: Estimated position, shape (d,).
        info: Dictionary with solver information:
            - 'method': 'homogeneous' or 'inhomogeneous'
            - 'residual': residual norm of the linear system

    Raises:
        InsufficientReadingsError: If fewer than d + 1 readings are given.
        AlgebraError: If the receiver geometry is degenerate or the linear
            system has no unique solution.

    Example:
        >>> positions = np.array([[10, 0, 0], [0, 10, 0], [0, 0, 10], [0, 0, 0]])
        >>> true_pos = np.array([1.0, 2.0, 3.0])
        >>> distances = np.linalg.norm(positions - true_pos, axis=1)
        >>> pos, info = solve_linear_lateration(positions, distances)
    """
    positions = np.asarray(positions, dtype=float)
    distances = np.asarray(distances, dtype=float)

    if positions.ndim != 2 or positions.shape[1] not in (2, 3):
        raise ValueError(
            f"positions must have shape (N, 2) or (N, 3), got {positions.shape}"
        )
    n_readings, dim = positions.shape
    if distances.shape != (n_readings,):
        raise ValueError(
            f"Expected {n_readings} distances, got shape {distances.shape}"
        )
    if n_readings < dim + 1:
        raise InsufficientReadingsError(
            f"Lateration in {dim}D requires at least {dim + 1} readings, "
            f"got {n_readings}"
        )
    if not 0 <= ref_idx < n_readings:
        raise ValueError(f"ref_idx must be in [0, {n_readings - 1}], got {ref_idx}")

    is_valid, msg = check_receiver_geometry(positions)
    if not is_valid:
        raise AlgebraError(msg)

    A, b = build_lateration_system(positions, distances, ref_idx)

    if homogeneous:
        v = homogeneous_least_squares(np.hstack([A, -b[:, np.newaxis]]))
        scale = v[-1]
        if abs(scale) < EPSILON_PROJECTIVE * np.linalg.norm(v):
            raise AlgebraError(
                "Homogeneous lateration solution lies at infinity "
                "(projective scale is zero)"
            )
        position = v[:-1] / scale
    else:
        position = linear_least_squares(A, b)

    info = {
        "method": "homogeneous" if homogeneous else "inhomogeneous",
        "residual": float(np.linalg.norm(A @ position - b)),
    }
    return position, info
