"""
Geometric utilities for radio source localization.

Provides functions for:
- Distance Jacobian of a candidate source position
- Receiver geometry checking
"""

import warnings
from typing import Tuple

import numpy as np


# Distance below which a candidate source coincides with a receiver (10 pm)
EPSILON_RANGE = 1e-10
# Relative singular value below which receivers span a lower dimension
EPSILON_COLINEAR = 1e-6


def range_jacobian(
    source_position: np.ndarray,
    receiver_positions: np.ndarray,
    epsilon: float = EPSILON_RANGE,
) -> np.ndarray:
    """
    Jacobian of receiver-to-source distances with respect to the source position.

    Row i is the unit vector pointing from receiver i to the source, the
    derivative of d_i = ||x - p_i|| with respect to x. The derivative is
    undefined where the source coincides with a receiver; those rows are
    left at zero and a RuntimeWarning is issued.

    Args:
        source_position: Candidate source position, shape (d,).
        receiver_positions: Receiver positions, shape (N, d).
        epsilon: Distance below which a receiver coincides with the source.

    Returns:
        Jacobian of shape (N, d).

    Example:
        >>> receivers = np.array([[4.0, 0.0], [1.0, 1.0]])
        >>> range_jacobian(np.array([1.0, 4.0]), receivers)[0]
        array([-0.6,  0.8])
    """
    diff = np.asarray(source_position, dtype=float) - np.asarray(receiver_positions, dtype=float)
    distances = np.linalg.norm(diff, axis=1)
    coincident = distances < epsilon

    J = np.zeros_like(diff)
    np.divide(diff, distances[:, np.newaxis], out=J, where=~coincident[:, np.newaxis])

    if np.any(coincident):
        warnings.warn(
            f"Source estimate coincides with {np.count_nonzero(coincident)} receiver(s); "
            "their distance derivatives are set to zero.",
            RuntimeWarning,
        )
    return J


def check_receiver_geometry(positions: np.ndarray) -> Tuple[bool, str]:
    """
    Check if receiver positions allow a unique lateration solution.

    The receivers must be at least d + 1 and span the whole space: not
    colinear in 2D, not coplanar in 3D.

    Args:
        positions: Receiver positions, shape (N, d) where d=2 or 3

    Returns:
        Tuple of (is_valid, message), message being empty when valid.

    Example:
        >>> check_receiver_geometry(np.array([[0, 0], [10, 0], [5, 10]]))
        (True, '')
        >>> is_valid, msg = check_receiver_geometry(np.array([[0, 0], [5, 0], [10, 0]]))
        >>> 'colinear' in msg
        True
    """
    positions = np.asarray(positions, dtype=float)

    if positions.ndim != 2:
        return False, f"Positions must be 2D array (N, d), got shape {positions.shape}"

    n_receivers, dim = positions.shape
    if dim not in (2, 3):
        return False, f"Only 2D or 3D lateration supported, got dim={dim}"

    if n_receivers < dim + 1:
        return False, (
            f"Insufficient readings: need at least {dim + 1} for {dim}D lateration, "
            f"got {n_receivers}"
        )

    # Receivers span the space iff their centered coordinates have full rank
    singular_values = np.linalg.svd(positions - positions.mean(axis=0), compute_uv=False)
    rank = int(np.sum(singular_values > EPSILON_COLINEAR * singular_values[0]))

    if rank < dim:
        layout = "colinear" if dim == 2 else "coplanar"
        return False, f"Receiver positions are {layout} (rank {rank} < {dim})"

    return True, ""
