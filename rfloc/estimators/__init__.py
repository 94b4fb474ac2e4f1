"""
Least squares estimation engines for radio source localization.

Available estimators:
    - Least Squares (LS, WLS, homogeneous LS)
    - Nonlinear Least Squares (Levenberg-Marquardt)
"""

from rfloc.estimators.least_squares import (
    homogeneous_least_squares,
    linear_least_squares,
    weighted_least_squares,
)
from rfloc.estimators.nonlinear_least_squares import (
    NonlinearLSResult,
    levenberg_marquardt,
)

__all__ = [
    # Linear LS
    "linear_least_squares",
    "weighted_least_squares",
    "homogeneous_least_squares",
    # Nonlinear LS
    "levenberg_marquardt",
    "NonlinearLSResult",
]
