"""
Exceptions raised by radio source estimation.

Argument errors are raised at the call site. Numerical failures inside
the linear or nonlinear solvers surface from ``estimate()`` as
``EstimationError``.
"""


class IndoorError(Exception):
    """Base class for all errors raised by this package."""


class NotReadyError(IndoorError):
    """Estimation requested without enough valid readings."""

    def __init__(self, message: str = "Estimator is not ready"):
        super().__init__(message)


class LockedError(IndoorError):
    """Estimator modified or re-entered while an estimation is in progress."""

    def __init__(self, message: str = "Estimator is locked"):
        super().__init__(message)


class InvalidArgumentError(IndoorError, ValueError):
    """Malformed configuration value or reading."""


class InsufficientReadingsError(InvalidArgumentError):
    """Fewer readings than the minimum required by a solver."""


class AlgebraError(IndoorError):
    """Singular, rank-deficient or non-finite linear system."""


class EstimationError(IndoorError):
    """Radio source estimation failed (non-convergence or numerical failure)."""
