"""
Radio source estimation.

Estimators of the position (and, from RSSI, transmitted power and path-loss
exponent) of a WiFi access point or Bluetooth beacon from readings taken at
known receiver positions.

Submodules:
    lateration: Closed-form linear lateration
    residuals: Residual models of the nonlinear stage
    refiner: Levenberg-Marquardt refinement and covariance decomposition
    base: Shared estimator configuration and lifecycle
    ranging: Range-only estimator
    ranging_rssi: Range and RSSI estimator
"""

from rfloc.radiosource.base import (
    DEFAULT_DISTANCE_STANDARD_DEVIATION,
    DEFAULT_NONLINEAR_SOLVER_ENABLED,
    DEFAULT_USE_HOMOGENEOUS_LINEAR_SOLVER,
    DEFAULT_USE_READING_POSITION_COVARIANCES,
    EstimationResult,
    RadioSourceEstimator,
    RadioSourceEstimatorListener,
)
from rfloc.radiosource.lateration import build_lateration_system, solve_linear_lateration
from rfloc.radiosource.ranging import RangingRadioSourceEstimator
from rfloc.radiosource.ranging_rssi import (
    DEFAULT_PATH_LOSS_ESTIMATION_ENABLED,
    DEFAULT_POWER_STANDARD_DEVIATION,
    DEFAULT_TRANSMITTED_POWER_ESTIMATION_ENABLED,
    RangingAndRssiRadioSourceEstimator,
    fit_transmitted_power_and_path_loss,
)
from rfloc.radiosource.refiner import RefinementResult, refine
from rfloc.radiosource.residuals import RangingAndRssiResidualModel, RangingResidualModel

__all__ = [
    # Defaults
    "DEFAULT_USE_HOMOGENEOUS_LINEAR_SOLVER",
    "DEFAULT_USE_READING_POSITION_COVARIANCES",
    "DEFAULT_NONLINEAR_SOLVER_ENABLED",
    "DEFAULT_DISTANCE_STANDARD_DEVIATION",
    "DEFAULT_POWER_STANDARD_DEVIATION",
    "DEFAULT_TRANSMITTED_POWER_ESTIMATION_ENABLED",
    "DEFAULT_PATH_LOSS_ESTIMATION_ENABLED",
    # Linear stage
    "build_lateration_system",
    "solve_linear_lateration",
    # Nonlinear stage
    "RangingResidualModel",
    "RangingAndRssiResidualModel",
    "RefinementResult",
    "refine",
    "fit_transmitted_power_and_path_loss",
    # Estimators
    "EstimationResult",
    "RadioSourceEstimator",
    "RadioSourceEstimatorListener",
    "RangingRadioSourceEstimator",
    "RangingAndRssiRadioSourceEstimator",
]
