"""
Base class of radio source estimators.

An estimator owns its configuration and readings, checks readiness and
drives the estimation pipeline:

    linear lateration  →  (optional) nonlinear refinement  →  result

Estimation is synchronous. While ``estimate()`` runs the estimator is
locked: every setter and any nested ``estimate()`` call raise
``LockedError``. Listeners are notified when estimation starts and ends;
both callbacks run while the estimator is still locked, and the end
callback fires even when estimation fails.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy import stats

from rfloc.errors import (
    AlgebraError,
    EstimationError,
    InvalidArgumentError,
    LockedError,
    NotReadyError,
)
from rfloc.radiosource.lateration import solve_linear_lateration
from rfloc.radiosource.residuals import distance_weights
from rfloc.rf.types import RadioSource, RangingReading

DEFAULT_DIMENSION = 3
DEFAULT_USE_HOMOGENEOUS_LINEAR_SOLVER = False
DEFAULT_USE_READING_POSITION_COVARIANCES = True
DEFAULT_NONLINEAR_SOLVER_ENABLED = True
DEFAULT_DISTANCE_STANDARD_DEVIATION = 1e-3  # meters


class RadioSourceEstimatorListener:
    """
    Receives estimation lifecycle notifications.

    Any object with ``on_estimate_start`` and ``on_estimate_end`` methods
    can be used as a listener; subclassing this class is optional.
    """

    def on_estimate_start(self, estimator) -> None:
        pass

    def on_estimate_end(self, estimator) -> None:
        pass


@dataclass
class EstimationResult:
    """
    Outputs of a successful estimation, replaced as a whole on each run.

    Power fields are only populated by range+RSSI estimators.
    """

    position: np.ndarray
    source: Optional[RadioSource] = None
    covariance: Optional[np.ndarray] = None
    position_covariance: Optional[np.ndarray] = None
    chi_sq: Optional[float] = None
    dof: Optional[int] = None
    transmitted_power_dbm: Optional[float] = None
    transmitted_power_variance: Optional[float] = None
    path_loss_exponent: Optional[float] = None
    path_loss_exponent_variance: Optional[float] = None


def _copy(array: Optional[np.ndarray]) -> Optional[np.ndarray]:
    """Caller-owned copy of a result array."""
    return None if array is None else np.array(array, dtype=float)


def _same_source(a, b) -> bool:
    return a.identifier == b.identifier and a.frequency == b.frequency


class RadioSourceEstimator:
    """
    Common configuration, validation and lifecycle of radio source estimators.

    Subclasses set ``reading_type`` and implement ``_estimate``.

    Args:
        readings: Readings of a single radio source, or None.
        initial_position: Seed of the nonlinear stage, or None to seed it
            with the linear solution.
        listener: Object notified on estimation start and end.
        dimension: 2 or 3.
        nonlinear_solver_enabled: Refine the linear solution and compute
            covariance.
        homogeneous_linear_solver_used: Solve the linear stage in projective
            coordinates.
        use_reading_position_covariances: Propagate receiver position
            covariances into residual weights.
        quality_scores: Per-reading scores stored for robust wrappers.
    """

    reading_type = RangingReading

    def __init__(
        self,
        readings: Optional[Sequence] = None,
        initial_position: Optional[np.ndarray] = None,
        listener=None,
        dimension: int = DEFAULT_DIMENSION,
        nonlinear_solver_enabled: bool = DEFAULT_NONLINEAR_SOLVER_ENABLED,
        homogeneous_linear_solver_used: bool = DEFAULT_USE_HOMOGENEOUS_LINEAR_SOLVER,
        use_reading_position_covariances: bool = DEFAULT_USE_READING_POSITION_COVARIANCES,
        quality_scores: Optional[Sequence[float]] = None,
    ):
        if dimension not in (2, 3):
            raise InvalidArgumentError(f"dimension must be 2 or 3, got {dimension}")
        self._dimension = dimension
        self._locked = False
        self._result: Optional[EstimationResult] = None

        self._readings = None
        self._initial_position = None
        self._quality_scores = None
        self._listener = listener
        self._nonlinear_solver_enabled = nonlinear_solver_enabled
        self._homogeneous_linear_solver_used = homogeneous_linear_solver_used
        self._use_reading_position_covariances = use_reading_position_covariances

        if readings is not None:
            self.readings = readings
        if initial_position is not None:
            self.initial_position = initial_position
        if quality_scores is not None:
            self.quality_scores = quality_scores

    def _check_locked(self) -> None:
        if self._locked:
            raise LockedError()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def readings(self):
        return self._readings

    @readings.setter
    def readings(self, readings) -> None:
        self._check_locked()
        self._validate_readings(readings)
        if self._quality_scores is not None and len(self._quality_scores) != len(readings):
            raise InvalidArgumentError(
                f"{len(readings)} readings do not match the {len(self._quality_scores)} "
                "quality scores; clear or replace the scores first"
            )
        self._readings = readings

    @property
    def initial_position(self) -> Optional[np.ndarray]:
        return self._initial_position

    @initial_position.setter
    def initial_position(self, position) -> None:
        self._check_locked()
        if position is not None:
            position = np.array(position, dtype=float)
            if position.shape != (self._dimension,):
                raise InvalidArgumentError(
                    f"initial_position must have shape ({self._dimension},), "
                    f"got {position.shape}"
                )
        self._initial_position = position

    @property
    def listener(self):
        return self._listener

    @listener.setter
    def listener(self, listener) -> None:
        self._check_locked()
        self._listener = listener

    @property
    def nonlinear_solver_enabled(self) -> bool:
        return self._nonlinear_solver_enabled

    @nonlinear_solver_enabled.setter
    def nonlinear_solver_enabled(self, enabled: bool) -> None:
        self._check_locked()
        self._nonlinear_solver_enabled = enabled

    @property
    def homogeneous_linear_solver_used(self) -> bool:
        return self._homogeneous_linear_solver_used

    @homogeneous_linear_solver_used.setter
    def homogeneous_linear_solver_used(self, used: bool) -> None:
        self._check_locked()
        self._homogeneous_linear_solver_used = used

    @property
    def use_reading_position_covariances(self) -> bool:
        return self._use_reading_position_covariances

    @use_reading_position_covariances.setter
    def use_reading_position_covariances(self, use: bool) -> None:
        self._check_locked()
        self._use_reading_position_covariances = use

    @property
    def quality_scores(self) -> Optional[np.ndarray]:
        """Per-reading quality scores. Stored for robust wrappers, not used here."""
        return self._quality_scores

    @quality_scores.setter
    def quality_scores(self, scores) -> None:
        self._check_locked()
        if scores is not None:
            scores = np.array(scores, dtype=float)
            if scores.ndim != 1:
                raise InvalidArgumentError("quality_scores must be one-dimensional")
            if self._readings is not None and len(scores) != len(self._readings):
                raise InvalidArgumentError(
                    f"Expected {len(self._readings)} quality scores, got {len(scores)}"
                )
        self._quality_scores = scores

    @property
    def min_readings(self) -> int:
        """Minimum number of readings required to estimate."""
        return self._dimension + 1

    def _validate_readings(self, readings) -> None:
        if readings is None or len(readings) == 0:
            raise InvalidArgumentError("readings must be a non-empty sequence")

        first = readings[0]
        for reading in readings:
            if not isinstance(reading, self.reading_type):
                raise InvalidArgumentError(
                    f"Expected {self.reading_type.__name__} readings, "
                    f"got {type(reading).__name__}"
                )
            if reading.dim != self._dimension:
                raise InvalidArgumentError(
                    f"Expected {self._dimension}D readings, got {reading.dim}D"
                )
            if not _same_source(reading.source, first.source):
                raise InvalidArgumentError(
                    "All readings must belong to the same radio source"
                )

    def are_valid_readings(self, readings) -> bool:
        """Whether ``readings`` can be used by this estimator."""
        try:
            self._validate_readings(readings)
        except InvalidArgumentError:
            return False
        return len(readings) >= self.min_readings

    @property
    def is_ready(self) -> bool:
        return self._readings is not None and self.are_valid_readings(self._readings)

    def estimate(self) -> None:
        """
        Estimate the radio source from the current readings.

        Raises:
            LockedError: If an estimation is already in progress.
            NotReadyError: If readings are missing or insufficient.
            EstimationError: If the linear or nonlinear solve fails.
        """
        self._check_locked()
        if not self.is_ready:
            raise NotReadyError()

        self._locked = True
        try:
            if self._listener is not None:
                self._listener.on_estimate_start(self)

            try:
                result = self._estimate()
            except (AlgebraError, np.linalg.LinAlgError) as e:
                raise EstimationError(f"Radio source estimation failed: {e}") from e

            result.source = self._readings[0].source
            self._result = result
        finally:
            try:
                if self._listener is not None:
                    self._listener.on_estimate_end(self)
            finally:
                self._locked = False

    def _estimate(self) -> EstimationResult:
        raise NotImplementedError

    def _receiver_positions(self) -> np.ndarray:
        return np.array([reading.position for reading in self._readings])

    def _distances(self) -> np.ndarray:
        return np.array([reading.distance for reading in self._readings], dtype=float)

    def _distance_weights(self) -> np.ndarray:
        return distance_weights(
            self._readings,
            self._use_reading_position_covariances,
            DEFAULT_DISTANCE_STANDARD_DEVIATION,
        )

    def _seed_position(self) -> np.ndarray:
        """Initial position when given and refined, otherwise the linear solution."""
        if self._initial_position is not None and self._nonlinear_solver_enabled:
            return self._initial_position.copy()

        position, _ = solve_linear_lateration(
            self._receiver_positions(),
            self._distances(),
            homogeneous=self._homogeneous_linear_solver_used,
        )
        return position

    @property
    def estimated_position(self) -> Optional[np.ndarray]:
        return None if self._result is None else _copy(self._result.position)

    @property
    def estimated_position_coordinates(self) -> Optional[np.ndarray]:
        """Estimated position as a flat coordinate array."""
        if self._result is None:
            return None
        return np.array(self._result.position, dtype=float).ravel()

    @property
    def estimated_covariance(self) -> Optional[np.ndarray]:
        """Full parameter covariance of the last estimate."""
        return None if self._result is None else _copy(self._result.covariance)

    @property
    def estimated_position_covariance(self) -> Optional[np.ndarray]:
        return None if self._result is None else _copy(self._result.position_covariance)

    @property
    def chi_sq(self) -> Optional[float]:
        """Weighted sum of squared residuals of the nonlinear fit."""
        return None if self._result is None else self._result.chi_sq

    @property
    def chi_sq_p_value(self) -> Optional[float]:
        """Probability of a chi-square at least as large under a correct model."""
        if self._result is None or self._result.chi_sq is None:
            return None
        if not self._result.dof or self._result.dof <= 0:
            return None
        return float(stats.chi2.sf(self._result.chi_sq, self._result.dof))

    @property
    def estimated_radio_source(self):
        raise NotImplementedError
