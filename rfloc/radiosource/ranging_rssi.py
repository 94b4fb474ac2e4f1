"""
Radio source estimation from range and received signal strength readings.

Besides the source position, the transmitted power and the path-loss
exponent of the log-distance model can be estimated jointly. Once the
position is known, received power is linear in (Pt_dBm, n):

    Pr_i = Pt + n g_i,   g_i = k_dB - 5 log10(d_i²)

which gives a closed-form fit used to seed the nonlinear stage and as the
final answer when that stage is disabled.
"""

import warnings
from typing import Optional, Tuple

import numpy as np

from rfloc.errors import AlgebraError, InvalidArgumentError
from rfloc.estimators.least_squares import weighted_least_squares
from rfloc.radiosource.base import EstimationResult, RadioSourceEstimator
from rfloc.radiosource.refiner import refine
from rfloc.radiosource.residuals import (
    EPSILON_SQUARED_DISTANCE,
    RangingAndRssiResidualModel,
    RangingResidualModel,
    rssi_weights,
)
from rfloc.rf.measurement_models import (
    DEFAULT_PATH_LOSS_EXPONENT,
    dbm_to_power,
    path_loss_constant_db,
    power_to_dbm,
)
from rfloc.rf.types import LocatedRadioSourceWithPower, RangingAndRssiReading

DEFAULT_POWER_STANDARD_DEVIATION = 1.0  # dB
DEFAULT_TRANSMITTED_POWER_ESTIMATION_ENABLED = True
DEFAULT_PATH_LOSS_ESTIMATION_ENABLED = False


def fit_transmitted_power_and_path_loss(
    position: np.ndarray,
    receiver_positions: np.ndarray,
    rssis: np.ndarray,
    frequency: float,
    weights: Optional[np.ndarray] = None,
    estimate_power: bool = True,
    estimate_path_loss: bool = False,
    tx_power_dbm: Optional[float] = None,
    path_loss_exp: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> Tuple[Optional[float], float]:
    """
    Closed-form fit of transmitted power and/or path-loss exponent.

    Args:
        position: Known source position, shape (d,).
        receiver_positions: Receiver positions, shape (N, d).
        rssis: Received power in dBm, shape (N,).
        frequency: Carrier frequency in Hz.
        weights: RSSI weights, shape (N,). Uniform if None.
        estimate_power: Fit the transmitted power.
        estimate_path_loss: Fit the path-loss exponent.
        tx_power_dbm: Known transmitted power (required if not fitted
            while path loss is fitted).
        path_loss_exp: Known path-loss exponent (used if not fitted).

    Returns:
        Tuple (tx_power_dbm, path_loss_exp).

    Raises:
        AlgebraError: If all receivers lie at the same distance from the
            source while both unknowns are fitted, or the fit is degenerate.
    """
    rssis = np.asarray(rssis, dtype=float)
    if weights is None:
        weights = np.ones(len(rssis))

    sq = np.maximum(
        np.sum((np.asarray(receiver_positions) - position) ** 2, axis=1),
        EPSILON_SQUARED_DISTANCE,
    )
    g = path_loss_constant_db(frequency) - 5.0 * np.log10(sq)

    if estimate_power and estimate_path_loss:
        A = np.column_stack([np.ones(len(g)), g])
        tx_power_dbm, path_loss_exp = weighted_least_squares(A, rssis, weights)
    elif estimate_power:
        tx_power_dbm = np.sum(weights * (rssis - path_loss_exp * g)) / np.sum(weights)
    elif estimate_path_loss:
        if tx_power_dbm is None:
            raise ValueError("tx_power_dbm is required to fit the path loss alone")
        denominator = np.sum(weights * g**2)
        if denominator == 0.0:
            raise AlgebraError("Path-loss exponent is not observable")
        path_loss_exp = np.sum(weights * g * (rssis - tx_power_dbm)) / denominator

    if tx_power_dbm is not None:
        tx_power_dbm = float(tx_power_dbm)
    return tx_power_dbm, float(path_loss_exp)


class RangingAndRssiRadioSourceEstimator(RadioSourceEstimator):
    """
    Estimates position, transmitted power and path loss of a radio source.

    Readings must be ``RangingAndRssiReading`` instances. The minimum number
    of readings is ``dimension + 1`` plus one for each of transmitted power
    and path-loss exponent being estimated. Estimating the path loss with a
    fixed transmitted power requires ``initial_transmitted_power_dbm``.

    When neither power nor path loss is estimated the RSSI is ignored and
    the position is estimated from ranges only; initial power and path loss
    are reported unchanged.

    Args:
        readings: Readings of a single radio source, or None.
        initial_position: Seed position of the nonlinear stage.
        initial_transmitted_power_dbm: Seed (or fixed) transmitted power.
        initial_path_loss_exponent: Seed (or fixed) path-loss exponent.
        transmitted_power_estimation_enabled: Estimate transmitted power.
        path_loss_estimation_enabled: Estimate path-loss exponent.
        **kwargs: Forwarded to ``RadioSourceEstimator``.
    """

    reading_type = RangingAndRssiReading

    def __init__(
        self,
        readings=None,
        initial_position=None,
        initial_transmitted_power_dbm: Optional[float] = None,
        initial_path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT,
        transmitted_power_estimation_enabled: bool = DEFAULT_TRANSMITTED_POWER_ESTIMATION_ENABLED,
        path_loss_estimation_enabled: bool = DEFAULT_PATH_LOSS_ESTIMATION_ENABLED,
        **kwargs,
    ):
        self._initial_transmitted_power_dbm = initial_transmitted_power_dbm
        self._initial_path_loss_exponent = initial_path_loss_exponent
        self._transmitted_power_estimation_enabled = transmitted_power_estimation_enabled
        self._path_loss_estimation_enabled = path_loss_estimation_enabled
        super().__init__(readings=readings, initial_position=initial_position, **kwargs)

    @property
    def initial_transmitted_power_dbm(self) -> Optional[float]:
        return self._initial_transmitted_power_dbm

    @initial_transmitted_power_dbm.setter
    def initial_transmitted_power_dbm(self, value: Optional[float]) -> None:
        self._check_locked()
        self._initial_transmitted_power_dbm = value

    @property
    def initial_transmitted_power(self) -> Optional[float]:
        """Initial transmitted power in mW."""
        if self._initial_transmitted_power_dbm is None:
            return None
        return dbm_to_power(self._initial_transmitted_power_dbm)

    @initial_transmitted_power.setter
    def initial_transmitted_power(self, value: Optional[float]) -> None:
        self._check_locked()
        if value is None:
            self._initial_transmitted_power_dbm = None
            return
        if value <= 0:
            raise InvalidArgumentError(f"Transmitted power must be positive, got {value} mW")
        self._initial_transmitted_power_dbm = power_to_dbm(value)

    @property
    def initial_path_loss_exponent(self) -> float:
        return self._initial_path_loss_exponent

    @initial_path_loss_exponent.setter
    def initial_path_loss_exponent(self, value: float) -> None:
        self._check_locked()
        self._initial_path_loss_exponent = value

    @property
    def transmitted_power_estimation_enabled(self) -> bool:
        return self._transmitted_power_estimation_enabled

    @transmitted_power_estimation_enabled.setter
    def transmitted_power_estimation_enabled(self, enabled: bool) -> None:
        self._check_locked()
        self._transmitted_power_estimation_enabled = enabled

    @property
    def path_loss_estimation_enabled(self) -> bool:
        return self._path_loss_estimation_enabled

    @path_loss_estimation_enabled.setter
    def path_loss_estimation_enabled(self, enabled: bool) -> None:
        self._check_locked()
        self._path_loss_estimation_enabled = enabled

    @property
    def min_readings(self) -> int:
        return (
            self._dimension
            + 1
            + int(self._transmitted_power_estimation_enabled)
            + int(self._path_loss_estimation_enabled)
        )

    @property
    def is_ready(self) -> bool:
        if (
            self._path_loss_estimation_enabled
            and not self._transmitted_power_estimation_enabled
            and self._initial_transmitted_power_dbm is None
        ):
            return False
        return super().is_ready

    def _rssis(self) -> np.ndarray:
        return np.array([reading.rssi for reading in self._readings], dtype=float)

    def _rssi_weights(self) -> np.ndarray:
        return rssi_weights(
            self._readings,
            self._use_reading_position_covariances,
            DEFAULT_POWER_STANDARD_DEVIATION,
            self._initial_path_loss_exponent,
        )

    def _fit_power_and_path_loss(self, position, tx_power_dbm, path_loss_exp, weights):
        """
        Closed-form power / path-loss fit at ``position``.

        When the receivers cannot separate path loss from transmitted power
        (all at the same distance from ``position``), the path-loss exponent
        is kept at its initial value and only the power is fitted.
        """
        args = (position, self._receiver_positions(), self._rssis(),
                self._readings[0].source.frequency)
        try:
            return fit_transmitted_power_and_path_loss(
                *args,
                weights=weights,
                estimate_power=self._transmitted_power_estimation_enabled,
                estimate_path_loss=self._path_loss_estimation_enabled,
                tx_power_dbm=tx_power_dbm,
                path_loss_exp=path_loss_exp,
            )
        except AlgebraError as e:
            warnings.warn(
                f"Path-loss exponent is not observable from the readings ({e}); "
                f"keeping initial value {path_loss_exp}.",
                RuntimeWarning,
            )
            return fit_transmitted_power_and_path_loss(
                *args,
                weights=weights,
                estimate_power=self._transmitted_power_estimation_enabled,
                estimate_path_loss=False,
                tx_power_dbm=tx_power_dbm,
                path_loss_exp=path_loss_exp,
            )

    def _estimate(self) -> EstimationResult:
        estimate_power = self._transmitted_power_estimation_enabled
        estimate_path_loss = self._path_loss_estimation_enabled
        positions = self._receiver_positions()
        frequency = self._readings[0].source.frequency

        position = self._seed_position()

        if not (estimate_power or estimate_path_loss):
            result = EstimationResult(
                position=position,
                transmitted_power_dbm=self._initial_transmitted_power_dbm,
                path_loss_exponent=self._initial_path_loss_exponent,
            )
            if self._nonlinear_solver_enabled:
                model = RangingResidualModel(
                    positions, self._distances(), self._distance_weights()
                )
                refined = refine(model, position)
                result.position = refined.x
                result.covariance = refined.covariance
                result.position_covariance = refined.position_covariance(self._dimension)
                result.chi_sq = refined.chi_sq
                result.dof = refined.dof
            return result

        weights = self._rssi_weights()
        tx_power_dbm = self._initial_transmitted_power_dbm
        path_loss_exp = self._initial_path_loss_exponent

        if not self._nonlinear_solver_enabled or tx_power_dbm is None:
            tx_power_dbm, path_loss_exp = self._fit_power_and_path_loss(
                position, tx_power_dbm, path_loss_exp, weights
            )

        if not self._nonlinear_solver_enabled:
            return EstimationResult(
                position=position,
                transmitted_power_dbm=tx_power_dbm,
                path_loss_exponent=path_loss_exp,
            )

        model = RangingAndRssiResidualModel(
            positions,
            self._distances(),
            self._rssis(),
            frequency,
            self._distance_weights(),
            weights,
            estimate_power=estimate_power,
            estimate_path_loss=estimate_path_loss,
            tx_power_dbm=tx_power_dbm,
            path_loss_exp=path_loss_exp,
        )
        refined = refine(model, model.pack(position, tx_power_dbm, path_loss_exp))
        position, tx_power_dbm, path_loss_exp = model.unpack(refined.x)

        index = self._dimension
        power_variance = None
        path_loss_variance = None
        if estimate_power:
            power_variance = refined.variance(index)
            index += 1
        if estimate_path_loss:
            path_loss_variance = refined.variance(index)

        return EstimationResult(
            position=position,
            covariance=refined.covariance,
            position_covariance=refined.position_covariance(self._dimension),
            chi_sq=refined.chi_sq,
            dof=refined.dof,
            transmitted_power_dbm=float(tx_power_dbm),
            transmitted_power_variance=power_variance,
            path_loss_exponent=float(path_loss_exp),
            path_loss_exponent_variance=path_loss_variance,
        )

    @property
    def estimated_transmitted_power_dbm(self) -> Optional[float]:
        return None if self._result is None else self._result.transmitted_power_dbm

    @property
    def estimated_transmitted_power(self) -> Optional[float]:
        """Estimated transmitted power in mW."""
        if self._result is None or self._result.transmitted_power_dbm is None:
            return None
        return dbm_to_power(self._result.transmitted_power_dbm)

    @property
    def estimated_transmitted_power_variance(self) -> Optional[float]:
        """Variance of the transmitted power in dB²."""
        return None if self._result is None else self._result.transmitted_power_variance

    @property
    def estimated_path_loss_exponent(self) -> Optional[float]:
        return None if self._result is None else self._result.path_loss_exponent

    @property
    def estimated_path_loss_exponent_variance(self) -> Optional[float]:
        return None if self._result is None else self._result.path_loss_exponent_variance

    @property
    def estimated_radio_source(self):
        """Located radio source with power and path loss, or None."""
        if self._result is None:
            return None
        result = self._result
        return LocatedRadioSourceWithPower(
            source=result.source,
            position=self.estimated_position,
            position_covariance=self.estimated_position_covariance,
            transmitted_power_dbm=result.transmitted_power_dbm,
            transmitted_power_std=_std(result.transmitted_power_variance),
            path_loss_exponent=result.path_loss_exponent,
            path_loss_exponent_std=_std(result.path_loss_exponent_variance),
        )


def _std(variance: Optional[float]) -> Optional[float]:
    if variance is None:
        return None
    return float(np.sqrt(max(variance, 0.0)))
