"""
Residual models of the nonlinear refinement stage.

A residual model bundles everything the Levenberg-Marquardt solver needs for
one estimator variant: the stacked observation vector y, the measurement
model h(x), its Jacobian and the per-observation weights.

Parameter vectors:
    - range only: x = [position]
    - range + RSSI: x = [position, (Pt_dBm), (n)], where transmitted power
      and path-loss exponent are present only when they are estimated.

Received power follows the log-distance path-loss model

    Pr = n k_dB + Pt - 5 n log10(d²),   k_dB = 10 log10(c / (4π f))

with partial derivatives

    ∂Pr/∂x_j = -10 n (x_j - p_j) / (ln(10) d²)
    ∂Pr/∂Pt  = 1
    ∂Pr/∂n   = k_dB - 5 log10(d²)
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from rfloc.rf.measurement_models import path_loss_constant_db, rss_distance_sensitivity
from rfloc.utils.geometry import EPSILON_RANGE, range_jacobian

# Squared distance floor keeping log10(d²) finite
EPSILON_SQUARED_DISTANCE = EPSILON_RANGE**2


def position_variance(position_covariance: Optional[np.ndarray]) -> float:
    """Scalar variance of a receiver position: mean eigenvalue of its covariance."""
    if position_covariance is None:
        return 0.0
    return float(np.trace(position_covariance)) / position_covariance.shape[0]


def distance_weights(
    readings: Sequence,
    use_position_covariances: bool,
    default_distance_std: float,
) -> np.ndarray:
    """
    Weights of the distance residuals, 1 / (σ_d² + σ_pos²).

    σ_d is the reading's distance standard deviation (or the default), and
    σ_pos² is added only when position covariances are used and the reading
    carries one.
    """
    weights = np.empty(len(readings))
    for i, reading in enumerate(readings):
        std = reading.distance_std if reading.distance_std is not None else default_distance_std
        variance = std**2
        if use_position_covariances:
            variance += position_variance(reading.position_covariance)
        weights[i] = 1.0 / variance
    return weights


def rssi_weights(
    readings: Sequence,
    use_position_covariances: bool,
    default_rssi_std: float,
    path_loss_exp: float,
) -> np.ndarray:
    """
    Weights of the received power residuals.

    Position uncertainty is propagated into received power through the
    path-loss sensitivity at the observed distance:

        var = σ_rssi² + (10 n / (ln(10) d))² σ_pos²
    """
    weights = np.empty(len(readings))
    for i, reading in enumerate(readings):
        std = reading.rssi_std if reading.rssi_std is not None else default_rssi_std
        variance = std**2
        if use_position_covariances:
            pos_var = position_variance(reading.position_covariance)
            if pos_var > 0.0:
                distance = max(reading.distance, EPSILON_RANGE)
                sensitivity = rss_distance_sensitivity(distance, path_loss_exp)
                variance += sensitivity**2 * pos_var
        weights[i] = 1.0 / variance
    return weights


class RangingResidualModel:
    """
    Distance residuals of range readings.

    Attributes:
        positions: Receiver positions, shape (N, d).
        distances: Observed distances, shape (N,).
        weights: Distance weights, shape (N,).
    """

    def __init__(self, positions: np.ndarray, distances: np.ndarray, weights: np.ndarray):
        self.positions = np.asarray(positions, dtype=float)
        self.distances = np.asarray(distances, dtype=float)
        self.weights = np.asarray(weights, dtype=float)
        self.dim = self.positions.shape[1]

    @property
    def y(self) -> np.ndarray:
        return self.distances

    @property
    def n_params(self) -> int:
        return self.dim

    def h(self, x: np.ndarray) -> np.ndarray:
        return np.linalg.norm(x[: self.dim] - self.positions, axis=1)

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        return range_jacobian(x[: self.dim], self.positions)


class RangingAndRssiResidualModel:
    """
    Stacked distance and received power residuals of range+RSSI readings.

    Observation vector is y = [distances, rssis]. Transmitted power and
    path-loss exponent are free parameters only when the corresponding flag
    is set; otherwise the fixed values passed here are used.

    Args:
        positions: Receiver positions, shape (N, d).
        distances: Observed distances, shape (N,).
        rssis: Observed received power in dBm, shape (N,).
        frequency: Carrier frequency in Hz.
        distance_weights: Weights of distance residuals, shape (N,).
        rssi_weights: Weights of received power residuals, shape (N,).
        estimate_power: Whether Pt is a free parameter.
        estimate_path_loss: Whether n is a free parameter.
        tx_power_dbm: Fixed transmitted power (used if not estimated).
        path_loss_exp: Fixed path-loss exponent (used if not estimated).
    """

    def __init__(
        self,
        positions: np.ndarray,
        distances: np.ndarray,
        rssis: np.ndarray,
        frequency: float,
        distance_weights: np.ndarray,
        rssi_weights: np.ndarray,
        estimate_power: bool = True,
        estimate_path_loss: bool = False,
        tx_power_dbm: Optional[float] = None,
        path_loss_exp: float = 2.0,
    ):
        self.positions = np.asarray(positions, dtype=float)
        self.distances = np.asarray(distances, dtype=float)
        self.rssis = np.asarray(rssis, dtype=float)
        self.k_db = path_loss_constant_db(frequency)
        self.weights = np.concatenate([distance_weights, rssi_weights])
        self.estimate_power = estimate_power
        self.estimate_path_loss = estimate_path_loss
        self.tx_power_dbm = tx_power_dbm
        self.path_loss_exp = path_loss_exp
        self.dim = self.positions.shape[1]

        if not estimate_power and tx_power_dbm is None:
            raise ValueError("tx_power_dbm is required when power is not estimated")

    @property
    def y(self) -> np.ndarray:
        return np.concatenate([self.distances, self.rssis])

    @property
    def n_params(self) -> int:
        return self.dim + int(self.estimate_power) + int(self.estimate_path_loss)

    def pack(
        self, position: np.ndarray, tx_power_dbm: Optional[float], path_loss_exp: float
    ) -> np.ndarray:
        """Build a parameter vector from its components."""
        x = list(np.asarray(position, dtype=float))
        if self.estimate_power:
            x.append(tx_power_dbm)
        if self.estimate_path_loss:
            x.append(path_loss_exp)
        return np.array(x, dtype=float)

    def unpack(self, x: np.ndarray) -> Tuple[np.ndarray, float, float]:
        """Split a parameter vector into (position, Pt_dBm, n)."""
        position = x[: self.dim]
        idx = self.dim
        tx_power_dbm = self.tx_power_dbm
        path_loss_exp = self.path_loss_exp
        if self.estimate_power:
            tx_power_dbm = x[idx]
            idx += 1
        if self.estimate_path_loss:
            path_loss_exp = x[idx]
        return position, tx_power_dbm, path_loss_exp

    def _squared_distances(self, position: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        diff = position - self.positions
        sq = np.maximum(np.sum(diff**2, axis=1), EPSILON_SQUARED_DISTANCE)
        return diff, sq

    def h(self, x: np.ndarray) -> np.ndarray:
        position, tx_power_dbm, n = self.unpack(x)
        diff, sq = self._squared_distances(position)
        ranges = np.linalg.norm(diff, axis=1)
        rssis = n * self.k_db + tx_power_dbm - 5.0 * n * np.log10(sq)
        return np.concatenate([ranges, rssis])

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        position, _, n = self.unpack(x)
        diff, sq = self._squared_distances(position)
        n_readings = len(self.positions)

        J = np.zeros((2 * n_readings, self.n_params))
        J[:n_readings, : self.dim] = range_jacobian(position, self.positions)
        J[n_readings:, : self.dim] = -10.0 * n * diff / (np.log(10.0) * sq[:, np.newaxis])

        col = self.dim
        if self.estimate_power:
            J[n_readings:, col] = 1.0
            col += 1
        if self.estimate_path_loss:
            J[n_readings:, col] = self.k_db - 5.0 * np.log10(sq)
        return J
