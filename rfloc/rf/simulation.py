"""
Synthetic reading generation for radio source localization.

Builds ranging and ranging+RSSI readings of a radio source at known
receiver positions, optionally perturbed with Gaussian noise. Used by the
example scripts and the test suite.
"""

from typing import List, Optional

import numpy as np

from rfloc.rf.measurement_models import DEFAULT_PATH_LOSS_EXPONENT, rss_pathloss
from rfloc.rf.types import RadioSource, RangingAndRssiReading, RangingReading


def random_receiver_positions(
    n_readings: int,
    dim: int = 3,
    min_value: float = -50.0,
    max_value: float = 50.0,
) -> np.ndarray:
    """
    Draw receiver positions uniformly inside an axis-aligned box.

    Args:
        n_readings: Number of positions.
        dim: Dimensionality (2 or 3).
        min_value: Lower bound of every coordinate in meters.
        max_value: Upper bound of every coordinate in meters.

    Returns:
        Positions, shape (n_readings, dim).
    """
    return np.random.uniform(min_value, max_value, size=(n_readings, dim))


def simulate_ranging_readings(
    source: RadioSource,
    source_position: np.ndarray,
    receiver_positions: np.ndarray,
    distance_std: float = 0.0,
    reported_distance_std: Optional[float] = None,
) -> List[RangingReading]:
    """
    Simulate ranging readings of a radio source.

    Args:
        source: Radio source identity attached to every reading.
        source_position: True source position, shape (d,).
        receiver_positions: Receiver positions, shape (N, d).
        distance_std: Std dev of Gaussian noise added to distances (m).
        reported_distance_std: Standard deviation stored in the readings,
            or None to leave it unset.

    Returns:
        List of N ranging readings. Noisy distances are clipped at zero.

    Example:
        >>> ap = WifiAccessPoint("bssid", 2.4e9)
        >>> receivers = np.array([[0, 0, 0], [10, 0, 0], [0, 10, 0], [0, 0, 10]])
        >>> readings = simulate_ranging_readings(ap, np.array([1.0, 2.0, 3.0]), receivers)
    """
    source_position = np.asarray(source_position, dtype=float)
    receiver_positions = np.asarray(receiver_positions, dtype=float)

    distances = np.linalg.norm(receiver_positions - source_position, axis=1)
    if distance_std > 0:
        distances = distances + np.random.randn(len(distances)) * distance_std

    return [
        RangingReading(
            source=source,
            distance=max(float(distance), 0.0),
            position=position,
            distance_std=reported_distance_std,
        )
        for distance, position in zip(distances, receiver_positions)
    ]


def simulate_ranging_and_rssi_readings(
    source: RadioSource,
    source_position: np.ndarray,
    receiver_positions: np.ndarray,
    tx_power_dbm: float,
    path_loss_exp: float = DEFAULT_PATH_LOSS_EXPONENT,
    distance_std: float = 0.0,
    rssi_std: float = 0.0,
    reported_distance_std: Optional[float] = None,
    reported_rssi_std: Optional[float] = None,
) -> List[RangingAndRssiReading]:
    """
    Simulate ranging and RSSI readings of a radio source.

    RSSI follows the log-distance path-loss model at the source frequency
    (see ``rss_pathloss``) evaluated at the true distance.

    Args:
        source: Radio source identity (its frequency drives the model).
        source_position: True source position, shape (d,).
        receiver_positions: Receiver positions, shape (N, d).
        tx_power_dbm: True transmitted power in dBm.
        path_loss_exp: True path-loss exponent.
        distance_std: Std dev of Gaussian noise added to distances (m).
        rssi_std: Std dev of Gaussian noise added to RSSI (dB).
        reported_distance_std: Distance std dev stored in readings, or None.
        reported_rssi_std: RSSI std dev stored in readings, or None.

    Returns:
        List of N ranging+RSSI readings.
    """
    source_position = np.asarray(source_position, dtype=float)
    receiver_positions = np.asarray(receiver_positions, dtype=float)

    true_distances = np.linalg.norm(receiver_positions - source_position, axis=1)
    rssis = np.array(
        [
            rss_pathloss(tx_power_dbm, d, source.frequency, path_loss_exp)
            for d in true_distances
        ]
    )

    distances = true_distances
    if distance_std > 0:
        distances = distances + np.random.randn(len(distances)) * distance_std
    if rssi_std > 0:
        rssis = rssis + np.random.randn(len(rssis)) * rssi_std

    return [
        RangingAndRssiReading(
            source=source,
            distance=max(float(distance), 0.0),
            rssi=float(rssi),
            position=position,
            distance_std=reported_distance_std,
            rssi_std=reported_rssi_std,
        )
        for distance, rssi, position in zip(distances, rssis, receiver_positions)
    ]
