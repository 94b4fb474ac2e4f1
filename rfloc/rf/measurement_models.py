"""
RF measurement models for radio source localization.

This module implements the measurement models used to locate a radio
source (WiFi access point or Bluetooth beacon):
- Power unit conversion (dBm <-> mW)
- Log-distance path-loss model parameterized by carrier frequency
- Inverse path-loss model (RSSI to distance)
- First-order propagation of received power variance into distance variance

Path-loss model:
    Pr = Pt * (c / (4π f))^n / d^n

    which, expressed in dBm, becomes

    Pr_dBm = n * k_dB + Pt_dBm - 5 n log10(d²),    k_dB = 10 log10(c / (4π f))
"""

import numpy as np

# Physical constants
SPEED_OF_LIGHT = 299792458.0  # m/s

# Path-loss exponent in free space
DEFAULT_PATH_LOSS_EXPONENT = 2.0

# Typical WiFi carrier frequency (Hz)
DEFAULT_FREQUENCY = 2.4e9


def dbm_to_power(dbm: float) -> float:
    """
    Convert power from dBm to milliwatts.

    Args:
        dbm: Power in dBm.

    Returns:
        Power in mW.

    Example:
        >>> dbm_to_power(0.0)
        1.0
        >>> dbm_to_power(20.0)
        100.0
    """
    return 10.0 ** (dbm / 10.0)


def power_to_dbm(mw: float) -> float:
    """
    Convert power from milliwatts to dBm.

    Args:
        mw: Power in mW. Must be positive.

    Returns:
        Power in dBm.

    Raises:
        ValueError: If power is not positive.
    """
    if mw <= 0:
        raise ValueError(f"Power must be positive to be expressed in dBm, got {mw}")
    return 10.0 * np.log10(mw)


def path_loss_constant_db(frequency: float, c: float = SPEED_OF_LIGHT) -> float:
    """
    Compute k_dB = 10 log10(c / (4π f)), the wavelength term of the model.

    Args:
        frequency: Carrier frequency in Hz.
        c: Speed of light in m/s.

    Returns:
        Constant term in dB (negative for any practical frequency).
    """
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive, got {frequency}")
    return 10.0 * np.log10(c / (4.0 * np.pi * frequency))


def rss_pathloss(
    tx_power_dbm: float,
    distance: float,
    frequency: float = DEFAULT_FREQUENCY,
    path_loss_exp: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> float:
    """
    Compute received power using the log-distance path-loss model.

    Implements:
        Pr_dBm = n * k_dB + Pt_dBm - 10 n log10(d)

    Args:
        tx_power_dbm: Equivalent transmitted power (Pt * Gt * Gr) in dBm.
        distance: Distance between source and receiver in meters.
        frequency: Carrier frequency in Hz. Defaults to 2.4 GHz.
        path_loss_exp: Path-loss exponent n. Defaults to 2.0 (free space).

    Returns:
        Received power in dBm.

    Example:
        >>> # 0 dBm source, 2.4 GHz, free space, 1 m away
        >>> rss = rss_pathloss(0.0, 1.0)
        >>> print(f"RSS: {rss:.2f} dBm")
        RSS: -40.05 dBm
    """
    if distance <= 0:
        raise ValueError("Distance must be positive")

    k_db = path_loss_constant_db(frequency)
    return path_loss_exp * k_db + tx_power_dbm - 10.0 * path_loss_exp * np.log10(distance)


def rss_to_distance(
    rss_dbm: float,
    tx_power_dbm: float,
    frequency: float = DEFAULT_FREQUENCY,
    path_loss_exp: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> float:
    """
    Estimate distance from received power using the inverse path-loss model.

    Implements:
        d = 10^((n * k_dB + Pt_dBm - Pr_dBm) / (10 n))

    Args:
        rss_dbm: Received power in dBm.
        tx_power_dbm: Equivalent transmitted power in dBm.
        frequency: Carrier frequency in Hz.
        path_loss_exp: Path-loss exponent n.

    Returns:
        Estimated distance in meters.
    """
    k_db = path_loss_constant_db(frequency)
    exponent = (path_loss_exp * k_db + tx_power_dbm - rss_dbm) / (10.0 * path_loss_exp)
    return 10.0 ** exponent


def rss_distance_sensitivity(
    distance: float,
    path_loss_exp: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> float:
    """
    Derivative of received power (dBm) with respect to distance.

        ∂Pr/∂d = -10 n / (ln(10) d)

    Args:
        distance: Distance in meters.
        path_loss_exp: Path-loss exponent n.

    Returns:
        Sensitivity in dB per meter.
    """
    if distance <= 0:
        raise ValueError("Distance must be positive")
    return -10.0 * path_loss_exp / (np.log(10.0) * distance)


def propagate_power_variance_to_distance_variance(
    tx_power_dbm: float,
    rss_dbm: float,
    path_loss_exp: float,
    frequency: float,
    rss_variance: float,
) -> float:
    """
    Propagate received power variance into distance variance.

    The distance follows d = f(Pr) = 10^((n k_dB + Pt - Pr) / (10 n)), so the
    first-order approximation is var(d) = f'(Pr)² var(Pr) with

        f'(Pr) = -ln(10) / (10 n) * f(Pr)

    Args:
        tx_power_dbm: Transmitted power in dBm.
        rss_dbm: Received power in dBm.
        path_loss_exp: Path-loss exponent n.
        frequency: Carrier frequency in Hz.
        rss_variance: Received power variance in dB².

    Returns:
        Distance variance in m².
    """
    distance = rss_to_distance(rss_dbm, tx_power_dbm, frequency, path_loss_exp)
    derivative = -np.log(10.0) / (10.0 * path_loss_exp) * distance
    return derivative ** 2 * rss_variance
