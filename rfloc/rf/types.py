"""Type definitions for radio sources, readings and located radio sources.

Readings are immutable records tying a radio source identity to a known
receiver position. Located radio sources are the output of estimation.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from rfloc.errors import InvalidArgumentError
from rfloc.rf.measurement_models import (
    DEFAULT_FREQUENCY,
    DEFAULT_PATH_LOSS_EXPONENT,
    dbm_to_power,
)


# Type alias for receiver and source positions
Position = np.ndarray  # Shape (d,), d=2 or d=3


@dataclass(frozen=True)
class RadioSource:
    """Identity of a radio source.

    Attributes:
        identifier: Unique identifier of the source.
        frequency: Carrier frequency in Hz.
    """

    identifier: str
    frequency: float = DEFAULT_FREQUENCY

    def __post_init__(self) -> None:
        if self.frequency <= 0:
            raise InvalidArgumentError(
                f"frequency must be positive, got {self.frequency}"
            )


@dataclass(frozen=True)
class WifiAccessPoint(RadioSource):
    """WiFi access point identified by its BSSID."""

    ssid: Optional[str] = None

    @property
    def bssid(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class Beacon(RadioSource):
    """Bluetooth beacon.

    Attributes:
        identifiers: Beacon identifiers (e.g. UUID, major, minor).
        beacon_type_code: Beacon layout type code, if known.
    """

    identifiers: Tuple[str, ...] = ()
    beacon_type_code: Optional[int] = None


def _validate_position(position) -> np.ndarray:
    position = np.asarray(position, dtype=float)
    if position.ndim != 1 or position.shape[0] not in (2, 3):
        raise InvalidArgumentError(
            f"position must have shape (2,) or (3,), got {position.shape}"
        )
    if not np.all(np.isfinite(position)):
        raise InvalidArgumentError("position contains non-finite values")
    return position


def _validate_standard_deviation(value: Optional[float], name: str) -> None:
    if value is not None and not value > 0:
        raise InvalidArgumentError(f"{name} must be positive, got {value}")


def _validate_distance(
    source: RadioSource, distance: float, distance_std: Optional[float]
) -> None:
    if source is None:
        raise InvalidArgumentError("source is required")
    if not distance >= 0:
        raise InvalidArgumentError(f"distance must be non-negative, got {distance}")
    _validate_standard_deviation(distance_std, "distance_std")


def _validate_position_covariance(
    covariance, dim: int
) -> Optional[np.ndarray]:
    if covariance is None:
        return None

    covariance = np.asarray(covariance, dtype=float)
    if covariance.shape != (dim, dim):
        raise InvalidArgumentError(
            f"position_covariance must have shape ({dim}, {dim}), "
            f"got {covariance.shape}"
        )
    if not np.allclose(covariance, covariance.T):
        raise InvalidArgumentError("position_covariance must be symmetric")

    eigenvalues = np.linalg.eigvalsh(covariance)
    if np.any(eigenvalues < -1e-10):  # Allow small numerical errors
        raise InvalidArgumentError(
            "position_covariance must be positive semi-definite"
        )
    return covariance


@dataclass(frozen=True, eq=False)
class RangingReading:
    """
    Range reading of a radio source taken at a known receiver position.

    Attributes:
        source: Radio source the reading refers to.
        distance: Measured distance to the source in meters (>= 0).
        position: Receiver position, shape (2,) or (3,).
        distance_std: Standard deviation of the distance in meters, or None.
        position_covariance: Covariance of the receiver position, shape (d, d),
            or None when the position is exactly known.

    Examples:
        >>> ap = WifiAccessPoint("00:11:22:33:44:55", 2.4e9)
        >>> reading = RangingReading(ap, distance=5.0, position=np.array([1.0, 2.0, 0.0]))
        >>> reading.dim
        3
    """

    source: RadioSource
    distance: float
    position: Position
    distance_std: Optional[float] = None
    position_covariance: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        """Validate reading consistency after initialization."""
        _validate_distance(self.source, self.distance, self.distance_std)
        position = _validate_position(self.position)
        object.__setattr__(self, "position", position)
        object.__setattr__(
            self,
            "position_covariance",
            _validate_position_covariance(self.position_covariance, position.shape[0]),
        )

    @property
    def dim(self) -> int:
        """Dimensionality of the receiver position."""
        return self.position.shape[0]


@dataclass(frozen=True, eq=False)
class RangingAndRssiReading:
    """
    Range and received signal strength reading of a radio source.

    Attributes:
        source: Radio source the reading refers to.
        distance: Measured distance to the source in meters (>= 0).
        rssi: Received power in dBm.
        position: Receiver position, shape (2,) or (3,).
        distance_std: Standard deviation of the distance in meters, or None.
        rssi_std: Standard deviation of the received power in dB, or None.
        position_covariance: Covariance of the receiver position, or None.
    """

    source: RadioSource
    distance: float
    rssi: float
    position: Position
    distance_std: Optional[float] = None
    rssi_std: Optional[float] = None
    position_covariance: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        """Validate reading consistency after initialization."""
        _validate_distance(self.source, self.distance, self.distance_std)
        if not np.isfinite(self.rssi):
            raise InvalidArgumentError(f"rssi must be finite, got {self.rssi}")
        _validate_standard_deviation(self.rssi_std, "rssi_std")

        position = _validate_position(self.position)
        object.__setattr__(self, "position", position)
        object.__setattr__(
            self,
            "position_covariance",
            _validate_position_covariance(self.position_covariance, position.shape[0]),
        )

    @property
    def dim(self) -> int:
        """Dimensionality of the receiver position."""
        return self.position.shape[0]


@dataclass
class LocatedRadioSource:
    """
    Radio source with an estimated location.

    Attributes:
        source: Identity of the radio source.
        position: Estimated position, shape (d,).
        position_covariance: Covariance of the estimated position, or None
            when it could not be computed.
    """

    source: RadioSource
    position: Position
    position_covariance: Optional[np.ndarray] = None

    @property
    def dim(self) -> int:
        return self.position.shape[0]


@dataclass
class LocatedRadioSourceWithPower(LocatedRadioSource):
    """
    Located radio source annotated with transmitted power and path loss.

    Attributes:
        transmitted_power_dbm: Transmitted power in dBm, or None if unknown.
        transmitted_power_std: Standard deviation of transmitted power in dB.
        path_loss_exponent: Path-loss exponent.
        path_loss_exponent_std: Standard deviation of path-loss exponent.
    """

    transmitted_power_dbm: Optional[float] = None
    transmitted_power_std: Optional[float] = None
    path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT
    path_loss_exponent_std: Optional[float] = None

    @property
    def transmitted_power(self) -> Optional[float]:
        """Transmitted power in mW."""
        if self.transmitted_power_dbm is None:
            return None
        return dbm_to_power(self.transmitted_power_dbm)
