"""
Unit tests for radio source, reading and located source types.
"""

import numpy as np
import pytest

from rfloc.errors import InvalidArgumentError
from rfloc.rf.types import (
    Beacon,
    LocatedRadioSource,
    LocatedRadioSourceWithPower,
    RadioSource,
    RangingAndRssiReading,
    RangingReading,
    WifiAccessPoint,
)


class TestRadioSources:
    """Test radio source identities."""

    def test_wifi_access_point(self):
        ap = WifiAccessPoint("00:11:22:33:44:55", 5.0e9, ssid="lab")
        assert ap.bssid == "00:11:22:33:44:55"
        assert ap.frequency == 5.0e9
        assert ap.ssid == "lab"

    def test_beacon(self):
        beacon = Beacon("beacon-1", 2.4e9, identifiers=("uuid", "1", "2"))
        assert beacon.identifiers == ("uuid", "1", "2")
        assert beacon.beacon_type_code is None

    def test_invalid_frequency(self):
        with pytest.raises(InvalidArgumentError):
            RadioSource("x", frequency=0.0)

    def test_invalid_argument_is_value_error(self):
        """InvalidArgumentError can be caught as ValueError."""
        with pytest.raises(ValueError):
            RadioSource("x", frequency=-1.0)


class TestRangingReading:
    """Test ranging reading validation."""

    def setup_method(self):
        self.ap = WifiAccessPoint("bssid", 2.4e9)

    def test_valid_reading(self):
        reading = RangingReading(self.ap, 5.0, [1.0, 2.0, 3.0], distance_std=0.5)
        assert reading.dim == 3
        assert isinstance(reading.position, np.ndarray)
        assert reading.position_covariance is None

    def test_zero_distance_allowed(self):
        reading = RangingReading(self.ap, 0.0, np.zeros(2))
        assert reading.dim == 2

    def test_negative_distance(self):
        with pytest.raises(InvalidArgumentError):
            RangingReading(self.ap, -1.0, np.zeros(3))

    def test_non_positive_std(self):
        with pytest.raises(InvalidArgumentError):
            RangingReading(self.ap, 1.0, np.zeros(3), distance_std=0.0)

    def test_bad_position_shape(self):
        with pytest.raises(InvalidArgumentError):
            RangingReading(self.ap, 1.0, np.zeros(4))

    def test_covariance_dimension_mismatch(self):
        with pytest.raises(InvalidArgumentError):
            RangingReading(self.ap, 1.0, np.zeros(3), position_covariance=np.eye(2))

    def test_non_symmetric_covariance(self):
        cov = np.array([[1.0, 0.5], [0.0, 1.0]])
        with pytest.raises(InvalidArgumentError):
            RangingReading(self.ap, 1.0, np.zeros(2), position_covariance=cov)

    def test_missing_source(self):
        with pytest.raises(InvalidArgumentError):
            RangingReading(None, 1.0, np.zeros(2))

    def test_immutable(self):
        reading = RangingReading(self.ap, 1.0, np.zeros(3))
        with pytest.raises(AttributeError):
            reading.distance = 2.0


class TestRangingAndRssiReading:
    """Test ranging + RSSI reading validation."""

    def test_valid_reading(self):
        ap = WifiAccessPoint("bssid", 2.4e9)
        cov = 0.1 * np.eye(3)
        reading = RangingAndRssiReading(
            ap, 5.0, -60.0, np.zeros(3), distance_std=0.2, rssi_std=1.5,
            position_covariance=cov,
        )
        assert reading.dim == 3
        assert reading.distance == 5.0
        assert reading.rssi == -60.0
        assert reading.distance_std == 0.2
        np.testing.assert_allclose(reading.position_covariance, cov)

    def test_non_finite_rssi(self):
        ap = WifiAccessPoint("bssid", 2.4e9)
        with pytest.raises(InvalidArgumentError):
            RangingAndRssiReading(ap, 5.0, np.nan, np.zeros(3))

    def test_invalid_rssi_std(self):
        ap = WifiAccessPoint("bssid", 2.4e9)
        with pytest.raises(InvalidArgumentError):
            RangingAndRssiReading(ap, 5.0, -60.0, np.zeros(3), rssi_std=-1.0)


class TestLocatedRadioSource:
    """Test located radio source objects."""

    def test_located_source(self):
        ap = WifiAccessPoint("bssid", 2.4e9)
        located = LocatedRadioSource(ap, np.array([1.0, 2.0]))
        assert located.dim == 2
        assert located.position_covariance is None

    def test_transmitted_power_in_mw(self):
        ap = WifiAccessPoint("bssid", 2.4e9)
        located = LocatedRadioSourceWithPower(
            ap, np.zeros(3), transmitted_power_dbm=10.0, path_loss_exponent=2.5
        )
        assert np.isclose(located.transmitted_power, 10.0)
        assert located.path_loss_exponent == 2.5

    def test_unknown_power(self):
        ap = WifiAccessPoint("bssid", 2.4e9)
        located = LocatedRadioSourceWithPower(ap, np.zeros(3))
        assert located.transmitted_power is None
