"""
Unit tests for RF measurement models.

Tests power conversion and the frequency-parameterized log-distance
path-loss model.
"""

import numpy as np
import pytest

from rfloc.rf.measurement_models import (
    DEFAULT_FREQUENCY,
    SPEED_OF_LIGHT,
    dbm_to_power,
    path_loss_constant_db,
    power_to_dbm,
    propagate_power_variance_to_distance_variance,
    rss_distance_sensitivity,
    rss_pathloss,
    rss_to_distance,
)


class TestPowerConversion:
    """Test dBm <-> mW conversion."""

    def test_known_values(self):
        """Test conversion of reference values."""
        assert np.isclose(dbm_to_power(0.0), 1.0)
        assert np.isclose(dbm_to_power(20.0), 100.0)
        assert np.isclose(dbm_to_power(-30.0), 1e-3)
        assert np.isclose(power_to_dbm(1.0), 0.0)
        assert np.isclose(power_to_dbm(100.0), 20.0)

    def test_inverse(self):
        """Test conversions are inverse of each other."""
        for dbm in [-90.0, -42.5, 0.0, 13.0]:
            assert np.isclose(power_to_dbm(dbm_to_power(dbm)), dbm)

    def test_non_positive_power_rejected(self):
        """Test power must be positive to be expressed in dBm."""
        with pytest.raises(ValueError):
            power_to_dbm(0.0)
        with pytest.raises(ValueError):
            power_to_dbm(-1.0)


class TestPathLoss:
    """Test log-distance path-loss model."""

    def test_path_loss_constant(self):
        """Test k_dB matches its definition at 2.4 GHz."""
        k_db = path_loss_constant_db(2.4e9)
        expected = 10.0 * np.log10(SPEED_OF_LIGHT / (4.0 * np.pi * 2.4e9))
        assert np.isclose(k_db, expected)
        assert k_db < 0

    def test_free_space_one_meter(self):
        """Test free-space loss at 1 m and 2.4 GHz is about 40 dB."""
        rss = rss_pathloss(0.0, 1.0, frequency=2.4e9, path_loss_exp=2.0)
        assert np.isclose(rss, -40.05, atol=0.01)

    def test_matches_linear_model(self):
        """Test dBm model equals Pt (c / 4πf)^n / d^n in linear units."""
        pt_dbm, d, f, n = -10.0, 7.5, 5.0e9, 2.7
        pr_mw = dbm_to_power(pt_dbm) * (SPEED_OF_LIGHT / (4 * np.pi * f)) ** n / d**n
        assert np.isclose(rss_pathloss(pt_dbm, d, f, n), power_to_dbm(pr_mw))

    def test_decade_loss(self):
        """Test received power drops 10n dB per decade of distance."""
        n = 3.0
        rss_1 = rss_pathloss(-20.0, 1.0, path_loss_exp=n)
        rss_10 = rss_pathloss(-20.0, 10.0, path_loss_exp=n)
        assert np.isclose(rss_1 - rss_10, 10.0 * n)

    def test_inverse_model(self):
        """Test RSS to distance inverts the path-loss model."""
        for d in [0.5, 3.0, 42.0]:
            rss = rss_pathloss(-30.0, d, DEFAULT_FREQUENCY, 2.2)
            assert np.isclose(rss_to_distance(rss, -30.0, DEFAULT_FREQUENCY, 2.2), d)

    def test_invalid_distance(self):
        """Test non-positive distance is rejected."""
        with pytest.raises(ValueError):
            rss_pathloss(0.0, 0.0)

    def test_invalid_frequency(self):
        """Test non-positive frequency is rejected."""
        with pytest.raises(ValueError):
            path_loss_constant_db(0.0)

    def test_sensitivity_matches_finite_difference(self):
        """Test ∂Pr/∂d against a central difference."""
        d, n, h = 12.0, 2.5, 1e-5
        numeric = (rss_pathloss(0.0, d + h, path_loss_exp=n)
                   - rss_pathloss(0.0, d - h, path_loss_exp=n)) / (2 * h)
        assert np.isclose(rss_distance_sensitivity(d, n), numeric, rtol=1e-6)


class TestVariancePropagation:
    """Test propagation of RSSI variance into distance variance."""

    def test_matches_finite_difference(self):
        """Test first-order propagation against numerical derivative."""
        pt, n, f = -40.0, 2.0, 2.4e9
        rss = rss_pathloss(pt, 20.0, f, n)
        h = 1e-6
        derivative = (rss_to_distance(rss + h, pt, f, n)
                      - rss_to_distance(rss - h, pt, f, n)) / (2 * h)

        variance = propagate_power_variance_to_distance_variance(pt, rss, n, f, 4.0)

        assert np.isclose(variance, derivative**2 * 4.0, rtol=1e-5)

    def test_zero_variance(self):
        """Test zero RSSI variance gives zero distance variance."""
        assert propagate_power_variance_to_distance_variance(-40.0, -70.0, 2.0, 2.4e9, 0.0) == 0.0
