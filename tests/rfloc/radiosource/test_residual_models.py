"""
Unit tests for residual models and weights of the nonlinear stage.
"""

import numpy as np
import pytest

from rfloc.radiosource.residuals import (
    RangingAndRssiResidualModel,
    RangingResidualModel,
    distance_weights,
    position_variance,
    rssi_weights,
)
from rfloc.rf.measurement_models import rss_pathloss
from rfloc.rf.types import RangingAndRssiReading, RangingReading, WifiAccessPoint


def numerical_jacobian(h, x, eps=1e-6):
    """Central-difference Jacobian of h at x."""
    columns = []
    for j in range(len(x)):
        step = np.zeros_like(x)
        step[j] = eps
        columns.append((h(x + step) - h(x - step)) / (2 * eps))
    return np.column_stack(columns)


@pytest.fixture
def receivers():
    return np.array(
        [[10, 0, 0], [0, 10, 0], [0, 0, 10], [0, 0, 0], [5, 5, 5], [-3, 4, 1]],
        dtype=float,
    )


class TestRangingResidualModel:
    """Test range-only measurement model."""

    def test_model_at_true_position(self, receivers):
        source = np.array([1.0, 2.0, 3.0])
        distances = np.linalg.norm(receivers - source, axis=1)
        model = RangingResidualModel(receivers, distances, np.ones(len(receivers)))

        np.testing.assert_allclose(model.h(source), model.y)
        assert model.n_params == 3

    def test_jacobian(self, receivers):
        model = RangingResidualModel(receivers, np.ones(len(receivers)), np.ones(len(receivers)))
        x = np.array([2.0, -1.0, 0.5])
        np.testing.assert_allclose(
            model.jacobian(x), numerical_jacobian(model.h, x), atol=1e-6
        )


class TestRangingAndRssiResidualModel:
    """Test joint range and received power measurement model."""

    @pytest.mark.parametrize(
        "estimate_power, estimate_path_loss",
        [(True, False), (False, True), (True, True)],
    )
    def test_jacobian(self, receivers, estimate_power, estimate_path_loss):
        n = len(receivers)
        model = RangingAndRssiResidualModel(
            receivers, np.ones(n), np.ones(n), 2.4e9, np.ones(n), np.ones(n),
            estimate_power=estimate_power,
            estimate_path_loss=estimate_path_loss,
            tx_power_dbm=-30.0,
            path_loss_exp=2.3,
        )
        x = model.pack(np.array([2.0, -1.0, 0.5]), -35.0, 2.8)

        assert len(x) == model.n_params == 3 + estimate_power + estimate_path_loss
        np.testing.assert_allclose(
            model.jacobian(x), numerical_jacobian(model.h, x), rtol=1e-5, atol=1e-6
        )

    def test_predicted_power_matches_path_loss_model(self, receivers):
        n = len(receivers)
        source = np.array([1.0, 2.0, 3.0])
        model = RangingAndRssiResidualModel(
            receivers, np.ones(n), np.ones(n), 5.0e9, np.ones(n), np.ones(n),
            estimate_power=True, estimate_path_loss=True,
        )

        predicted = model.h(model.pack(source, -45.0, 2.5))[n:]

        expected = [
            rss_pathloss(-45.0, d, 5.0e9, 2.5)
            for d in np.linalg.norm(receivers - source, axis=1)
        ]
        np.testing.assert_allclose(predicted, expected)

    def test_pack_unpack(self, receivers):
        n = len(receivers)
        model = RangingAndRssiResidualModel(
            receivers, np.ones(n), np.ones(n), 2.4e9, np.ones(n), np.ones(n),
            estimate_power=False, estimate_path_loss=True, tx_power_dbm=-20.0,
        )

        position, power, path_loss = model.unpack(model.pack(np.ones(3), None, 3.1))

        np.testing.assert_allclose(position, np.ones(3))
        assert power == -20.0
        assert path_loss == 3.1

    def test_fixed_power_required(self, receivers):
        n = len(receivers)
        with pytest.raises(ValueError):
            RangingAndRssiResidualModel(
                receivers, np.ones(n), np.ones(n), 2.4e9, np.ones(n), np.ones(n),
                estimate_power=False, estimate_path_loss=True,
            )


class TestWeights:
    """Test residual weights."""

    def setup_method(self):
        self.ap = WifiAccessPoint("bssid", 2.4e9)

    def test_position_variance(self):
        assert position_variance(None) == 0.0
        assert np.isclose(position_variance(np.diag([1.0, 2.0, 3.0])), 2.0)

    def test_distance_weights(self):
        readings = [
            RangingReading(self.ap, 5.0, np.zeros(3)),
            RangingReading(self.ap, 5.0, np.zeros(3), distance_std=0.5),
            RangingReading(self.ap, 5.0, np.zeros(3), distance_std=0.5,
                           position_covariance=0.75 * np.eye(3)),
        ]

        weights = distance_weights(readings, True, 1e-3)

        np.testing.assert_allclose(weights, [1e6, 4.0, 1.0])

    def test_distance_weights_ignore_covariance_when_disabled(self):
        readings = [
            RangingReading(self.ap, 5.0, np.zeros(3), distance_std=0.5,
                           position_covariance=0.75 * np.eye(3)),
        ]
        np.testing.assert_allclose(distance_weights(readings, False, 1e-3), [4.0])

    def test_rssi_weights(self):
        d = 10.0
        n = 2.0
        readings = [
            RangingAndRssiReading(self.ap, d, -60.0, np.zeros(3)),
            RangingAndRssiReading(self.ap, d, -60.0, np.zeros(3), rssi_std=2.0,
                                  position_covariance=np.eye(3)),
        ]

        weights = rssi_weights(readings, True, 1.0, n)

        sensitivity = 10.0 * n / (np.log(10.0) * d)
        np.testing.assert_allclose(weights, [1.0, 1.0 / (4.0 + sensitivity**2)])
