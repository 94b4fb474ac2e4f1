"""
Unit tests for closed-form linear lateration.
"""

import numpy as np
import pytest

from rfloc.errors import AlgebraError, InsufficientReadingsError
from rfloc.radiosource.lateration import build_lateration_system, solve_linear_lateration


class TestLinearLateration:
    """Test homogeneous and inhomogeneous lateration."""

    def setup_method(self):
        self.receivers = np.array(
            [[10, 0, 0], [0, 10, 0], [0, 0, 10], [0, 0, 0]], dtype=float
        )
        self.true_pos = np.array([1.0, 2.0, 3.0])
        self.distances = np.linalg.norm(self.receivers - self.true_pos, axis=1)

    def test_system_is_satisfied_by_true_position(self):
        A, b = build_lateration_system(self.receivers, self.distances)
        assert A.shape == (3, 3)
        np.testing.assert_allclose(A @ self.true_pos, b, atol=1e-10)

    @pytest.mark.parametrize("homogeneous", [False, True])
    def test_exact_readings(self, homogeneous):
        position, info = solve_linear_lateration(
            self.receivers, self.distances, homogeneous=homogeneous
        )
        np.testing.assert_allclose(position, self.true_pos, atol=1e-8)
        assert info["residual"] < 1e-8

    def test_formulations_agree_on_many_readings(self):
        np.random.seed(11)
        receivers = np.random.uniform(-50, 50, size=(30, 3))
        source = np.random.uniform(-50, 50, size=3)
        distances = np.linalg.norm(receivers - source, axis=1)

        inhomogeneous, _ = solve_linear_lateration(receivers, distances)
        homogeneous, _ = solve_linear_lateration(receivers, distances, homogeneous=True)

        np.testing.assert_allclose(inhomogeneous, source, atol=1e-6)
        np.testing.assert_allclose(homogeneous, inhomogeneous, atol=1e-6)

    def test_2d(self):
        receivers = np.array([[0, 0], [10, 0], [0, 10]], dtype=float)
        source = np.array([4.0, 7.0])
        distances = np.linalg.norm(receivers - source, axis=1)

        position, _ = solve_linear_lateration(receivers, distances)

        np.testing.assert_allclose(position, source, atol=1e-10)

    def test_reference_reading_choice(self):
        position, _ = solve_linear_lateration(self.receivers, self.distances, ref_idx=2)
        np.testing.assert_allclose(position, self.true_pos, atol=1e-8)

    def test_insufficient_readings(self):
        with pytest.raises(InsufficientReadingsError):
            solve_linear_lateration(self.receivers[:3], self.distances[:3])

    @pytest.mark.parametrize("homogeneous", [False, True])
    def test_coplanar_receivers(self, homogeneous):
        receivers = np.array([[0, 0, 0], [10, 0, 0], [0, 10, 0], [10, 10, 0]], dtype=float)
        distances = np.linalg.norm(receivers - self.true_pos, axis=1)
        with pytest.raises(AlgebraError):
            solve_linear_lateration(receivers, distances, homogeneous=homogeneous)

    def test_mismatched_distances(self):
        with pytest.raises(ValueError):
            solve_linear_lateration(self.receivers, self.distances[:2])
