"""
Unit tests for the nonlinear least squares solver.

Tests cover:
    - Levenberg-Marquardt method
    - Weighted nonlinear LS and covariance at convergence
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from rfloc.errors import AlgebraError
from rfloc.estimators.nonlinear_least_squares import (
    NonlinearLSResult,
    levenberg_marquardt,
)


class TestRangePositioning(unittest.TestCase):
    """Test solvers on 2D range positioning, hᵢ(x) = ‖x - aᵢ‖."""

    def setUp(self):
        self.anchors = np.array([[0, 0], [10, 0], [0, 10], [10, 10]], dtype=float)
        self.true_pos = np.array([3.0, 4.0])

        def h(x):
            return np.linalg.norm(self.anchors - x, axis=1)

        def jacobian(x):
            diff = x - self.anchors
            ranges = np.linalg.norm(diff, axis=1, keepdims=True)
            return diff / np.maximum(ranges, 1e-10)

        self.h = h
        self.jacobian = jacobian
        self.y_clean = h(self.true_pos)

    def test_levenberg_marquardt_exact(self):
        result = levenberg_marquardt(
            self.h, self.jacobian, self.y_clean, np.array([9.0, 1.0])
        )

        self.assertIsInstance(result, NonlinearLSResult)
        assert_allclose(result.x, self.true_pos, atol=1e-6)
        self.assertTrue(result.converged)
        self.assertLess(result.chi_sq, 1e-12)

    def test_levenberg_marquardt_different_initial_guesses(self):
        """Test LM converges from guesses spread over the anchor square."""
        for x0 in [np.array([0.5, 0.5]), np.array([8.0, 8.0]), np.array([9.0, 2.0])]:
            result = levenberg_marquardt(self.h, self.jacobian, self.y_clean, x0)
            assert_allclose(result.x, self.true_pos, atol=1e-6)

    def test_weighted_covariance(self):
        """Test covariance equals (J'WJ)⁻¹ at the solution."""
        np.random.seed(7)
        sigma = np.array([0.1, 0.2, 0.1, 0.3])
        y = self.y_clean + sigma * np.random.randn(4)
        weights = 1.0 / sigma**2

        result = levenberg_marquardt(
            self.h, self.jacobian, y, np.array([5.0, 5.0]), weights=weights
        )

        J = self.jacobian(result.x)
        expected = np.linalg.inv((J.T * weights) @ J)
        assert_allclose(result.covariance, expected, rtol=1e-8)
        r = y - self.h(result.x)
        self.assertAlmostEqual(result.chi_sq, float(r @ (weights * r)))

    def test_noisy_measurements(self):
        np.random.seed(42)
        y = self.y_clean + 0.1 * np.random.randn(4)

        result = levenberg_marquardt(self.h, self.jacobian, y, np.array([5.0, 5.0]))

        self.assertLess(np.linalg.norm(result.x - self.true_pos), 0.5)


class TestSolverValidation(unittest.TestCase):
    """Test input validation and numerical failures."""

    def test_negative_weights(self):
        with self.assertRaises(ValueError):
            levenberg_marquardt(
                lambda x: x, lambda x: np.eye(2), np.zeros(2), np.ones(2),
                weights=np.array([1.0, -1.0]),
            )

    def test_wrong_jacobian_shape(self):
        with self.assertRaises(ValueError):
            levenberg_marquardt(
                lambda x: x, lambda x: np.eye(3), np.zeros(2), np.ones(2)
            )

    def test_non_finite_model(self):
        with self.assertRaises(AlgebraError):
            levenberg_marquardt(
                lambda x: np.full(2, np.nan), lambda x: np.eye(2), np.zeros(2), np.ones(2)
            )

    def test_rank_deficient_covariance_is_none(self):
        """Test covariance is None when J'WJ is singular at the solution."""
        result = levenberg_marquardt(
            lambda x: np.array([x[0] + x[1]]),
            lambda x: np.array([[1.0, 1.0]]),
            np.array([1.0]),
            np.zeros(2),
        )

        self.assertAlmostEqual(result.x[0] + result.x[1], 1.0, places=6)
        self.assertIsNone(result.covariance)


if __name__ == "__main__":
    unittest.main()
