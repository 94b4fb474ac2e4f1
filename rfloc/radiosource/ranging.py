"""Radio source position estimation from range readings."""

from rfloc.radiosource.base import EstimationResult, RadioSourceEstimator
from rfloc.radiosource.refiner import refine
from rfloc.radiosource.residuals import RangingResidualModel
from rfloc.rf.types import LocatedRadioSource, RangingReading


class RangingRadioSourceEstimator(RadioSourceEstimator):
    """
    Estimates the position of a radio source from range readings.

    The linear lateration solution (or ``initial_position``) seeds a
    Levenberg-Marquardt refinement of the distance residuals, which also
    yields the position covariance. With the nonlinear stage disabled the
    linear solution is returned without covariance.

    Requires at least ``dimension + 1`` readings.

    Example:
        >>> ap = WifiAccessPoint("00:11:22:33:44:55", 2.4e9)
        >>> receivers = np.array([[10, 0, 0], [0, 10, 0], [0, 0, 10], [0, 0, 0]])
        >>> readings = simulate_ranging_readings(ap, np.array([1.0, 2.0, 3.0]), receivers)
        >>> estimator = RangingRadioSourceEstimator(readings)
        >>> estimator.estimate()
        >>> estimator.estimated_position  # close to [1, 2, 3]
    """

    reading_type = RangingReading

    def _estimate(self) -> EstimationResult:
        position = self._seed_position()
        if not self._nonlinear_solver_enabled:
            return EstimationResult(position=position)

        model = RangingResidualModel(
            self._receiver_positions(), self._distances(), self._distance_weights()
        )
        refined = refine(model, position)
        return EstimationResult(
            position=refined.x,
            covariance=refined.covariance,
            position_covariance=refined.position_covariance(self._dimension),
            chi_sq=refined.chi_sq,
            dof=refined.dof,
        )

    @property
    def estimated_radio_source(self):
        """Located radio source built from the last estimate, or None."""
        if self._result is None:
            return None
        return LocatedRadioSource(
            source=self._result.source,
            position=self.estimated_position,
            position_covariance=self.estimated_position_covariance,
        )
