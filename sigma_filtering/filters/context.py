"""
Stateful wrapper pairing one filter with the distribution it owns.
"""

import logging

from ..exceptions import UpdateSingularity

logger = logging.getLogger(__name__)


class FilterContext:
    """
    Owns a distribution and runs a filter's predict/update cycle on it.

    A singular update is not fatal here: it is logged, the predicted
    distribution is kept, and the update call reports False.

    Parameters
    ----------
    filter : SigmaPointKalmanFilter or ComposedSigmaPointFilter
        Filter used for every step
    distribution : GaussianDistribution or ComposedStateDistribution
        Initial belief, mutated in place from then on

    Attributes
    ----------
    last_result : UpdateResult, list or None
        Result of the most recent successful update
    skipped_updates : int
        Number of updates dropped because of a singular innovation

    Examples
    --------
    >>> context = FilterContext(spkf, GaussianDistribution(np.zeros(2)))
    >>> for z in measurements:
    ...     context.predict_and_update(z, dt=0.1)
    >>> context.distribution.mean
    """

    def __init__(self, filter, distribution):
        self.filter = filter
        self._distribution = distribution
        self.last_result = None
        self.skipped_updates = 0

    @property
    def distribution(self):
        return self._distribution

    def predict(self, dt=1.0, control=None, **options):
        """Predict step; extra options go to the filter (e.g. partition_control)."""
        self.filter.predict(self._distribution, dt, control, **options)

    def update(self, observation):
        """
        Update with an observation.

        Returns
        -------
        bool
            True if the distribution was updated, False if the update was
            skipped because the innovation covariance was singular.
        """
        return self._guarded(self.filter.update, observation)

    def update_partitions(self, observations):
        """Per-partition update of a composed distribution; see update()."""
        return self._guarded(self.filter.update_partitions, observations)

    def predict_and_update(self, observation, dt=1.0, control=None, **options):
        """
        Predict, then update with the observation.

        Returns
        -------
        bool
            Outcome of the update step
        """
        self.predict(dt, control, **options)
        return self.update(observation)

    def _guarded(self, step, observation):
        try:
            self.last_result = step(self._distribution, observation)
        except UpdateSingularity as exc:
            self.skipped_updates += 1
            logger.warning("Skipping update, keeping predicted distribution: %s", exc)
            return False
        return True
