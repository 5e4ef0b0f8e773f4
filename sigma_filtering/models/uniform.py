"""
Uniform observation model.

A state-independent scalar measurement spread uniformly over
[min_value, max_value]. Useful as a clutter or outlier component next to a
Gaussian sensor model, and as a reference density for likelihood-based
consumers.
"""

import numpy as np
from scipy.stats import norm

from ..exceptions import ConfigurationError
from .interfaces import ObservationModel


class UniformObservationModel(ObservationModel):
    """
    y ~ U(min_value, max_value), independent of the state.

    The noise argument of observe() is a standard normal draw, mapped
    through the normal CDF onto the interval.

    Parameters
    ----------
    min_value, max_value : float
        Support of the observation (min_value < max_value)
    state_dimension : int, optional
        Dimension of the (ignored) state argument

    Examples
    --------
    >>> model = UniformObservationModel(-1.0, 1.0, state_dimension=3)
    >>> model.observe(np.zeros(3), np.zeros(1))
    array([0.])
    >>> model.log_probability(np.array([0.5]), np.zeros(3))
    -0.6931471805599453
    """

    def __init__(self, min_value, max_value, state_dimension=1):
        if not min_value < max_value:
            raise ConfigurationError(
                f"min_value must be below max_value, got [{min_value}, {max_value}]")
        if state_dimension <= 0:
            raise ConfigurationError(f"State dimension must be positive, got {state_dimension}")
        self.min_value = float(min_value)
        self.max_value = float(max_value)
        self._state_dimension = int(state_dimension)

    @property
    def state_dimension(self):
        return self._state_dimension

    @property
    def observation_dimension(self):
        return 1

    @property
    def noise_covariance(self):
        return np.eye(1)

    @property
    def width(self):
        return self.max_value - self.min_value

    def observe(self, state, noise):
        noise = np.atleast_1d(np.asarray(noise, dtype=float))
        return self.min_value + self.width * norm.cdf(noise)

    def probability(self, observation, state):
        y = float(np.atleast_1d(observation)[0])
        if self.min_value <= y <= self.max_value:
            return 1.0 / self.width
        return 0.0

    def log_probability(self, observation, state):
        y = float(np.atleast_1d(observation)[0])
        if self.min_value <= y <= self.max_value:
            return float(-np.log(self.width))
        return -np.inf
