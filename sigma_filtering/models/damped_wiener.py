"""
Damped Wiener process model.

Continuous-time model dx = (u - d x) dt + dW with damping d >= 0. Over an
interval dt the exact discretization is

    mean       = exp(-d dt) x + (1 - exp(-d dt)) / d * u
    covariance = (1 - exp(-2 d dt)) / (2 d) * Q

which tends to x + dt u and dt Q as d -> 0. expm1 keeps both accurate for
tiny d * dt.
"""

import numpy as np

from ..exceptions import ConfigurationError
from .interfaces import ProcessModel


class DampedWienerProcessModel(ProcessModel):
    """
    Damped Wiener process with per-step noise drawn from N(0, Q).

    The noise draw is scaled by sqrt((1 - exp(-2 d dt)) / (2 d)) inside
    transition(), so the noise covariance itself does not depend on dt.

    Parameters
    ----------
    dimension : int
        State dimension (the control input has the same dimension)
    damping : float, optional
        Damping coefficient d >= 0 (default: 0, an undamped random walk)
    noise_covariance : np.ndarray, optional
        Q (dimension, dimension). Defaults to the identity.
    """

    def __init__(self, dimension, damping=0.0, noise_covariance=None):
        if dimension <= 0:
            raise ConfigurationError(f"Dimension must be positive, got {dimension}")
        if damping < 0:
            raise ConfigurationError(f"Damping must be non-negative, got {damping}")
        self.dimension = int(dimension)
        self.damping = float(damping)

        if noise_covariance is None:
            noise_covariance = np.eye(self.dimension)
        self.Q = np.atleast_2d(np.asarray(noise_covariance, dtype=float))
        if self.Q.shape != (self.dimension, self.dimension):
            raise ConfigurationError(
                f"noise_covariance shape mismatch: expected "
                f"({self.dimension}, {self.dimension}), got {self.Q.shape}")

    @property
    def state_dimension(self):
        return self.dimension

    @property
    def control_dimension(self):
        return self.dimension

    @property
    def noise_covariance(self):
        return self.Q

    def expected_state(self, state, control, dt):
        _check_interval(dt)
        state = np.asarray(state, dtype=float)
        control = np.zeros(self.dimension) if control is None else np.asarray(control, dtype=float)

        if self.damping == 0:
            return state + dt * control

        decay = np.exp(-self.damping * dt)
        return -np.expm1(-self.damping * dt) / self.damping * control + decay * state

    def noise_scale(self, dt):
        """Variance factor applied to Q over an interval dt >= 0."""
        _check_interval(dt)
        if self.damping == 0:
            return dt
        return -np.expm1(-2.0 * self.damping * dt) / (2.0 * self.damping)

    def transition(self, state, control, noise, dt):
        return self.expected_state(state, control, dt) + np.sqrt(self.noise_scale(dt)) * noise


def _check_interval(dt):
    if dt < 0:
        raise ConfigurationError(f"Time step must be non-negative, got {dt}")
