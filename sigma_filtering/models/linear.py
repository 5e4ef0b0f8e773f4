"""
Linear-Gaussian process and observation models.

    x_{k+1} = A x_k + B u_k + w_k,   w_k ~ N(0, Q)
    y_k     = H x_k + v_k,           v_k ~ N(0, R)
"""

import numpy as np

from ..distributions.gaussian import GaussianDistribution
from ..exceptions import ConfigurationError
from .interfaces import ObservationModel, PartitionObservationModel, ProcessModel


def _as_matrix(value, name):
    value = np.atleast_2d(np.asarray(value, dtype=float))
    if value.ndim != 2:
        raise ConfigurationError(f"{name} must be a matrix, got shape {value.shape}")
    return value


def _check_noise(noise_covariance, rows, name):
    Q = _as_matrix(noise_covariance, name)
    if Q.shape != (rows, rows):
        raise ConfigurationError(
            f"{name} shape mismatch: expected ({rows}, {rows}), got {Q.shape}")
    return Q


class LinearProcessModel(ProcessModel):
    """
    Linear transition with additive Gaussian noise.

    The elapsed time is not used; A and Q describe one filter step.

    Parameters
    ----------
    dynamics_matrix : np.ndarray
        A (n, n)
    noise_covariance : np.ndarray
        Q (n, n)
    input_matrix : np.ndarray, optional
        B (n, m). Without it the model takes no control input.

    Examples
    --------
    >>> random_walk = LinearProcessModel(np.eye(3), 0.01 * np.eye(3))
    """

    def __init__(self, dynamics_matrix, noise_covariance, input_matrix=None):
        self.A = _as_matrix(dynamics_matrix, "dynamics_matrix")
        n = self.A.shape[0]
        if self.A.shape != (n, n):
            raise ConfigurationError(f"dynamics_matrix must be square, got {self.A.shape}")
        self.Q = _check_noise(noise_covariance, n, "noise_covariance")

        if input_matrix is None:
            self.B = np.zeros((n, 0))
        else:
            self.B = _as_matrix(input_matrix, "input_matrix")
            if self.B.shape[0] != n:
                raise ConfigurationError(
                    f"input_matrix must have {n} rows, got {self.B.shape[0]}")

    @classmethod
    def random_walk(cls, dimension, noise_covariance):
        """Identity dynamics: x_{k+1} = x_k + w_k."""
        return cls(np.eye(dimension), noise_covariance)

    @property
    def state_dimension(self):
        return self.A.shape[0]

    @property
    def control_dimension(self):
        return self.B.shape[1]

    @property
    def noise_covariance(self):
        return self.Q

    def expected_state(self, state, control=None):
        """A x + B u."""
        x = self.A @ np.asarray(state, dtype=float)
        if control is not None and self.control_dimension > 0:
            x = x + self.B @ np.asarray(control, dtype=float)
        return x

    def transition(self, state, control, noise, dt):
        return self.expected_state(state, control) + noise


class LinearObservationModel(ObservationModel):
    """
    Linear measurement with additive Gaussian noise, y = H x + v.

    Parameters
    ----------
    observation_matrix : np.ndarray
        H (m, n)
    noise_covariance : np.ndarray
        R (m, m)
    """

    def __init__(self, observation_matrix, noise_covariance):
        self.H = _as_matrix(observation_matrix, "observation_matrix")
        self.R = _check_noise(noise_covariance, self.H.shape[0], "noise_covariance")

    @property
    def state_dimension(self):
        return self.H.shape[1]

    @property
    def observation_dimension(self):
        return self.H.shape[0]

    @property
    def noise_covariance(self):
        return self.R

    def observe(self, state, noise):
        return self.H @ np.asarray(state, dtype=float) + noise

    def log_probability(self, observation, state):
        density = GaussianDistribution(self.H @ np.asarray(state, dtype=float), self.R)
        return density.log_probability(observation)


class LinearPartitionObservationModel(PartitionObservationModel):
    """
    Linear per-partition measurement, y_i = H_a a + H_b b_i + v_i.

    Parameters
    ----------
    cohesive_matrix : np.ndarray
        H_a (m, n_a)
    partition_matrix : np.ndarray
        H_b (m, n_b)
    noise_covariance : np.ndarray
        R (m, m)
    """

    def __init__(self, cohesive_matrix, partition_matrix, noise_covariance):
        self.H_a = _as_matrix(cohesive_matrix, "cohesive_matrix")
        self.H_b = _as_matrix(partition_matrix, "partition_matrix")
        if self.H_a.shape[0] != self.H_b.shape[0]:
            raise ConfigurationError(
                f"cohesive_matrix and partition_matrix row counts differ: "
                f"{self.H_a.shape[0]} vs {self.H_b.shape[0]}")
        self.R = _check_noise(noise_covariance, self.H_a.shape[0], "noise_covariance")

    @property
    def cohesive_dimension(self):
        return self.H_a.shape[1]

    @property
    def partition_dimension(self):
        return self.H_b.shape[1]

    @property
    def observation_dimension(self):
        return self.H_a.shape[0]

    @property
    def noise_covariance(self):
        return self.R

    def observe(self, cohesive_state, partition_state, noise):
        return (self.H_a @ np.asarray(cohesive_state, dtype=float)
                + self.H_b @ np.asarray(partition_state, dtype=float)
                + noise)
